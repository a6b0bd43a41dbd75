"""
Filter profile loading and validation.

A filter profile maps signal labels (by keyword) to filter chains:

    {
      "zero_phase": true,
      "display_points": 2000,
      "channels": [
        {"name": "EEG", "match": ["eeg"],
         "filters": [{"behavior": "highpass", "cutoff": 0.3,
                      "characteristic": "butterworth", "order": 2}]}
      ]
    }

Filter entries use design.FilterSpec field names; `sample_rate` is taken
from the signal and may not appear in a profile.

Functions:
- load_filter_profile() - Read JSON profile (or the built-in default)
- validate_filter_profile() - Validate all sections, fill defaults
- merge_profile_with_args() - CLI argument override
- match_channel_filters() - Profile entry for a signal label
"""

import argparse
import copy
import json
import logging
from pathlib import Path

from .constants import (
    BEHAVIORS,
    CHARACTERISTICS,
    TRANSFORMS,
    MAX_ORDER,
    DEFAULT_ZERO_PHASE,
    DEFAULT_DISPLAY_POINTS,
    DEFAULT_FILTER_PROFILE,
)

log = logging.getLogger(__name__)

FILTER_KEYS = {
    "behavior", "cutoff", "characteristic", "order", "transform",
    "one_db", "pre_gain", "gain", "bandwidth",
}


def load_filter_profile(profile_path: str | Path | None = None) -> dict:
    """
    Load and validate a filter profile.

    Args:
        profile_path: Path to a profile JSON file, or None for the default

    Returns:
        Validated profile dictionary (independent copy)

    Raises:
        ValueError: If the file is missing, not JSON, or fails validation
    """
    if profile_path is None:
        return validate_filter_profile(copy.deepcopy(DEFAULT_FILTER_PROFILE))

    try:
        with open(profile_path, "r") as f:
            profile = json.load(f)
    except FileNotFoundError:
        raise ValueError(f"Profile file not found: {profile_path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in profile file: {e}")
    except OSError as e:
        raise ValueError(f"Failed to read profile file: {e}")

    log.info("Loaded filter profile from: %s", profile_path)
    return validate_filter_profile(profile)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_filter(entry, path: str) -> dict:
    if not isinstance(entry, dict):
        raise ValueError(f"{path} must be an object")

    unknown = set(entry) - FILTER_KEYS
    if unknown:
        raise ValueError(f"{path} has unknown field(s): {sorted(unknown)}")

    if "behavior" not in entry:
        raise ValueError(f"Missing required field: {path}.behavior")
    if entry["behavior"] not in BEHAVIORS:
        raise ValueError(f"{path}.behavior must be one of {list(BEHAVIORS)}, got: {entry['behavior']}")

    if "cutoff" not in entry:
        raise ValueError(f"Missing required field: {path}.cutoff")
    if not _is_number(entry["cutoff"]) or entry["cutoff"] <= 0:
        raise ValueError(f"{path}.cutoff must be a positive number, got: {entry['cutoff']}")

    characteristic = entry.get("characteristic")
    if characteristic is not None and characteristic not in CHARACTERISTICS:
        raise ValueError(f"{path}.characteristic must be one of {list(CHARACTERISTICS)}, got: {characteristic}")

    transform = entry.get("transform")
    if transform is not None and transform not in TRANSFORMS:
        raise ValueError(f"{path}.transform must be one of {list(TRANSFORMS)}, got: {transform}")

    if characteristic is None:
        raise ValueError(f"Missing required field: {path}.characteristic")

    order = entry.get("order", 1)
    if not isinstance(order, int) or isinstance(order, bool) or not 0 <= order <= MAX_ORDER:
        raise ValueError(f"{path}.order must be an integer in 0..{MAX_ORDER}, got: {order}")

    for flag in ("one_db", "pre_gain"):
        if flag in entry and not isinstance(entry[flag], bool):
            raise ValueError(f"{path}.{flag} must be true or false")

    if "gain" in entry and not _is_number(entry["gain"]):
        raise ValueError(f"{path}.gain must be a number, got: {entry['gain']}")

    bandwidth = entry.get("bandwidth")
    if bandwidth is not None and (not _is_number(bandwidth) or bandwidth <= 0):
        raise ValueError(f"{path}.bandwidth must be a positive number or null, got: {bandwidth}")

    return dict(entry)


def validate_filter_profile(profile: dict) -> dict:
    """
    Validate a filter profile and fill optional top-level defaults.

    Args:
        profile: Profile dictionary

    Returns:
        The same dictionary, with zero_phase/display_points filled in

    Raises:
        ValueError: If the profile is invalid; the message names the
            offending field by its JSON path
    """
    if not isinstance(profile, dict):
        raise ValueError("Filter profile must be a JSON object")

    profile.setdefault("zero_phase", DEFAULT_ZERO_PHASE)
    if not isinstance(profile["zero_phase"], bool):
        raise ValueError("zero_phase must be true or false")

    profile.setdefault("display_points", DEFAULT_DISPLAY_POINTS)
    points = profile["display_points"]
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise ValueError(f"display_points must be a positive integer, got: {points}")

    if "channels" not in profile:
        raise ValueError("Missing required section: channels")
    if not isinstance(profile["channels"], list):
        raise ValueError("channels must be a list")

    seen = set()
    for i, channel in enumerate(profile["channels"]):
        path = f"channels[{i}]"
        if not isinstance(channel, dict):
            raise ValueError(f"{path} must be an object")

        name = channel.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"{path}.name must be a non-empty string")
        if name in seen:
            raise ValueError(
                f"Duplicate channel name found: {name}\n"
                f"   Each profile entry must describe its own signal category."
            )
        seen.add(name)

        keywords = channel.get("match")
        if not isinstance(keywords, list) or not keywords:
            raise ValueError(f"{path}.match must be a non-empty list of keywords")
        for j, keyword in enumerate(keywords):
            if not isinstance(keyword, str) or not keyword.strip():
                raise ValueError(f"{path}.match[{j}] must be a non-empty string")

        filters = channel.get("filters", [])
        if not isinstance(filters, list):
            raise ValueError(f"{path}.filters must be a list")
        channel["filters"] = [_validate_filter(entry, f"{path}.filters[{j}]") for j, entry in enumerate(filters)]

    log.debug("Filter profile validated: %d channel entries", len(profile["channels"]))
    return profile


def merge_profile_with_args(profile: dict, args: argparse.Namespace) -> dict:
    """
    Merge a profile with command-line arguments.
    CLI arguments take precedence over the profile.

    Args:
        profile: Validated profile dictionary
        args: Parsed command-line arguments

    Returns:
        Merged profile (the input is not modified)
    """
    merged = copy.deepcopy(profile)

    if getattr(args, "points", None) is not None:
        if args.points <= 0:
            raise ValueError(f"--points must be a positive integer, got: {args.points}")
        merged["display_points"] = args.points
        print(f"    [OVERRIDE] display_points = {args.points} (from CLI)")

    if getattr(args, "no_zero_phase", False):
        merged["zero_phase"] = False
        print("    [OVERRIDE] zero_phase = False (from CLI)")

    return merged


def match_channel_filters(profile: dict, label: str) -> dict | None:
    """
    Profile entry for a signal label.

    The first entry with a keyword contained in the label (case-insensitive)
    wins; None when nothing matches.
    """
    lowered = label.lower()
    for channel in profile["channels"]:
        if any(keyword.lower() in lowered for keyword in channel["match"]):
            return channel
    return None

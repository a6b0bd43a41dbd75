import math

import numpy as np
import pytest
from scipy import signal

from analysis import FilterEngine, design

FS = 200.0


def _engine(**overrides) -> FilterEngine:
    params = {"sample_rate": FS, "cutoff": 20.0, "behavior": "lowpass", "characteristic": "butterworth", "order": 2}
    params.update(overrides)
    return FilterEngine(design(params))


def _direct_form_2(cascade, samples, state=None) -> np.ndarray:
    """Sample-by-sample reference recursion."""
    state = state if state is not None else [[0.0, 0.0] for _ in cascade]
    out = []
    for v in samples:
        for section, z in zip(cascade, state):
            temp = section.k * v - section.a[0] * z[0] - section.a[1] * z[1]
            v = section.b[0] * temp + section.b[1] * z[0] + section.b[2] * z[1]
            z[1], z[0] = z[0], temp
        out.append(v)
    return np.array(out)


def _transfer_function(cascade):
    b, a = np.array([1.0]), np.array([1.0])
    for section in cascade:
        b = np.polymul(b, section.k * np.array(section.b))
        a = np.polymul(a, np.array([1.0, *section.a]))
    return b, a


@pytest.fixture
def noise():
    return np.random.default_rng(3).normal(0.0, 10.0, 400)


# ═══════════════════════════════════════════════════════════════════════════════
# TIME DOMAIN
# ═══════════════════════════════════════════════════════════════════════════════

def test_matches_direct_form_recursion(noise):
    engine = _engine(characteristic="chebyshev1", order=3, pre_gain=True)
    state = [[0.0, 0.0] for _ in engine.cascade]
    first = engine.multi_step(noise[:150])
    second = engine.multi_step(noise[150:])
    assert np.allclose(first, _direct_form_2(engine.cascade, noise[:150], state))
    assert np.allclose(second, _direct_form_2(engine.cascade, noise[150:], state))


def test_single_step_matches_multi_step(noise):
    stepped = _engine()
    batched = _engine()
    singles = [stepped.single_step(v) for v in noise[:50]]
    assert np.allclose(singles, batched.multi_step(noise[:50]))
    # State carried across both styles
    assert stepped.single_step(noise[50]) == pytest.approx(batched.multi_step(noise[50:51])[0])


def test_highpass_removes_dc():
    engine = _engine(behavior="highpass", cutoff=0.3)
    t = np.arange(int(60 * FS)) / FS
    out = engine.multi_step(50.0 + 10.0 * np.sin(2 * np.pi * 10.0 * t))
    assert np.mean(out[-int(10 * FS):]) == pytest.approx(0.0, abs=0.5)


def test_cascade_order_does_not_change_magnitude():
    engine = _engine(characteristic="bessel", order=3)
    reversed_engine = FilterEngine(engine.cascade[::-1])
    for f in (1.0, 20.0, 55.0):
        assert reversed_engine.response_at(FS, f).magnitude == pytest.approx(engine.response_at(FS, f).magnitude)


@pytest.mark.parametrize("characteristic,order", [("butterworth", 2), ("chebyshev1", 3)])
@pytest.mark.parametrize("frequency", [5.0, 15.0, 20.0, 25.0, 40.0])
def test_filtfilt_zero_phase_squared_magnitude(characteristic, order, frequency):
    engine = _engine(characteristic=characteristic, order=order)
    gain = engine.response_at(FS, frequency).magnitude ** 2
    t = np.arange(2000) / FS
    x = np.sin(2 * np.pi * frequency * t)
    out = engine.filtfilt(x)
    # Squared magnitude, no phase shift, away from the start-up transients
    assert np.allclose(out[500:1500], gain * x[500:1500], atol=1e-3)


def test_filtfilt_corner_is_half_power():
    engine = _engine()
    t = np.arange(2000) / FS
    x = np.sin(2 * np.pi * 20.0 * t)
    assert np.allclose(engine.filtfilt(x)[500:1500], 0.5 * x[500:1500], atol=1e-3)


def test_channels_are_independent(noise):
    engine = _engine()
    a1 = engine.multi_step(noise[:100], channel="C3")
    engine.multi_step(noise[::-1], channel="O2")
    a2 = engine.multi_step(noise[100:], channel="C3")
    assert np.allclose(np.concatenate([a1, a2]), engine.simulate(noise))
    assert set(engine.channels) == {"C3", "O2"}


def test_reinit_restores_fresh_state(noise):
    engine = _engine()
    first = engine.multi_step(noise, channel=1)
    engine.reinit(1)
    assert np.array_equal(engine.multi_step(noise, channel=1), first)
    engine.multi_step(noise, channel=2)
    engine.reinit()
    assert engine.channels == ()


def test_simulate_leaves_state_untouched(noise):
    engine = _engine()
    first = engine.simulate(noise)
    assert engine.channels == ()
    assert np.array_equal(engine.simulate(noise), first)


def test_overwrite_in_place(noise):
    engine = _engine()
    expected = engine.simulate(noise)
    buf = noise.copy()
    result = engine.multi_step(buf, overwrite=True)
    assert result is buf
    assert np.allclose(buf, expected)


def test_overwrite_list_in_place(noise):
    expected = _engine().multi_step(noise)
    buf = noise.tolist()
    result = _engine().multi_step(buf, overwrite=True)
    assert result is buf
    assert isinstance(buf, list) and len(buf) == noise.size
    assert np.allclose(buf, expected)


@pytest.mark.parametrize("samples", [(1.0, 2.0, 3.0), np.ones(3, dtype=np.float32), [[1.0, 2.0], [3.0, 4.0]]])
def test_overwrite_rejects_unwritable_input(samples):
    engine = _engine()
    with pytest.raises(ValueError):
        engine.multi_step(samples, overwrite=True)
    # Rejected before any state was touched
    assert engine.channels == ()


def test_filtfilt_overwrite(noise):
    engine = _engine()
    expected = _engine().filtfilt(noise)
    buf = noise.copy()
    assert engine.filtfilt(buf, overwrite=True) is buf
    assert np.allclose(buf, expected)


def test_filtfilt_overwrite_list(noise):
    expected = _engine().filtfilt(noise)
    buf = noise.tolist()
    assert _engine().filtfilt(buf, overwrite=True) is buf
    assert np.allclose(buf, expected)


def test_empty_cascade_passes_through(noise):
    engine = FilterEngine([])
    out = engine.multi_step(noise)
    assert np.array_equal(out, noise)
    assert out is not noise
    assert len(engine) == 0


def test_empty_input():
    assert _engine().multi_step([]).size == 0


# ═══════════════════════════════════════════════════════════════════════════════
# FREQUENCY DOMAIN
# ═══════════════════════════════════════════════════════════════════════════════

def test_response_spans_dc_to_nyquist():
    points = _engine().response(100)
    assert len(points) == 100
    assert points[0].magnitude == pytest.approx(1.0)
    assert points[0].db_magnitude == pytest.approx(0.0, abs=1e-9)
    # Point i sits at i / (2N) of the sample rate: 20 Hz of 200 Hz is i = 20
    assert points[20].db_magnitude == pytest.approx(-10.0 * math.log10(2.0), abs=1e-6)


def test_response_phase_is_unwrapped():
    points = _engine(order=4).response(100)
    phases = np.array([p.unwrapped_phase for p in points])
    assert np.all(np.abs(np.diff(phases)) <= math.pi)
    assert phases[-1] < -3.0 * math.pi


def test_group_delay_matches_scipy():
    engine = _engine(order=3)
    points = engine.response(100)
    b, a = _transfer_function(engine.cascade)
    for i in (5, 10, 15):
        w_mid = math.pi * (i - 0.5) / 100
        _, expected = signal.group_delay((b, a), w=[w_mid])
        assert points[i].group_delay == pytest.approx(expected[0], rel=1e-2)


def test_response_back_fills_first_points():
    points = _engine().response(50)
    assert points[1].group_delay == points[2].group_delay
    assert points[1].phase_delay == points[2].phase_delay
    assert math.isfinite(points[0].phase_delay)


def test_response_degenerate_resolution():
    points = _engine().response(2)
    assert math.isnan(points[0].phase_delay)
    assert points[0].group_delay == 0.0
    assert _engine().response(0) == []


def test_step_response_overshoot():
    result = _engine().step_response(200)
    assert result.out.size == 200
    assert result.max is not None and result.max.value > 1.0
    assert result.min is not None and result.min.sample > result.max.sample
    assert result.out[-1] == pytest.approx(1.0, abs=1e-3)


def test_highpass_step_response_settles_to_zero():
    result = _engine(behavior="highpass", cutoff=5.0).step_response(400)
    assert result.out[0] > 0.5
    assert result.out[-1] == pytest.approx(0.0, abs=1e-3)


def test_impulse_response_sums_to_dc_gain():
    result = _engine().impulse_response(200)
    assert result.out.sum() == pytest.approx(1.0, abs=1e-3)
    assert result.max is not None


def test_poles_and_zeros():
    engine = _engine(order=3)
    for section, pz in zip(engine.cascade, engine.poles_zeros()):
        # Cookbook lowpass: double zero at Nyquist
        assert all(z.re == pytest.approx(-1.0) and z.im == pytest.approx(0.0) for z in pz.zeros)
        for p in pz.poles:
            assert math.hypot(p.re, p.im) < 1.0
        expected = sorted(np.roots([1.0, *section.a]), key=lambda r: -r.imag)
        assert [complex(p.re, p.im) for p in pz.poles] == pytest.approx(expected)

"""
Complex Arithmetic

Two-field value type plus free functions, used by the frequency-response
and pole/zero analysis in the filter engine.
"""

import math
from typing import NamedTuple


class Complex(NamedTuple):
    re: float
    im: float = 0.0

    def __str__(self) -> str:
        sign = "+" if self.im >= 0 else "-"
        return f"{self.re} {sign} {abs(self.im)}i"


def from_polar(magnitude: float, angle: float) -> Complex:
    return Complex(magnitude * math.cos(angle), magnitude * math.sin(angle))


def add(x: Complex, y: Complex) -> Complex:
    return Complex(x.re + y.re, x.im + y.im)


def sub(x: Complex, y: Complex) -> Complex:
    return Complex(x.re - y.re, x.im - y.im)


def mul(x: Complex, y: Complex) -> Complex:
    return Complex(x.re * y.re - x.im * y.im, x.re * y.im + x.im * y.re)


def div(x: Complex, y: Complex) -> Complex:
    """x / y. Division by zero raises ZeroDivisionError."""
    denom = y.re * y.re + y.im * y.im
    return Complex(
        (x.re * y.re + x.im * y.im) / denom,
        (x.im * y.re - x.re * y.im) / denom,
    )


def conj(x: Complex) -> Complex:
    return Complex(x.re, -x.im)


def magnitude(x: Complex) -> float:
    return math.hypot(x.re, x.im)


def phase(x: Complex) -> float:
    """Argument in radians, (-pi, pi]."""
    return math.atan2(x.im, x.re)

"""Scalar constants and angle helpers shared across polytess.

Internal module; none of these names are part of the public API.
"""

import math

import numpy as np


EPSILON1 = 0.1
EPSILON2 = 0.01
EPSILON8 = 0.00000001
EPSILON10 = 0.0000000001
EPSILON12 = 0.000000000001
EPSILON14 = 0.00000000000001
EPSILON15 = 0.000000000000001

PI_OVER_TWO = math.pi / 2.0
TWO_PI = 2.0 * math.pi
RADIANS_PER_DEGREE = math.pi / 180.0


def zero_to_two_pi(angle):
    """Wrap an angle in radians into [0, 2*pi].

    A non-zero multiple of 2*pi maps to 2*pi rather than 0.
    """
    mod = angle % TWO_PI
    if abs(mod) < EPSILON14 and abs(angle) > EPSILON14:
        return TWO_PI
    return mod


def negative_pi_to_pi(angle):
    """Wrap an angle in radians into [-pi, pi]."""
    return zero_to_two_pi(angle + math.pi) - math.pi


def negative_pi_to_pi_array(angles):
    """Vectorised :func:`negative_pi_to_pi`."""
    shifted = np.asarray(angles, dtype=np.float64) + math.pi
    mod = np.mod(shifted, TWO_PI)
    wrap = (np.abs(mod) < EPSILON14) & (np.abs(shifted) > EPSILON14)
    return np.where(wrap, TWO_PI, mod) - math.pi


def equals_epsilon(left, right, relative_epsilon, absolute_epsilon=None):
    """Compare two scalars with a relative and an absolute tolerance."""
    if absolute_epsilon is None:
        absolute_epsilon = relative_epsilon
    diff = abs(left - right)
    return (diff <= absolute_epsilon
            or diff <= relative_epsilon * max(abs(left), abs(right)))


def chord_length(angle, radius):
    """Length of the chord subtending ``angle`` on a circle of ``radius``."""
    return 2.0 * radius * math.sin(angle * 0.5)


def exceeds(value, limit):
    """True when ``value`` is greater than ``limit`` beyond rounding noise.

    Edge lengths that equal the subdivision limit analytically come out a
    few ulps either side of it; those must not be split.
    """
    return value - limit > EPSILON10 * limit

# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_tonescale.py — Tone scale, white roll-off and black-point
compensation.

Segmented Spline:
─────────────────────────────────────────────────────
  The tone scale is a uniform quadratic B-spline in log10/log10 space,
  split at the mid point into a low and a high half with N knots each
  (N = len(coefs) - 2).  Inside a segment with local parameter t ∈ [0, 1)
  and control values c_j, c_{j+1}, c_{j+2}:

        log y = [t², t, 1] · M · [c_j, c_{j+1}, c_{j+2}]ᵀ

        M = |  0.5  -1.0   0.5 |
            | -1.0   1.0   0.0 |       (rows give t², t, 1 coefficients)
            |  0.5   0.5   0.0 |

  so every knot value is the mean of two neighbouring coefficients and the
  curve passes through min/mid/max exactly when the coefficients are
  consistent with those anchors.  Outside [min.x, max.x] the curve extends
  linearly in log/log space with ``slope_low`` / ``slope_high``.

Roll White:
─────────────────────────────────────────────────────
  With s = white - width:

        f(x) = x                                   x <= s
        f(x) = x - (x - s)² / (4·width)            s < x < white + width
        f(x) = white                               x >= white + width

  f is continuous, C¹ (slope 1 at s, slope 0 at white + width) and
  monotonic non-decreasing.

Black-Point Compensation:
─────────────────────────────────────────────────────
  Two-point affine fit mapping [min_exposure, max_exposure] onto
  [black_out, white_out]:

        scale  = (white_out - black_out) / (max_exposure - min_exposure)
        offset = black_out - min_exposure · scale
        f(x)   = x · scale + offset
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Final, Tuple, Union

import numpy as np
from numba import njit

from tincture_colorimetry import (
    Chromaticities,
    rgb_to_xyz_f44,
    xyY_to_xyz,
    xyz_to_rgb_f44,
    xyz_to_xyY,
)
from tincture_errors import OutOfRangeError
from tincture_linalg import ArrayFloat, handle_shapes, mult_f3_f44

__all__ = [
    "HALF_MIN",
    "SegmentedSplineParams",
    "odt_tonescale_fwd",
    "odt_tonescale_rev",
    "roll_white_fwd",
    "roll_white_rev",
    "BlackPointCompensation",
    "surround_compensation",
]

ScalarOrArray = Union[float, ArrayFloat]

# Smallest positive normal half float; floor for the log10 of the spline input.
HALF_MIN: Final[float] = 6.103515625e-05
# Floor for the log10 of the spline output in the reverse direction.
_REV_FLOOR: Final[float] = 1e-10


def _flatten(x: ScalarOrArray) -> Tuple[ArrayFloat, tuple, bool]:
    arr = np.asarray(x, dtype=np.float64)
    return np.ascontiguousarray(arr.ravel()), arr.shape, arr.ndim == 0


def _restore(flat: ArrayFloat, shape: tuple, scalar: bool) -> ScalarOrArray:
    if scalar:
        return float(flat[0])
    return flat.reshape(shape)


# =============================================================================
# 1. SEGMENTED SPLINE PARAMETERS
# =============================================================================

@dataclass(slots=True, frozen=True)
class SegmentedSplineParams:
    """
    Coefficients and anchors of a segmented-spline tone scale.

    Args:
        coefs_low: log10 control values below the mid point (N_low + 2).
        coefs_high: log10 control values above the mid point (N_high + 2).
        min_point, mid_point, max_point: (x, y) anchors in linear units.
        slope_low, slope_high: log/log slopes of the linear extensions.
    """
    coefs_low:  Tuple[float, ...]
    coefs_high: Tuple[float, ...]
    min_point:  Tuple[float, float]
    mid_point:  Tuple[float, float]
    max_point:  Tuple[float, float]
    slope_low:  float = 0.0
    slope_high: float = 0.0

    def __post_init__(self) -> None:
        for label in ("coefs_low", "coefs_high", "min_point", "mid_point", "max_point"):
            object.__setattr__(self, label, tuple(float(v) for v in getattr(self, label)))
        object.__setattr__(self, "slope_low", float(self.slope_low))
        object.__setattr__(self, "slope_high", float(self.slope_high))

        if len(self.coefs_low) < 3 or len(self.coefs_high) < 3:
            raise OutOfRangeError("Spline halves need at least 3 coefficients each.")
        for label in ("min_point", "mid_point", "max_point"):
            pt = getattr(self, label)
            if len(pt) != 2 or pt[0] <= 0.0 or pt[1] <= 0.0:
                raise OutOfRangeError(f"{label} must be a positive (x, y) pair, got {pt}")
        if not (self.min_point[0] < self.mid_point[0] < self.max_point[0]):
            raise OutOfRangeError("Anchor x values must satisfy min < mid < max.")
        if not (self.min_point[1] < self.mid_point[1] < self.max_point[1]):
            raise OutOfRangeError("Anchor y values must satisfy min < mid < max.")
        if self.slope_low < 0.0 or self.slope_high < 0.0:
            raise OutOfRangeError("Extension slopes must be >= 0.")

        # Anchors the coefficients imply vs. the declared ones.
        # The last coefficient of each half only pads the final segment.
        implied = (
            (self.coefs_low[0] + self.coefs_low[1]) * 0.5,
            (self.coefs_low[-3] + self.coefs_low[-2]) * 0.5,
            (self.coefs_high[0] + self.coefs_high[1]) * 0.5,
            (self.coefs_high[-3] + self.coefs_high[-2]) * 0.5,
        )
        declared = (
            np.log10(self.min_point[1]),
            np.log10(self.mid_point[1]),
            np.log10(self.mid_point[1]),
            np.log10(self.max_point[1]),
        )
        if not np.allclose(implied, declared, rtol=0.0, atol=1e-6):
            warnings.warn(
                f"Spline coefficients imply log10 anchors {implied} but the "
                f"declared anchors are {declared}; the curve will not pass "
                "through the declared points exactly.",
                UserWarning,
                stacklevel=3,
            )

    @property
    def n_knots_low(self) -> int:
        return len(self.coefs_low) - 2

    @property
    def n_knots_high(self) -> int:
        return len(self.coefs_high) - 2

    def _kernel_args(self) -> tuple:
        return (
            np.asarray(self.coefs_low, dtype=np.float64),
            np.asarray(self.coefs_high, dtype=np.float64),
            np.log10(self.min_point[0]), np.log10(self.min_point[1]),
            np.log10(self.mid_point[0]), np.log10(self.mid_point[1]),
            np.log10(self.max_point[0]), np.log10(self.max_point[1]),
            self.slope_low, self.slope_high,
        )

    def get_state(self) -> dict:
        return {
            "coefs_low": list(self.coefs_low),
            "coefs_high": list(self.coefs_high),
            "min_point": list(self.min_point),
            "mid_point": list(self.mid_point),
            "max_point": list(self.max_point),
            "slope_low": self.slope_low,
            "slope_high": self.slope_high,
        }

    @classmethod
    def from_state(cls, state: dict) -> "SegmentedSplineParams":
        return cls(**state)


# =============================================================================
# 2. SPLINE KERNELS (Numba)
# =============================================================================

@njit(cache=True, inline='always')
def _bspline_segment(c0: float, c1: float, c2: float, t: float) -> float:
    """[t², t, 1] · M · [c0, c1, c2]ᵀ."""
    a = 0.5 * c0 - c1 + 0.5 * c2
    b = -c0 + c1
    c = 0.5 * c0 + 0.5 * c1
    return (a * t + b) * t + c


@njit(cache=True)
def _spline_fwd_kernel(x, coefs_low, coefs_high,
                       log_min_x, log_min_y, log_mid_x, log_mid_y,
                       log_max_x, log_max_y, slope_low, slope_high):
    out = np.empty_like(x)
    n_low = coefs_low.shape[0] - 2
    n_high = coefs_high.shape[0] - 2

    for i in range(x.shape[0]):
        v = x[i]
        if v < HALF_MIN:
            v = HALF_MIN
        logx = np.log10(v)

        if logx <= log_min_x:
            logy = logx * slope_low + (log_min_y - slope_low * log_min_x)
        elif logx < log_mid_x:
            knot = (n_low - 1) * (logx - log_min_x) / (log_mid_x - log_min_x)
            j = int(knot)
            t = knot - j
            logy = _bspline_segment(coefs_low[j], coefs_low[j + 1], coefs_low[j + 2], t)
        elif logx < log_max_x:
            knot = (n_high - 1) * (logx - log_mid_x) / (log_max_x - log_mid_x)
            j = int(knot)
            t = knot - j
            logy = _bspline_segment(coefs_high[j], coefs_high[j + 1], coefs_high[j + 2], t)
        else:
            logy = logx * slope_high + (log_max_y - slope_high * log_max_x)

        out[i] = 10.0 ** logy
    return out


@njit(cache=True, inline='always')
def _solve_segment(c0: float, c1: float, c2: float, logy: float) -> float:
    """Local t in [0, 1] with _bspline_segment(c0, c1, c2, t) == logy."""
    a = 0.5 * c0 - c1 + 0.5 * c2
    b = -c0 + c1
    c = 0.5 * c0 + 0.5 * c1 - logy
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        disc = 0.0
    denom = -np.sqrt(disc) - b
    if denom == 0.0:
        return 0.0
    return (2.0 * c) / denom


@njit(cache=True)
def _invert_half(logy, coefs, log_x0, log_x1):
    n = coefs.shape[0] - 2
    inc = (log_x1 - log_x0) / (n - 1)
    for j in range(n - 1):
        knot_hi = (coefs[j + 1] + coefs[j + 2]) * 0.5
        if logy <= knot_hi or j == n - 2:
            t = _solve_segment(coefs[j], coefs[j + 1], coefs[j + 2], logy)
            return log_x0 + (t + j) * inc
    return log_x1


@njit(cache=True)
def _spline_rev_kernel(y, coefs_low, coefs_high,
                       log_min_x, log_min_y, log_mid_x, log_mid_y,
                       log_max_x, log_max_y, slope_low, slope_high):
    out = np.empty_like(y)
    for i in range(y.shape[0]):
        v = y[i]
        if v < _REV_FLOOR:
            v = _REV_FLOOR
        logy = np.log10(v)

        if logy <= log_min_y:
            if slope_low > 0.0:
                logx = log_min_x + (logy - log_min_y) / slope_low
            else:
                logx = log_min_x
        elif logy <= log_mid_y:
            logx = _invert_half(logy, coefs_low, log_min_x, log_mid_x)
        elif logy < log_max_y:
            logx = _invert_half(logy, coefs_high, log_mid_x, log_max_x)
        else:
            if slope_high > 0.0:
                logx = log_max_x + (logy - log_max_y) / slope_high
            else:
                logx = log_max_x

        out[i] = 10.0 ** logx
    return out


# =============================================================================
# 3. PUBLIC TONE SCALE API
# =============================================================================

def odt_tonescale_fwd(x: ScalarOrArray, params: SegmentedSplineParams) -> ScalarOrArray:
    """
    Forward tone scale: scene-referred linear -> display-referred luminance.

    Args:
        x: Scalar or array of any shape; values <= 0 are floored at HALF_MIN.
        params: Spline definition.

    Returns:
        Same shape as *x* (a float for scalar input).
    """
    flat, shape, scalar = _flatten(x)
    return _restore(_spline_fwd_kernel(flat, *params._kernel_args()), shape, scalar)


def odt_tonescale_rev(y: ScalarOrArray, params: SegmentedSplineParams) -> ScalarOrArray:
    """
    Inverse tone scale.

    Outputs below the min anchor (or above the max anchor) map to the
    anchor's x when the matching extension slope is 0.
    """
    flat, shape, scalar = _flatten(y)
    return _restore(_spline_rev_kernel(flat, *params._kernel_args()), shape, scalar)


# =============================================================================
# 4. ROLL WHITE
# =============================================================================

def _check_roll(white: float, width: float) -> None:
    if not np.isfinite(width) or width <= 0.0:
        raise OutOfRangeError(f"Roll-off width must be > 0, got {width}")
    if not np.isfinite(white):
        raise OutOfRangeError(f"Roll-off white point must be finite, got {white}")


@njit(cache=True)
def _roll_white_fwd_kernel(x, white, width):
    out = np.empty_like(x)
    start = white - width
    end = white + width
    inv_4w = 1.0 / (4.0 * width)
    for i in range(x.shape[0]):
        v = x[i]
        if v <= start:
            out[i] = v
        elif v >= end:
            out[i] = white
        else:
            u = v - start
            out[i] = v - u * u * inv_4w
    return out


@njit(cache=True)
def _roll_white_rev_kernel(y, white, width):
    out = np.empty_like(y)
    start = white - width
    for i in range(y.shape[0]):
        v = y[i]
        if v <= start:
            out[i] = v
        elif v >= white:
            out[i] = white + width
        else:
            out[i] = start + 2.0 * width * (1.0 - np.sqrt(1.0 - (v - start) / width))
    return out


def roll_white_fwd(x: ScalarOrArray, white: float, width: float) -> ScalarOrArray:
    """
    Compresses values approaching *white* within a transition of *width*.

    Inputs <= white - width pass through unchanged; the shoulder reaches
    *white* with zero slope at white + width and stays there.

    Raises:
        OutOfRangeError: If width <= 0.
    """
    _check_roll(white, width)
    flat, shape, scalar = _flatten(x)
    return _restore(_roll_white_fwd_kernel(flat, float(white), float(width)), shape, scalar)


def roll_white_rev(y: ScalarOrArray, white: float, width: float) -> ScalarOrArray:
    """Inverse of ``roll_white_fwd``; values >= *white* map to white + width."""
    _check_roll(white, width)
    flat, shape, scalar = _flatten(y)
    return _restore(_roll_white_rev_kernel(flat, float(white), float(width)), shape, scalar)


# =============================================================================
# 5. BLACK-POINT COMPENSATION
# =============================================================================

@dataclass(slots=True, frozen=True)
class BlackPointCompensation:
    """Affine remap of [min_exposure, max_exposure] onto [black_out, white_out]."""
    min_exposure: float
    max_exposure: float
    black_out:    float = 0.0
    white_out:    float = 1.0

    def __post_init__(self) -> None:
        values = (self.min_exposure, self.max_exposure, self.black_out, self.white_out)
        if not all(np.isfinite(v) for v in values):
            raise OutOfRangeError(f"Black-point anchors must be finite, got {values}")
        if self.max_exposure == self.min_exposure:
            raise OutOfRangeError(
                f"Exposure range is empty ({self.min_exposure} == {self.max_exposure})."
            )
        if self.white_out == self.black_out:
            raise OutOfRangeError(
                f"Output range is empty ({self.black_out} == {self.white_out})."
            )

    @property
    def scale(self) -> float:
        return (self.white_out - self.black_out) / (self.max_exposure - self.min_exposure)

    @property
    def offset(self) -> float:
        return self.black_out - self.min_exposure * self.scale

    def fwd(self, x: ScalarOrArray) -> ScalarOrArray:
        flat, shape, scalar = _flatten(x)
        return _restore(flat * self.scale + self.offset, shape, scalar)

    def rev(self, y: ScalarOrArray) -> ScalarOrArray:
        flat, shape, scalar = _flatten(y)
        return _restore((flat - self.offset) / self.scale, shape, scalar)


# =============================================================================
# 6. SURROUND COMPENSATION
# =============================================================================

@handle_shapes
def surround_compensation(rgb: ArrayFloat, chroma: Chromaticities,
                          gamma: float) -> ArrayFloat:
    """
    Dark-to-dim surround adjustment: Y -> Y^gamma in xyY, chromaticity kept.

    Args:
        rgb: Linear display values in the *chroma* encoding, (3,) or (N, 3).
        chroma: Primaries of *rgb*.
        gamma: Luminance exponent (1.0 = identity).
    """
    if not np.isfinite(gamma) or gamma <= 0.0:
        raise OutOfRangeError(f"Surround gamma must be > 0, got {gamma}")
    if gamma == 1.0:
        return rgb.copy()
    xyz = mult_f3_f44(rgb, rgb_to_xyz_f44(chroma))
    xyY = xyz_to_xyY(xyz, chroma.white)
    xyY[:, 2] = np.clip(xyY[:, 2], 0.0, None) ** gamma
    return mult_f3_f44(xyY_to_xyz(xyY), xyz_to_rgb_f44(chroma))

# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_linalg.py — Fixed-size vector and matrix primitives.

Conventions:
─────────────────────────────────────────────────────
  Row vectors multiply from the left, as in the device-transform formulas:

        v' = [v, 1] · M                 (M is 4x4, homogeneous)
        v'_j = Σ_i v_i · M[i, j] + M[3, j]

  The homogeneous coordinate w = [v, 1] · M[:, 3] is divided out, so a
  matrix built with ``mat33_to_mat44`` (last column = e₃) is a plain 3x3
  multiply.  Composition follows the same order: ``mult_f44_f44(A, B)``
  applies A first, then B.

  Batched kernels take C-contiguous float64 arrays of shape (N, 3) and are
  compiled with Numba; every pixel is independent, so the loops run under
  ``prange``.
"""

import functools
import numpy as np
from numba import njit, prange
from scipy import linalg
from numpy.typing import NDArray
from typing import Any, Callable, Final, TypeAlias

from tincture_errors import InvalidGamutError

__all__ = [
    "ArrayFloat",
    "SINGULAR_TOL",
    "handle_shapes",
    "identity_f44",
    "mat33_to_mat44",
    "mat44_to_mat33",
    "mult_f3_f33",
    "mult_f3_f44",
    "mult_f44_f44",
    "invert_f44",
    "clamp_f3",
    "freeze",
]

ArrayFloat: TypeAlias = NDArray[np.floating]

# Relative determinant |det| / ||m||^3 below which a 3x3 block counts as singular.
SINGULAR_TOL: Final[float] = 1e-10


# =============================================================================
# 1. SHAPE HANDLING
# =============================================================================

def handle_shapes(func: Callable[..., ArrayFloat]) -> Callable[..., ArrayFloat]:
    """
    Decorator to normalize inputs to (N, 3) float64 and restore the rank.

    - If input is (3,), returns (3,)
    - If input is (N, 3), returns (N, 3)
    """
    @functools.wraps(func)
    def wrapper(arr: ArrayFloat, *args: Any, **kwargs: Any) -> ArrayFloat:
        arr = np.asarray(arr, dtype=np.float64)
        arr_in = np.ascontiguousarray(np.atleast_2d(arr))

        if arr_in.ndim != 2 or arr_in.shape[-1] != 3:
            raise ValueError(f"Expected shape (3,) or (N, 3), got {arr.shape}")

        res = func(arr_in, *args, **kwargs)

        if arr.ndim == 1:
            return res[0]
        return res
    return wrapper


def freeze(arr: ArrayFloat) -> ArrayFloat:
    """Return a read-only float64 copy of *arr*."""
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


# =============================================================================
# 2. LOW-LEVEL KERNELS (Numba)
# =============================================================================

@njit(cache=True, fastmath=False, parallel=True)
def _mult_f3_f44_kernel(rgb: ArrayFloat, m: ArrayFloat) -> ArrayFloat:
    """[v, 1] · M with homogeneous divide, one row per pixel."""
    n = rgb.shape[0]
    out = np.empty_like(rgb)
    for i in prange(n):
        r, g, b = rgb[i, 0], rgb[i, 1], rgb[i, 2]
        w = r * m[0, 3] + g * m[1, 3] + b * m[2, 3] + m[3, 3]
        if w == 0.0:
            w = 1.0
        for j in range(3):
            out[i, j] = (r * m[0, j] + g * m[1, j] + b * m[2, j] + m[3, j]) / w
    return out


@njit(cache=True, fastmath=False, parallel=True)
def _clamp_kernel(rgb: ArrayFloat, lo: float, hi: float) -> ArrayFloat:
    """Per-channel clamp.  NaN stays NaN."""
    n = rgb.shape[0]
    out = np.empty_like(rgb)
    for i in prange(n):
        for j in range(3):
            v = rgb[i, j]
            if v < lo:
                v = lo
            elif v > hi:
                v = hi
            out[i, j] = v
    return out


# =============================================================================
# 3. MATRIX CONSTRUCTION
# =============================================================================

def identity_f44() -> ArrayFloat:
    """4x4 identity."""
    return np.eye(4, dtype=np.float64)


def mat33_to_mat44(m33: ArrayFloat) -> ArrayFloat:
    """Embed a 3x3 row-vector matrix in the upper-left block of a 4x4."""
    m33 = np.asarray(m33, dtype=np.float64)
    if m33.shape != (3, 3):
        raise ValueError(f"Expected a (3, 3) matrix, got {m33.shape}")
    m44 = np.eye(4, dtype=np.float64)
    m44[:3, :3] = m33
    return m44


def mat44_to_mat33(m44: ArrayFloat) -> ArrayFloat:
    """Upper-left 3x3 block of a 4x4 matrix."""
    m44 = np.asarray(m44, dtype=np.float64)
    if m44.shape != (4, 4):
        raise ValueError(f"Expected a (4, 4) matrix, got {m44.shape}")
    return m44[:3, :3].copy()


def mult_f44_f44(a: ArrayFloat, b: ArrayFloat) -> ArrayFloat:
    """Compose two row-vector transforms: the result applies *a*, then *b*."""
    return np.asarray(a, dtype=np.float64) @ np.asarray(b, dtype=np.float64)


def invert_f44(m44: ArrayFloat) -> ArrayFloat:
    """
    Inverse of a 4x4 transform.

    Raises:
        InvalidGamutError: If the 3x3 colour block is singular, which for a
            primaries-derived matrix means the primaries are collinear.
    """
    m44 = np.asarray(m44, dtype=np.float64)
    m33 = m44[:3, :3]
    det = linalg.det(m33)
    # det scales with the cube of a uniform gain; compare against the block's norm.
    if not np.isfinite(det) or abs(det) <= SINGULAR_TOL * linalg.norm(m33) ** 3:
        raise InvalidGamutError(
            f"Matrix is singular (det={det:.3e}); cannot invert."
        )
    return linalg.inv(m44)


# =============================================================================
# 4. VECTOR OPERATIONS
# =============================================================================

@handle_shapes
def mult_f3_f44(rgb: ArrayFloat, m44: ArrayFloat) -> ArrayFloat:
    """
    Multiplies row vector(s) by a 4x4 matrix.

    Args:
        rgb: Shape (3,) or (N, 3).
        m44: Shape (4, 4).

    Returns:
        Transformed vector(s), same shape as *rgb*.
    """
    m = np.ascontiguousarray(m44, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Expected a (4, 4) matrix, got {m.shape}")
    return _mult_f3_f44_kernel(rgb, m)


@handle_shapes
def mult_f3_f33(rgb: ArrayFloat, m33: ArrayFloat) -> ArrayFloat:
    """Row vector(s) times a 3x3 matrix."""
    return np.dot(rgb, np.asarray(m33, dtype=np.float64))


@handle_shapes
def clamp_f3(rgb: ArrayFloat, lo: float = 0.0, hi: float = 1.0) -> ArrayFloat:
    """Clamps every channel to [lo, hi]."""
    if lo > hi:
        raise ValueError(f"Lower bound {lo} exceeds upper bound {hi}")
    return _clamp_kernel(rgb, float(lo), float(hi))

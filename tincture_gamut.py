# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_gamut.py — Smart clip (gamut clip with hue restoration).

Given an original colour O and its per-channel clamp C = clamp(O, lo, hi):

  1. Clamp deltas   δ_i = O_i - C_i.  The dominant channel is argmax |δ_i|.
  2. If the dominant overshoot is above ``hi``, the colour is scaled about
     ``lo`` so that its largest channel lands on ``hi``:

        H_i = lo + (O_i - lo) · (hi - lo) / (max(O) - lo)

     The two smaller channels keep their ratio to the largest one, i.e.
     hue is kept while magnitude drops.  Any remaining low overshoot is
     clamped.  A dominant overshoot below ``lo`` falls back to C.
  3. The result is blended with C:  out = (1 - amount) · C + amount · H.

For every channel pair the ratio of H equals either the ratio of O or the
ratio of C, and a blend of C and H stays between those, so restored
ratios never leave the interval spanned by the original and the clamped
colour.  Pixels with no overshoot are returned unchanged, and an
achromatic pixel (R = G = B) scales to exactly its clamp.
"""

import numpy as np
from numba import njit, prange
from typing import Optional, Tuple

from tincture_linalg import ArrayFloat, clamp_f3

__all__ = ["smart_clip", "clip_deltas"]


@njit(cache=True, inline='always')
def _clamp1(v: float, lo: float, hi: float) -> float:
    if v < lo:
        return lo
    if v > hi:
        return hi
    return v


@njit(cache=True, parallel=True)
def _clip_deltas_kernel(orig, lo, hi):
    n = orig.shape[0]
    deltas = np.empty_like(orig)
    dominant = np.empty(n, dtype=np.int64)
    for i in prange(n):
        best = 0
        best_mag = -1.0
        for j in range(3):
            d = orig[i, j] - _clamp1(orig[i, j], lo, hi)
            deltas[i, j] = d
            mag = abs(d)
            if mag > best_mag:
                best_mag = mag
                best = j
        dominant[i] = best
    return deltas, dominant


@njit(cache=True, parallel=True)
def _smart_clip_kernel(orig, clamped, lo, hi, amount):
    n = orig.shape[0]
    out = np.empty_like(orig)
    for i in prange(n):
        r = orig[i, 0]
        g = orig[i, 1]
        b = orig[i, 2]

        # Dominant clamp delta
        dom = 0.0
        for j in range(3):
            d = orig[i, j] - _clamp1(orig[i, j], lo, hi)
            if abs(d) > abs(dom):
                dom = d

        if dom == 0.0:
            out[i, 0] = r
            out[i, 1] = g
            out[i, 2] = b
            continue

        if dom > 0.0:
            mx = max(r, max(g, b))
            k = (hi - lo) / (mx - lo)
            h0 = _clamp1(lo + (r - lo) * k, lo, hi)
            h1 = _clamp1(lo + (g - lo) * k, lo, hi)
            h2 = _clamp1(lo + (b - lo) * k, lo, hi)
        else:
            h0 = _clamp1(r, lo, hi)
            h1 = _clamp1(g, lo, hi)
            h2 = _clamp1(b, lo, hi)

        if amount == 1.0:
            out[i, 0] = h0
            out[i, 1] = h1
            out[i, 2] = h2
        else:
            keep = 1.0 - amount
            out[i, 0] = keep * clamped[i, 0] + amount * h0
            out[i, 1] = keep * clamped[i, 1] + amount * h1
            out[i, 2] = keep * clamped[i, 2] + amount * h2
    return out


def _as_batch(rgb: ArrayFloat) -> Tuple[ArrayFloat, bool]:
    arr = np.asarray(rgb, dtype=np.float64)
    batch = np.ascontiguousarray(np.atleast_2d(arr))
    if batch.ndim != 2 or batch.shape[-1] != 3:
        raise ValueError(f"Expected shape (3,) or (N, 3), got {arr.shape}")
    return batch, arr.ndim == 1


def clip_deltas(original: ArrayFloat, lo: float = 0.0,
                hi: float = 1.0) -> Tuple[ArrayFloat, np.ndarray]:
    """
    Per-channel clamp deltas and the index of the most-clipped channel.

    Returns:
        (deltas, dominant): deltas has the shape of *original*
        (O - clamp(O)); dominant is an int per pixel (a scalar for (3,) input).
    """
    batch, single = _as_batch(original)
    deltas, dominant = _clip_deltas_kernel(batch, float(lo), float(hi))
    if single:
        return deltas[0], int(dominant[0])
    return deltas, dominant


def smart_clip(original: ArrayFloat, clamped: Optional[ArrayFloat] = None,
               lo: float = 0.0, hi: float = 1.0,
               amount: float = 1.0) -> ArrayFloat:
    """
    Clamps colours into [lo, hi]³ while restoring the original hue.

    Args:
        original: Unclipped colour(s), (3,) or (N, 3).
        clamped: Per-channel clamp of *original*; computed when omitted.
        lo: Lower bound of the valid cube.
        hi: Upper bound of the valid cube.
        amount: Restoration strength in [0, 1]; 0 returns *clamped*.

    Returns:
        Clipped colour(s) with the shape of *original*.
    """
    if not lo < hi:
        raise ValueError(f"Lower bound {lo} must be below upper bound {hi}")
    if not 0.0 <= amount <= 1.0:
        raise ValueError(f"Restoration amount must lie in [0, 1], got {amount}")

    batch, single = _as_batch(original)
    if clamped is None:
        clamped_batch = clamp_f3(batch, lo, hi)
    else:
        clamped_batch, _ = _as_batch(clamped)
        if clamped_batch.shape != batch.shape:
            raise ValueError(
                f"Clamped shape {clamped_batch.shape} does not match {batch.shape}"
            )

    res = _smart_clip_kernel(batch, clamped_batch, float(lo), float(hi), float(amount))
    if single:
        return res[0]
    return res

# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_transfer.py — Transfer-function encodes, quantization and
camera log decodes.

Display encodes (linear light -> signal):
    gamma   V = L^(1/γ)
    bt1886  V = (L / a)^(1/γ) - b,  a = (Lw^(1/γ) - Lb^(1/γ))^γ,
            b = Lb^(1/γ) / (Lw^(1/γ) - Lb^(1/γ))
    srgb    IEC 61966-2-1 piecewise curve (linear toe below 0.0031308)
    pq      SMPTE ST 2084 on absolute luminance (cd/m²)

Every encode requires non-negative, finite input: the smart clip stage
guarantees this inside the pipeline, so a violation here is reported as
``OutOfRangeError`` rather than silently turned into NaN.

Camera decodes (signal -> scene linear) back the input device transforms:
ARRI LogC (v3) and Sony S-Log3.

References:
    - ITU-R BT.1886 (2011)
    - IEC 61966-2-1:1999
    - SMPTE ST 2084:2014
"""

import numpy as np
from numba import njit, prange
from typing import Callable, Dict, Final, Optional, Union

from tincture_errors import OutOfRangeError
from tincture_linalg import ArrayFloat

__all__ = [
    "TRANSFER_KINDS",
    "encode_gamma",
    "decode_gamma",
    "encode_bt1886",
    "decode_bt1886",
    "encode_srgb",
    "decode_srgb",
    "encode_pq",
    "decode_pq",
    "encode",
    "quantize",
    "normalize_code_values",
    "max_code_value",
    "LOGC_EI800",
    "logc_decode",
    "logc_encode",
    "slog3_decode",
    "slog3_encode",
    "CAMERA_DECODERS",
]

ScalarOrArray = Union[float, ArrayFloat]

TRANSFER_KINDS: Final[tuple] = ("gamma", "bt1886", "srgb", "pq")

# SMPTE ST 2084 constants
PQ_M1: Final[float] = 2610.0 / 16384.0
PQ_M2: Final[float] = 2523.0 / 4096.0 * 128.0
PQ_C1: Final[float] = 3424.0 / 4096.0
PQ_C2: Final[float] = 2413.0 / 4096.0 * 32.0
PQ_C3: Final[float] = 2392.0 / 4096.0 * 32.0
PQ_PEAK: Final[float] = 10000.0


def _as_array(x: ScalarOrArray) -> ArrayFloat:
    return np.asarray(x, dtype=np.float64)


def _out(res: ArrayFloat) -> ScalarOrArray:
    if res.ndim == 0:
        return float(res)
    return res


def _check_gamma(gamma: float) -> None:
    if not np.isfinite(gamma) or gamma <= 0.0:
        raise OutOfRangeError(f"Gamma must be finite and > 0, got {gamma}")


def _check_non_negative(arr: ArrayFloat, label: str) -> None:
    bad = ~np.isfinite(arr) | (arr < 0.0)
    if np.any(bad):
        first = arr[bad].ravel()[0]
        raise OutOfRangeError(
            f"{label} requires finite non-negative input; "
            f"{int(np.count_nonzero(bad))} value(s) out of range (e.g. {first})."
        )


# =============================================================================
# 1. POWER LAW
# =============================================================================

def encode_gamma(x: ScalarOrArray, gamma: float) -> ScalarOrArray:
    """
    Power-law encode V = x^(1/gamma).

    Raises:
        OutOfRangeError: For gamma <= 0 or any negative / non-finite input.
    """
    _check_gamma(gamma)
    arr = _as_array(x)
    _check_non_negative(arr, "Gamma encode")
    return _out(np.power(arr, 1.0 / gamma))


def decode_gamma(x: ScalarOrArray, gamma: float) -> ScalarOrArray:
    """Power-law decode L = x^gamma."""
    _check_gamma(gamma)
    arr = _as_array(x)
    _check_non_negative(arr, "Gamma decode")
    return _out(np.power(arr, gamma))


# =============================================================================
# 2. BT.1886
# =============================================================================

def _bt1886_ab(gamma: float, Lw: float, Lb: float):
    if not Lw > Lb >= 0.0:
        raise OutOfRangeError(f"BT.1886 needs Lw > Lb >= 0, got Lw={Lw}, Lb={Lb}")
    lw = Lw ** (1.0 / gamma)
    lb = Lb ** (1.0 / gamma)
    a = (lw - lb) ** gamma
    b = lb / (lw - lb)
    return a, b


def encode_bt1886(L: ScalarOrArray, gamma: float = 2.4,
                  Lw: float = 1.0, Lb: float = 0.0) -> ScalarOrArray:
    """
    BT.1886 inverse EOTF (luminance -> signal).

    Luminance below the display black *Lb* is unreachable and encodes to 0.
    """
    _check_gamma(gamma)
    arr = _as_array(L)
    _check_non_negative(arr, "BT.1886 encode")
    a, b = _bt1886_ab(gamma, Lw, Lb)
    return _out(np.maximum(np.power(arr / a, 1.0 / gamma) - b, 0.0))


def decode_bt1886(V: ScalarOrArray, gamma: float = 2.4,
                  Lw: float = 1.0, Lb: float = 0.0) -> ScalarOrArray:
    """BT.1886 EOTF (signal -> luminance)."""
    _check_gamma(gamma)
    a, b = _bt1886_ab(gamma, Lw, Lb)
    arr = _as_array(V)
    return _out(a * np.power(np.maximum(arr + b, 0.0), gamma))


# =============================================================================
# 3. sRGB (Numba)
# =============================================================================

@njit(cache=True, fastmath=False, parallel=True)
def _srgb_encode_kernel(linear: ArrayFloat) -> ArrayFloat:
    """Flat (K,) linear -> signal."""
    out = np.empty_like(linear)
    for i in prange(linear.shape[0]):
        v = linear[i]
        if v <= 0.0031308:
            out[i] = 12.92 * v
        else:
            out[i] = 1.055 * (v ** (1.0 / 2.4)) - 0.055
    return out


@njit(cache=True, fastmath=False, parallel=True)
def _srgb_decode_kernel(signal: ArrayFloat) -> ArrayFloat:
    """Flat (K,) signal -> linear."""
    out = np.empty_like(signal)
    for i in prange(signal.shape[0]):
        v = signal[i]
        if v <= 0.04045:
            out[i] = v / 12.92
        else:
            out[i] = ((v + 0.055) / 1.055) ** 2.4
    return out


def encode_srgb(x: ScalarOrArray) -> ScalarOrArray:
    """IEC 61966-2-1 encode (linear -> signal)."""
    arr = _as_array(x)
    _check_non_negative(arr, "sRGB encode")
    flat = np.ascontiguousarray(arr.ravel())
    return _out(_srgb_encode_kernel(flat).reshape(arr.shape))


def decode_srgb(x: ScalarOrArray) -> ScalarOrArray:
    """IEC 61966-2-1 decode (signal -> linear)."""
    arr = _as_array(x)
    flat = np.ascontiguousarray(arr.ravel())
    return _out(_srgb_decode_kernel(flat).reshape(arr.shape))


# =============================================================================
# 4. SMPTE ST 2084 (PQ)
# =============================================================================

def encode_pq(nits: ScalarOrArray) -> ScalarOrArray:
    """Absolute luminance in cd/m² -> PQ signal in [0, 1]."""
    arr = _as_array(nits)
    _check_non_negative(arr, "PQ encode")
    y = np.power(arr / PQ_PEAK, PQ_M1)
    return _out(np.power((PQ_C1 + PQ_C2 * y) / (1.0 + PQ_C3 * y), PQ_M2))


def decode_pq(signal: ScalarOrArray) -> ScalarOrArray:
    """PQ signal -> absolute luminance in cd/m²."""
    arr = _as_array(signal)
    n = np.power(np.maximum(arr, 0.0), 1.0 / PQ_M2)
    lin = np.maximum(n - PQ_C1, 0.0) / (PQ_C2 - PQ_C3 * n)
    return _out(np.power(lin, 1.0 / PQ_M1) * PQ_PEAK)


# =============================================================================
# 5. DISPATCH & QUANTIZATION
# =============================================================================

def encode(x: ScalarOrArray, kind: str = "gamma", gamma: float = 2.4,
           peak_luminance: float = 100.0, black_luminance: float = 0.0) -> ScalarOrArray:
    """
    Encodes linear display values with the named transfer function.

    Args:
        x: Linear values, 1.0 = display white.
        kind: One of TRANSFER_KINDS.
        gamma: Exponent for "gamma" and "bt1886".
        peak_luminance: White luminance in cd/m² ("pq" only).
        black_luminance: Relative black level Lb for "bt1886" (Lw = 1).
    """
    if kind == "gamma":
        return encode_gamma(x, gamma)
    if kind == "bt1886":
        return encode_bt1886(x, gamma, 1.0, black_luminance)
    if kind == "srgb":
        return encode_srgb(x)
    if kind == "pq":
        return encode_pq(_as_array(x) * peak_luminance)
    raise ValueError(f"Unknown transfer function: {kind!r}. Expected one of {TRANSFER_KINDS}")


def max_code_value(bit_depth: int) -> int:
    """2^bit_depth - 1."""
    if not isinstance(bit_depth, (int, np.integer)) or not 1 <= bit_depth <= 32:
        raise OutOfRangeError(f"Bit depth must be an integer in [1, 32], got {bit_depth!r}")
    return (1 << int(bit_depth)) - 1


def quantize(x: ScalarOrArray, bit_depth: int, min_cv: int = 0,
             max_cv: Optional[int] = None) -> ScalarOrArray:
    """
    Scales [0, 1] signal to integer code values.

    cv = clamp(round(x · (2^bit_depth - 1)), min_cv, max_cv), rounding half
    away from zero; returned as float64 so alpha can share the array.
    """
    full = max_code_value(bit_depth)
    hi = full if max_cv is None else int(max_cv)
    if not 0 <= min_cv <= hi <= full:
        raise OutOfRangeError(
            f"Code value range [{min_cv}, {hi}] does not fit {bit_depth}-bit [0, {full}]"
        )
    arr = _as_array(x)
    cv = np.sign(arr) * np.floor(np.abs(arr) * full + 0.5)
    return _out(np.clip(cv, float(min_cv), float(hi)))


def normalize_code_values(cv: ScalarOrArray, bit_depth: int) -> ScalarOrArray:
    """Divides code values by 2^bit_depth - 1 (float output convention)."""
    return _out(_as_array(cv) / float(max_code_value(bit_depth)))


# =============================================================================
# 6. CAMERA LOG DECODES
# =============================================================================

# ARRI LogC (v3), exposure index 800
LOGC_EI800: Final[Dict[str, float]] = {
    "cut": 0.010591,
    "a": 5.555556,
    "b": 0.052272,
    "c": 0.247190,
    "d": 0.385537,
    "e": 5.367655,
    "f": 0.092809,
}

# Sony S-Log3 breakpoints (10-bit code values)
_SLOG3_CUT_CV: Final[float] = 171.2102946929
_SLOG3_CUT_LIN: Final[float] = 0.01125


def logc_decode(t: ScalarOrArray, cut: float, a: float, b: float, c: float,
                d: float, e: float, f: float) -> ScalarOrArray:
    """ARRI LogC signal -> scene linear."""
    arr = _as_array(t)
    log_part = (np.power(10.0, (arr - d) / c) - b) / a
    lin_part = (arr - f) / e
    return _out(np.where(arr > e * cut + f, log_part, lin_part))


def logc_encode(x: ScalarOrArray, cut: float, a: float, b: float, c: float,
                d: float, e: float, f: float) -> ScalarOrArray:
    """Scene linear -> ARRI LogC signal."""
    arr = _as_array(x)
    safe = np.maximum(a * arr + b, 1e-30)
    return _out(np.where(arr > cut, c * np.log10(safe) + d, e * arr + f))


def slog3_decode(t: ScalarOrArray) -> ScalarOrArray:
    """Sony S-Log3 signal -> scene linear reflection."""
    arr = _as_array(t)
    cv = arr * 1023.0
    log_part = np.power(10.0, (cv - 420.0) / 261.5) * (0.18 + 0.01) - 0.01
    lin_part = (cv - 95.0) * _SLOG3_CUT_LIN / (_SLOG3_CUT_CV - 95.0)
    return _out(np.where(cv >= _SLOG3_CUT_CV, log_part, lin_part))


def slog3_encode(x: ScalarOrArray) -> ScalarOrArray:
    """Scene linear reflection -> Sony S-Log3 signal."""
    arr = _as_array(x)
    safe = np.maximum((arr + 0.01) / (0.18 + 0.01), 1e-30)
    log_part = (420.0 + np.log10(safe) * 261.5) / 1023.0
    lin_part = (arr * (_SLOG3_CUT_CV - 95.0) / _SLOG3_CUT_LIN + 95.0) / 1023.0
    return _out(np.where(arr >= _SLOG3_CUT_LIN, log_part, lin_part))


CAMERA_DECODERS: Final[Dict[str, Callable[..., ScalarOrArray]]] = {
    "logc": logc_decode,
    "slog3": slog3_decode,
}

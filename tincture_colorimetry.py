# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_colorimetry.py — Primaries, RGB <-> XYZ and white adaptation.

The normalized primary matrix is built from the chromaticity columns

        P = | x_r  x_g  x_b |
            | y_r  y_g  y_b |
            | z_r  z_g  z_b |        z = 1 - x - y

scaled per column by S = P⁻¹ · W, where W is the XYZ of the white point at
luminance Y.  Working with (x, y, z) rather than (x/y, 1, z/y) keeps the
derivation finite for primaries on the y = 0 axis (CIE XYZ used as an
output "gamut" by DCDM encodings).  det(P) = 0 exactly when the three
primaries are collinear.

All matrices are returned in the 4x4 row-vector form used by
``tincture_linalg.mult_f3_f44``.

References:
    - SMPTE RP 177:1993 "Derivation of Basic Television Color Equations"
    - Lam, K. M. (1985) "Metamerism and Colour Constancy" (Bradford CAT)
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Final, Tuple

import numpy as np
from scipy import linalg

from tincture_errors import InvalidGamutError, OutOfRangeError
from tincture_linalg import (
    ArrayFloat,
    SINGULAR_TOL,
    handle_shapes,
    identity_f44,
    invert_f44,
    mat33_to_mat44,
    mult_f44_f44,
)

__all__ = [
    "Chromaticities",
    "XY",
    "rgb_to_xyz_f44",
    "xyz_to_rgb_f44",
    "bradford_f44",
    "rgb_to_rgb_f44",
    "luminance_weights",
    "xy_to_XYZ",
    "xyz_to_xyY",
    "xyY_to_xyz",
    "WHITE_D60",
    "WHITE_D65",
    "WHITE_DCI",
    "AP0",
    "AP1",
    "REC709",
    "P3_DCI",
    "P3_D60",
    "P3_D65",
    "REC2020",
    "CIE_XYZ",
    "ARRI_AWG3",
    "SONY_SGAMUT3",
    "SONY_SGAMUT3_CINE",
    "STANDARD_GAMUTS",
]

logger = logging.getLogger(__name__)

XY = Tuple[float, float]


# =============================================================================
# 1. CHROMATICITIES
# =============================================================================

@dataclass(slots=True, frozen=True)
class Chromaticities:
    """Red, green, blue and white (x, y) coordinates of an RGB encoding."""
    red:   XY
    green: XY
    blue:  XY
    white: XY

    def __post_init__(self) -> None:
        for label in ("red", "green", "blue", "white"):
            xy = getattr(self, label)
            if len(xy) != 2 or not all(np.isfinite(v) for v in xy):
                raise InvalidGamutError(
                    f"{label} chromaticity must be a finite (x, y) pair, got {xy!r}"
                )
            # Normalise lists to tuples so the value stays hashable.
            object.__setattr__(self, label, (float(xy[0]), float(xy[1])))
        if self.white[1] == 0.0:
            raise InvalidGamutError("White point y must be non-zero.")

    def as_array(self) -> ArrayFloat:
        """(4, 2) array: red, green, blue, white."""
        return np.array([self.red, self.green, self.blue, self.white],
                        dtype=np.float64)

    def get_state(self) -> dict:
        return {
            "red": list(self.red),
            "green": list(self.green),
            "blue": list(self.blue),
            "white": list(self.white),
        }

    @classmethod
    def from_state(cls, state: dict) -> "Chromaticities":
        return cls(
            red=tuple(state["red"]),
            green=tuple(state["green"]),
            blue=tuple(state["blue"]),
            white=tuple(state["white"]),
        )


def xy_to_XYZ(xy: XY, Y: float = 1.0) -> ArrayFloat:
    """XYZ of chromaticity *xy* at luminance *Y*."""
    x, y = xy
    if y == 0.0:
        raise InvalidGamutError(f"Cannot lift chromaticity {xy} with y = 0 to XYZ.")
    return np.array([x * Y / y, Y, (1.0 - x - y) * Y / y], dtype=np.float64)


# =============================================================================
# 2. PRIMARY MATRICES
# =============================================================================

@functools.lru_cache(maxsize=64)
def _npm_cached(chroma: Chromaticities, Y: float) -> ArrayFloat:
    """Cached worker for the column-vector normalized primary matrix."""
    if not Y > 0.0:
        raise OutOfRangeError(f"Reference luminance must be > 0, got {Y}")
    xyz_cols = np.array([
        [chroma.red[0],   chroma.green[0],   chroma.blue[0]],
        [chroma.red[1],   chroma.green[1],   chroma.blue[1]],
        [1.0 - sum(chroma.red), 1.0 - sum(chroma.green), 1.0 - sum(chroma.blue)],
    ], dtype=np.float64)

    det = linalg.det(xyz_cols)
    if abs(det) < SINGULAR_TOL:
        raise InvalidGamutError(
            f"Primaries {chroma.red}, {chroma.green}, {chroma.blue} are collinear "
            f"(det={det:.3e})."
        )

    white = xy_to_XYZ(chroma.white, Y)
    scale = linalg.solve(xyz_cols, white)
    npm = xyz_cols * scale[np.newaxis, :]

    if np.any(np.abs(scale) < SINGULAR_TOL * Y):
        raise InvalidGamutError(
            f"White point {chroma.white} lies on the gamut boundary; "
            "the primary matrix is singular."
        )
    npm.setflags(write=False)
    return npm


def rgb_to_xyz_f44(chroma: Chromaticities, Y: float = 1.0) -> ArrayFloat:
    """
    RGB -> XYZ matrix for the given primaries.

    Args:
        chroma: Source primaries and white point.
        Y: Luminance that RGB (1, 1, 1) maps to.

    Returns:
        4x4 row-vector matrix.

    Raises:
        InvalidGamutError: If the primaries are collinear.
    """
    npm = _npm_cached(chroma, float(Y))
    return mat33_to_mat44(npm.T)


def xyz_to_rgb_f44(chroma: Chromaticities, Y: float = 1.0) -> ArrayFloat:
    """XYZ -> RGB matrix; the exact inverse of ``rgb_to_xyz_f44``."""
    return invert_f44(rgb_to_xyz_f44(chroma, Y))


def luminance_weights(chroma: Chromaticities) -> ArrayFloat:
    """Y row of the primary matrix (the RGB luminance coefficients)."""
    return _npm_cached(chroma, 1.0)[1].copy()


# =============================================================================
# 3. CHROMATIC ADAPTATION
# =============================================================================

_M_BRADFORD = np.array([
    [ 0.8951000,  0.2664000, -0.1614000],
    [-0.7502000,  1.7135000,  0.0367000],
    [ 0.0389000, -0.0685000,  1.0296000]
], dtype=np.float64)
M_BRADFORD_T: Final[ArrayFloat] = _M_BRADFORD.T.copy()
M_BRADFORD_INV_T: Final[ArrayFloat] = np.linalg.inv(_M_BRADFORD).T.copy()


@functools.lru_cache(maxsize=16)
def _bradford_cached(src_white: XY, dst_white: XY) -> ArrayFloat:
    """
    Cached worker for the Bradford matrix.

    Derivation:
    M_composite = M_inv * Gain * M
    Since we operate on row vectors: M_comp = M.T @ Gain @ M_inv.T
    """
    src_lms = np.dot(xy_to_XYZ(src_white), M_BRADFORD_T)
    dst_lms = np.dot(xy_to_XYZ(dst_white), M_BRADFORD_T)
    src_lms = np.where(np.abs(src_lms) < 1e-12, 1e-12, src_lms)
    gains = np.diag(dst_lms / src_lms)
    m = M_BRADFORD_T @ gains @ M_BRADFORD_INV_T
    m.setflags(write=False)
    return m


def bradford_f44(src_white: XY, dst_white: XY) -> ArrayFloat:
    """
    Bradford adaptation from *src_white* to *dst_white* (both (x, y)).

    Returns the identity when the whites coincide.
    """
    src = (float(src_white[0]), float(src_white[1]))
    dst = (float(dst_white[0]), float(dst_white[1]))
    if np.allclose(src, dst, rtol=0.0, atol=1e-12):
        return np.eye(4, dtype=np.float64)
    return mat33_to_mat44(_bradford_cached(src, dst))


def rgb_to_rgb_f44(src: Chromaticities, dst: Chromaticities,
                   adapt: bool = True) -> ArrayFloat:
    """
    Composite RGB(src) -> XYZ -> [Bradford] -> RGB(dst) matrix.

    Args:
        src: Source primaries.
        dst: Destination primaries.
        adapt: If True, adapt src.white to dst.white.  If False the source
            white is reproduced as-is (white-point simulation).
    """
    if src == dst:
        return identity_f44()
    m = rgb_to_xyz_f44(src)
    if adapt:
        m = mult_f44_f44(m, bradford_f44(src.white, dst.white))
    m = mult_f44_f44(m, xyz_to_rgb_f44(dst))
    logger.debug("Derived RGB->RGB matrix (adapt=%s): %s", adapt, m[:3, :3].tolist())
    return m


# =============================================================================
# 4. xyY
# =============================================================================

@handle_shapes
def xyz_to_xyY(xyz: ArrayFloat, white: XY = (0.32168, 0.33767)) -> ArrayFloat:
    """
    XYZ -> xyY.

    Black (X+Y+Z ≈ 0) takes the chromaticity of *white* with Y = 0 so the
    result is NaN-free.
    """
    total = np.sum(xyz, axis=-1)
    mask = np.abs(total) > 1e-12
    out = np.empty_like(xyz)
    out[~mask, 0] = white[0]
    out[~mask, 1] = white[1]
    out[~mask, 2] = 0.0
    if np.any(mask):
        inv = 1.0 / total[mask]
        out[mask, 0] = xyz[mask, 0] * inv
        out[mask, 1] = xyz[mask, 1] * inv
        out[mask, 2] = xyz[mask, 1]
    return out


@handle_shapes
def xyY_to_xyz(xyY: ArrayFloat) -> ArrayFloat:
    """xyY -> XYZ.  Rows with y ≈ 0 map to black."""
    x, y, Y = xyY[:, 0], xyY[:, 1], xyY[:, 2]
    out = np.zeros_like(xyY)
    mask = np.abs(y) > 1e-12
    if np.any(mask):
        factor = Y[mask] / y[mask]
        out[mask, 0] = x[mask] * factor
        out[mask, 1] = Y[mask]
        out[mask, 2] = (1.0 - x[mask] - y[mask]) * factor
    return out


# =============================================================================
# 5. STANDARD GAMUTS
# =============================================================================

WHITE_D60: Final[XY] = (0.32168, 0.33767)
WHITE_D65: Final[XY] = (0.3127, 0.3290)
WHITE_DCI: Final[XY] = (0.314, 0.351)

AP0: Final = Chromaticities((0.7347, 0.2653), (0.0000, 1.0000), (0.0001, -0.0770), WHITE_D60)
AP1: Final = Chromaticities((0.713, 0.293), (0.165, 0.830), (0.128, 0.044), WHITE_D60)
REC709: Final = Chromaticities((0.64, 0.33), (0.30, 0.60), (0.15, 0.06), WHITE_D65)
P3_DCI: Final = Chromaticities((0.680, 0.320), (0.265, 0.690), (0.150, 0.060), WHITE_DCI)
P3_D60: Final = Chromaticities((0.680, 0.320), (0.265, 0.690), (0.150, 0.060), WHITE_D60)
P3_D65: Final = Chromaticities((0.680, 0.320), (0.265, 0.690), (0.150, 0.060), WHITE_D65)
REC2020: Final = Chromaticities((0.708, 0.292), (0.170, 0.797), (0.131, 0.046), WHITE_D65)
CIE_XYZ: Final = Chromaticities((1.0, 0.0), (0.0, 1.0), (0.0, 0.0), (1.0 / 3.0, 1.0 / 3.0))
ARRI_AWG3: Final = Chromaticities((0.6840, 0.3130), (0.2210, 0.8480), (0.0861, -0.1020), WHITE_D65)
SONY_SGAMUT3: Final = Chromaticities((0.730, 0.280), (0.140, 0.855), (0.100, -0.050), WHITE_D65)
SONY_SGAMUT3_CINE: Final = Chromaticities((0.766, 0.275), (0.225, 0.800), (0.089, -0.087), WHITE_D65)

STANDARD_GAMUTS: Final[dict] = {
    "AP0": AP0,
    "AP1": AP1,
    "Rec709": REC709,
    "P3DCI": P3_DCI,
    "P3D60": P3_D60,
    "P3D65": P3_D65,
    "Rec2020": REC2020,
    "XYZ": CIE_XYZ,
    "AWG3": ARRI_AWG3,
    "SGamut3": SONY_SGAMUT3,
    "SGamut3Cine": SONY_SGAMUT3_CINE,
}

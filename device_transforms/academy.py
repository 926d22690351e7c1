# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: device_transforms/academy.py — Shipped output device transforms.

Input to every ODT here is OCES (AP0, D60).  Rendering happens in AP1.

Cinema (48 cd/m², dark surround):
    P3DCI   D60 white simulated on a DCI projector: no white adaptation,
            white rolled off and scaled so no channel exceeds 1.0.
    P3D60   native D60 white.
    P3D65   Bradford-adapted to D65.
    DCDM    CIE XYZ code values, 48 cd/m² white in a 52.37 cd/m² container.

Video (100 cd/m², dim surround):
    Rec709, sRGB, Rec2020 with dim-surround compensation and a 0.93
    saturation trim before the output matrix.

HDR:
    P3D65 PQ, 1000 cd/m² peak.
"""

from typing import Dict, Final, List

from tincture_colorimetry import AP0, AP1, CIE_XYZ, P3_D60, P3_D65, P3_DCI, REC709, REC2020
from tincture_pipeline import TransformDescriptor
from tincture_tonescale import SegmentedSplineParams

__all__ = [
    "ODT_48NITS",
    "ODT_1000NITS",
    "ACADEMY_TRANSFORMS",
    "DISPLAY_TRANSFORMS",
    "builtin_transforms",
]

# =============================================================================
# 1. TONE SCALES
# =============================================================================

ODT_48NITS: Final = SegmentedSplineParams(
    coefs_low=(-1.6989700043, -1.6989700043, -1.4779, -1.2291, -0.8648,
               -0.448, 0.00518, 0.4511080334, 0.9113744414, 0.9113744414),
    coefs_high=(0.5154386965, 0.8470437783, 1.1358, 1.3802, 1.5197,
                1.5985, 1.6467, 1.6746091357, 1.6878733390, 1.6878733390),
    min_point=(0.0028798957, 0.02),
    mid_point=(4.8, 4.8),
    max_point=(1005.7191, 48.0),
    slope_low=0.0,
    slope_high=0.04,
)

# Anchors sit 12 stops below / 10 stops above OCES mid grey.
ODT_1000NITS: Final = SegmentedSplineParams(
    coefs_low=(-4.9706219331, -3.0293780669, -2.1262, -1.5105, -1.0578,
               -0.4668, 0.11938, 0.7088134201, 1.2911865799, 1.2911865799),
    coefs_high=(0.8089132070, 1.1910867930, 1.5683, 1.9483, 2.3083,
                2.6384, 2.8595, 2.9872608805, 3.0127391195, 3.0127391195),
    min_point=(4.8 * 2.0 ** -12, 0.0001),
    mid_point=(4.8, 10.0),
    max_point=(4.8 * 2.0 ** 10, 1000.0),
    slope_low=3.0,
    slope_high=0.06,
)

CINEMA_BLACK: Final[float] = 0.02
CINEMA_WHITE: Final[float] = 48.0
DIM_SURROUND_GAMMA: Final[float] = 0.9811
VIDEO_SATURATION: Final[float] = 0.93


# =============================================================================
# 2. DESCRIPTORS
# =============================================================================

def _cinema(name: str, **overrides) -> TransformDescriptor:
    params = dict(
        name=name,
        input_primaries=AP0,
        rendering_primaries=AP1,
        gamma=2.6,
        tonescale=ODT_48NITS,
        black_luminance=CINEMA_BLACK,
        white_luminance=CINEMA_WHITE,
    )
    params.update(overrides)
    return TransformDescriptor(**params)


def _video(name: str, **overrides) -> TransformDescriptor:
    params = dict(
        name=name,
        input_primaries=AP0,
        rendering_primaries=AP1,
        gamma=2.4,
        transfer="bt1886",
        tonescale=ODT_48NITS,
        black_luminance=CINEMA_BLACK,
        white_luminance=CINEMA_WHITE,
        surround_gamma=DIM_SURROUND_GAMMA,
        saturation=VIDEO_SATURATION,
    )
    params.update(overrides)
    return TransformDescriptor(**params)


ACADEMY_TRANSFORMS: Final[List[TransformDescriptor]] = [
    _cinema(
        "ODT.Academy.P3DCI_48nits",
        output_primaries=P3_DCI,
        adapt_white=False,
        roll_white=0.918,
        roll_width=0.082,
        scale=0.96,
        bit_depth=12,
    ),
    _cinema("ODT.Academy.P3D60_48nits", output_primaries=P3_D60),
    _cinema("ODT.Academy.P3D65_48nits", output_primaries=P3_D65),
    _cinema(
        "ODT.Academy.DCDM",
        output_primaries=CIE_XYZ,
        adapt_white=False,
        scale=48.0 / 52.37,
        bit_depth=12,
    ),
    _video("ODT.Academy.Rec709_100nits_dim", output_primaries=REC709),
    _video("ODT.Academy.sRGB_100nits_dim", output_primaries=REC709, transfer="srgb"),
    _video("ODT.Academy.Rec2020_100nits_dim", output_primaries=REC2020),
    TransformDescriptor(
        name="ODT.Academy.P3D65_PQ_1000nits",
        input_primaries=AP0,
        rendering_primaries=AP1,
        output_primaries=P3_D65,
        transfer="pq",
        tonescale=ODT_1000NITS,
        black_luminance=0.0001,
        white_luminance=1000.0,
        peak_luminance=1000.0,
    ),
]

DISPLAY_TRANSFORMS: Final[List[TransformDescriptor]] = [
    # Pure power-law display, linear P3D65 in, 12-bit code values out.
    TransformDescriptor(
        name="ODT.Display.Gamma26_12bit",
        input_primaries=P3_D65,
        rendering_primaries=P3_D65,
        output_primaries=P3_D65,
        gamma=2.6,
        bit_depth=12,
    ),
]


def builtin_transforms() -> Dict[str, TransformDescriptor]:
    """Name -> descriptor for every shipped ODT."""
    return {d.name: d for d in ACADEMY_TRANSFORMS + DISPLAY_TRANSFORMS}

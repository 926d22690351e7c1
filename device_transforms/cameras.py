# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: device_transforms/cameras.py — Shipped input device transforms.
"""

from typing import Dict, Final, List

from tincture_colorimetry import AP0, ARRI_AWG3, SONY_SGAMUT3, SONY_SGAMUT3_CINE
from tincture_idt import InputDeviceTransform
from tincture_transfer import LOGC_EI800

__all__ = ["CAMERA_TRANSFORMS", "builtin_idts"]

CAMERA_TRANSFORMS: Final[List[InputDeviceTransform]] = [
    InputDeviceTransform(
        name="IDT.ARRI.LogC_EI800_AWG",
        decode="logc",
        decode_params=LOGC_EI800,
        camera_primaries=ARRI_AWG3,
        aces_primaries=AP0,
    ),
    InputDeviceTransform(
        name="IDT.Sony.SLog3_SGamut3",
        decode="slog3",
        camera_primaries=SONY_SGAMUT3,
        aces_primaries=AP0,
    ),
    InputDeviceTransform(
        name="IDT.Sony.SLog3_SGamut3Cine",
        decode="slog3",
        camera_primaries=SONY_SGAMUT3_CINE,
        aces_primaries=AP0,
    ),
]


def builtin_idts() -> Dict[str, InputDeviceTransform]:
    """Name -> IDT for every shipped camera transform."""
    return {idt.name: idt for idt in CAMERA_TRANSFORMS}

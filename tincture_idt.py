# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_idt.py — Input device transforms (camera code values -> ACES).

  camera signal --decode--> scene linear (camera gamut)
                --exposure--> --matrix--> ACES (AP0, D60)

The camera gamut matrix adapts the camera white (D65 for the shipped
cameras) to the ACES white with Bradford unless ``adapt_white`` is off.
Alpha is passed through exactly as for output transforms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

import numpy as np

from tincture_colorimetry import AP0, Chromaticities, rgb_to_rgb_f44
from tincture_errors import OutOfRangeError
from tincture_linalg import ArrayFloat, freeze, mult_f3_f44
from tincture_pipeline import coerce_primaries, merge_pixels, split_pixels
from tincture_transfer import CAMERA_DECODERS

__all__ = ["InputDeviceTransform"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputDeviceTransform:
    """
    Camera-specific decode plus gamut conversion to ACES.

    Args:
        name: Registry name, e.g. "IDT.ARRI.LogC_EI800_AWG".
        decode: Key into CAMERA_DECODERS ("logc", "slog3").
        decode_params: Keyword constants for the decode function.
        camera_primaries: Native camera gamut.
        aces_primaries: Target encoding (AP0).
        adapt_white: Bradford-adapt the camera white to the ACES white.
        exposure: Linear gain applied after decoding.
    """
    name:             str
    decode:           str
    camera_primaries: Chromaticities
    decode_params:    Mapping[str, float] = field(default_factory=dict)
    aces_primaries:   Chromaticities = AP0
    adapt_white:      bool = True
    exposure:         float = 1.0
    matrix:           ArrayFloat = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.decode not in CAMERA_DECODERS:
            raise KeyError(
                f"Unknown camera decode {self.decode!r}. Known: {sorted(CAMERA_DECODERS)}"
            )
        if not np.isfinite(self.exposure) or self.exposure <= 0.0:
            raise OutOfRangeError(f"Exposure gain must be > 0, got {self.exposure}")
        object.__setattr__(self, "decode_params",
                           {k: float(v) for k, v in dict(self.decode_params).items()})
        m = rgb_to_rgb_f44(self.camera_primaries, self.aces_primaries, adapt=self.adapt_white)
        object.__setattr__(self, "matrix", freeze(m))
        logger.debug("Compiled %s (decode=%s)", self.name, self.decode)

    def linearize(self, signal: ArrayFloat) -> ArrayFloat:
        """Camera signal -> scene linear in the camera gamut."""
        lin = CAMERA_DECODERS[self.decode](signal, **self.decode_params)
        return np.asarray(lin, dtype=np.float64) * self.exposure

    def apply(self, pixels: ArrayFloat) -> ArrayFloat:
        """Decodes (3,), (4,), (N, 3) or (N, 4) camera pixels to ACES."""
        rgb, alpha, shape = split_pixels(pixels)
        lin = np.ascontiguousarray(self.linearize(rgb))
        return merge_pixels(mult_f3_f44(lin, self.matrix), alpha, shape)

    __call__ = apply

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "decode": self.decode,
            "decode_params": dict(self.decode_params),
            "camera_primaries": self.camera_primaries.get_state(),
            "aces_primaries": self.aces_primaries.get_state(),
            "adapt_white": self.adapt_white,
            "exposure": self.exposure,
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "InputDeviceTransform":
        return cls(
            name=state["name"],
            decode=state["decode"],
            decode_params=state.get("decode_params", {}),
            camera_primaries=coerce_primaries(state["camera_primaries"]),
            aces_primaries=coerce_primaries(state.get("aces_primaries", AP0)),
            adapt_white=state.get("adapt_white", True),
            exposure=state.get("exposure", 1.0),
        )

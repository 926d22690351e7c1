# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_pipeline.py — Output device transform evaluation.

Architecture:
─────────────────────────────────────────────────────
  TransformDescriptor      (frozen) all constants of one device transform
        │
        ▼
  OutputDeviceTransform    derives and freezes the stage matrices once
        │
        ▼  per pixel, always in this order
  1. input  -> rendering primaries          (4x4 matrix)
  2. tone scale -> black-point compensation
       -> surround compensation -> roll white
  3. rendering -> output primaries           (saturation and scale folded in)
  4. smart clip into [clip_low, clip_high]
  5. transfer encode (+ quantization to code values)

  The descriptor only supplies constants.  A stage whose constants are
  neutral (no tone scale, unit scale, ...) still runs, it just maps values
  onto themselves.  Pixels are independent: every batch kernel runs under
  Numba ``prange`` and nothing mutable is shared between calls.

Pixel layout:
  (3,), (4,), (N, 3) or (N, 4).  A fourth channel is alpha and is copied
  to the output untouched.
"""

from __future__ import annotations

import functools
import logging
import warnings
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from tincture_colorimetry import (
    AP0,
    AP1,
    REC709,
    STANDARD_GAMUTS,
    Chromaticities,
    luminance_weights,
    rgb_to_rgb_f44,
)
from tincture_errors import OutOfRangeError
from tincture_gamut import smart_clip
from tincture_linalg import (
    ArrayFloat,
    freeze,
    mat33_to_mat44,
    mult_f3_f44,
    mult_f44_f44,
)
from tincture_tonescale import (
    BlackPointCompensation,
    SegmentedSplineParams,
    odt_tonescale_fwd,
    roll_white_fwd,
    surround_compensation,
)
from tincture_transfer import TRANSFER_KINDS, encode, max_code_value, quantize

__all__ = [
    "TransformDescriptor",
    "OutputDeviceTransform",
    "OutputAdapter",
    "compile_transform",
    "coerce_primaries",
    "apply",
    "split_pixels",
    "merge_pixels",
]

logger = logging.getLogger(__name__)

PrimariesLike = Union[Chromaticities, str, Mapping[str, Any]]


# =============================================================================
# 1. PIXEL LAYOUT
# =============================================================================

def split_pixels(pixels: ArrayFloat) -> Tuple[ArrayFloat, Optional[ArrayFloat], tuple]:
    """
    Separates colour and alpha.

    Returns:
        (rgb, alpha, shape): rgb is a contiguous (N, 3) float64 copy, alpha
        is (N,) or None, shape is the caller's original shape.
    """
    arr = np.asarray(pixels, dtype=np.float64)
    if arr.ndim not in (1, 2) or arr.shape[-1] not in (3, 4):
        raise ValueError(f"Expected shape (3,), (4,), (N, 3) or (N, 4), got {arr.shape}")
    batch = np.atleast_2d(arr)
    rgb = np.ascontiguousarray(batch[:, :3])
    alpha = batch[:, 3].copy() if batch.shape[1] == 4 else None
    return rgb, alpha, arr.shape


def merge_pixels(rgb: ArrayFloat, alpha: Optional[ArrayFloat], shape: tuple) -> ArrayFloat:
    """Inverse of ``split_pixels``."""
    if alpha is None:
        return rgb.reshape(shape)
    out = np.empty((rgb.shape[0], 4), dtype=np.float64)
    out[:, :3] = rgb
    out[:, 3] = alpha
    return out.reshape(shape)


# =============================================================================
# 2. DESCRIPTOR
# =============================================================================

def coerce_primaries(value: PrimariesLike) -> Chromaticities:
    """Chromaticities from an instance, a STANDARD_GAMUTS name or a state dict."""
    if isinstance(value, Chromaticities):
        return value
    if isinstance(value, str):
        try:
            return STANDARD_GAMUTS[value]
        except KeyError:
            raise KeyError(
                f"Unknown gamut {value!r}. Known: {sorted(STANDARD_GAMUTS)}"
            ) from None
    if isinstance(value, Mapping):
        return Chromaticities.from_state(dict(value))
    return Chromaticities(*value)


def _coerce_tonescale(value: Any) -> Optional[SegmentedSplineParams]:
    if value is None or isinstance(value, SegmentedSplineParams):
        return value
    return SegmentedSplineParams.from_state(dict(value))


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise OutOfRangeError(message)


def _finite(value: float) -> bool:
    return value is not None and bool(np.isfinite(value))


@dataclass(slots=True, frozen=True)
class TransformDescriptor:
    """
    Every constant of one output device transform.

    Optional groups are all-or-nothing: black-point compensation needs both
    ``black_luminance`` and ``white_luminance``, the white roll-off both
    ``roll_white`` and ``roll_width``.  ``None`` makes that part of its
    stage an identity.  ``bit_depth=None`` yields float output.
    """
    name:                str
    input_primaries:     Chromaticities = AP0
    rendering_primaries: Chromaticities = AP1
    output_primaries:    Chromaticities = REC709
    gamma:               float = 2.4
    transfer:            str = "gamma"
    tonescale:           Optional[SegmentedSplineParams] = None
    black_luminance:     Optional[float] = None
    white_luminance:     Optional[float] = None
    black_out:           float = 0.0
    white_out:           float = 1.0
    roll_white:          Optional[float] = None
    roll_width:          Optional[float] = None
    scale:               float = 1.0
    saturation:          float = 1.0
    surround_gamma:      float = 1.0
    bit_depth:           Optional[int] = None
    min_code_value:      int = 0
    max_code_value:      Optional[int] = None
    clip_low:            float = 0.0
    clip_high:           float = 1.0
    adapt_white:         bool = True
    peak_luminance:      float = 100.0
    bt1886_black:        float = 0.0

    def __post_init__(self) -> None:
        _require(isinstance(self.name, str) and bool(self.name),
                 "Transform name must be a non-empty string.")
        for label in ("input_primaries", "rendering_primaries", "output_primaries"):
            if not isinstance(getattr(self, label), Chromaticities):
                raise TypeError(f"{label} must be Chromaticities, got {type(getattr(self, label))}")
        if self.tonescale is not None and not isinstance(self.tonescale, SegmentedSplineParams):
            raise TypeError(f"tonescale must be SegmentedSplineParams or None, got {type(self.tonescale)}")

        _require(_finite(self.gamma) and self.gamma > 0.0, f"Gamma must be > 0, got {self.gamma}")
        _require(self.transfer in TRANSFER_KINDS,
                 f"Unknown transfer function {self.transfer!r}; expected one of {TRANSFER_KINDS}")

        # Black-point compensation
        bpc = (self.black_luminance, self.white_luminance)
        _require(all(v is None for v in bpc) or all(v is not None for v in bpc),
                 "black_luminance and white_luminance must be set together.")
        if self.black_luminance is not None:
            _require(self.black_luminance < self.white_luminance,
                     f"black_luminance {self.black_luminance} must be below "
                     f"white_luminance {self.white_luminance}")
            BlackPointCompensation(self.black_luminance, self.white_luminance,
                                   self.black_out, self.white_out)

        # Roll-off
        roll = (self.roll_white, self.roll_width)
        _require(all(v is None for v in roll) or all(v is not None for v in roll),
                 "roll_white and roll_width must be set together.")
        if self.roll_width is not None:
            _require(_finite(self.roll_width) and self.roll_width > 0.0,
                     f"Roll-off width must be > 0, got {self.roll_width}")
            _require(_finite(self.roll_white), f"Roll-off white must be finite, got {self.roll_white}")

        _require(_finite(self.scale) and self.scale > 0.0, f"Scale must be > 0, got {self.scale}")
        _require(_finite(self.saturation) and self.saturation >= 0.0,
                 f"Saturation must be >= 0, got {self.saturation}")
        _require(_finite(self.surround_gamma) and self.surround_gamma > 0.0,
                 f"Surround gamma must be > 0, got {self.surround_gamma}")

        # Code values
        if self.bit_depth is not None:
            full = max_code_value(self.bit_depth)
            hi = full if self.max_code_value is None else self.max_code_value
            _require(0 <= self.min_code_value < hi <= full,
                     f"Code value range [{self.min_code_value}, {hi}] is invalid "
                     f"for {self.bit_depth}-bit output [0, {full}]")

        _require(_finite(self.clip_low) and _finite(self.clip_high)
                 and 0.0 <= self.clip_low < self.clip_high,
                 f"Clip bounds must satisfy 0 <= low < high, got [{self.clip_low}, {self.clip_high}]")
        _require(_finite(self.peak_luminance) and self.peak_luminance > 0.0,
                 f"Peak luminance must be > 0, got {self.peak_luminance}")
        _require(_finite(self.bt1886_black) and 0.0 <= self.bt1886_black < 1.0,
                 f"BT.1886 black level must lie in [0, 1), got {self.bt1886_black}")

    # -- construction -------------------------------------------------------
    @classmethod
    def from_params(cls, params: Optional[Dict[str, Any]] = None,
                    **kwargs: Any) -> "TransformDescriptor":
        """
        Hybrid dict / keyword construction; keywords override *params*.

        Primaries may be given as Chromaticities, a standard gamut name
        ("AP1", "Rec709", ...) or a state dict; the tone scale as
        SegmentedSplineParams or its state dict.  Unknown keys are ignored
        with a warning.

        Examples:
            TransformDescriptor.from_params({"name": "a", "gamma": 2.6})
            TransformDescriptor.from_params(name="a", output_primaries="P3D65")
        """
        merged = {**(params or {}), **kwargs}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(merged) - known)
        if unknown:
            warnings.warn(
                f"Ignoring unknown transform parameters: {unknown}",
                UserWarning,
                stacklevel=2,
            )
        clean = {k: v for k, v in merged.items() if k in known}
        for label in ("input_primaries", "rendering_primaries", "output_primaries"):
            if label in clean:
                clean[label] = coerce_primaries(clean[label])
        if "tonescale" in clean:
            clean["tonescale"] = _coerce_tonescale(clean["tonescale"])
        return cls(**clean)

    # -- serialisation ------------------------------------------------------
    def get_state(self) -> Dict[str, Any]:
        """JSON-ready snapshot."""
        state: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (Chromaticities, SegmentedSplineParams)):
                value = value.get_state()
            state[f.name] = value
        return state

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "TransformDescriptor":
        """Reconstruct from ``get_state`` output."""
        return cls.from_params(state)

    @property
    def has_black_point(self) -> bool:
        return self.black_luminance is not None

    @property
    def has_roll_white(self) -> bool:
        return self.roll_width is not None


# =============================================================================
# 3. COMPILED TRANSFORM
# =============================================================================

def _saturation_f44(chroma: Chromaticities, saturation: float) -> ArrayFloat:
    """Blend towards luminance: v' = sat·v + (1 - sat)·Y·(1, 1, 1)."""
    w = luminance_weights(chroma)
    m33 = saturation * np.eye(3) + (1.0 - saturation) * np.repeat(w[:, np.newaxis], 3, axis=1)
    return mat33_to_mat44(m33)


class OutputDeviceTransform:
    """
    Executable form of a TransformDescriptor.

    All derived data is built in ``__init__`` and frozen (read-only arrays),
    so one instance can be shared freely between threads.

    Example:
        odt = OutputDeviceTransform(descriptor)
        out = odt.apply(rgba)           # same shape as rgba
        out, ok = odt.evaluate(rgba)    # bad pixels -> NaN, ok == False
    """

    def __init__(self, descriptor: TransformDescriptor):
        if not isinstance(descriptor, TransformDescriptor):
            raise TypeError(f"Expected TransformDescriptor, got {type(descriptor)}")
        d = descriptor
        self.descriptor = d

        self.input_matrix = freeze(
            rgb_to_rgb_f44(d.input_primaries, d.rendering_primaries, adapt=True)
        )
        out = _saturation_f44(d.rendering_primaries, d.saturation)
        out = mult_f44_f44(out, rgb_to_rgb_f44(d.rendering_primaries, d.output_primaries,
                                               adapt=d.adapt_white))
        out = mult_f44_f44(out, mat33_to_mat44(np.eye(3) * d.scale))
        self.output_matrix = freeze(out)

        self.black_point: Optional[BlackPointCompensation] = None
        if d.has_black_point:
            self.black_point = BlackPointCompensation(
                d.black_luminance, d.white_luminance, d.black_out, d.white_out
            )

        logger.debug(
            "Compiled %s: tonescale=%s bpc=%s roll=%s transfer=%s bit_depth=%s",
            d.name, d.tonescale is not None, d.has_black_point, d.has_roll_white,
            d.transfer, d.bit_depth,
        )

    @property
    def name(self) -> str:
        return self.descriptor.name

    # -- stages -------------------------------------------------------------
    def _render(self, rgb: ArrayFloat) -> ArrayFloat:
        """Stage 2 on (N, 3) rendering-space values."""
        d = self.descriptor
        if d.tonescale is not None:
            rgb = odt_tonescale_fwd(rgb, d.tonescale)
        if self.black_point is not None:
            rgb = self.black_point.fwd(rgb)
        rgb = surround_compensation(rgb, d.rendering_primaries, d.surround_gamma)
        if d.has_roll_white:
            rgb = roll_white_fwd(rgb, d.roll_white, d.roll_width)
        return np.ascontiguousarray(rgb)

    def display(self, rgb: ArrayFloat) -> ArrayFloat:
        """Stages 1-3: (N, 3) scene values -> unclipped linear display values."""
        rgb = mult_f3_f44(rgb, self.input_matrix)
        rgb = self._render(rgb)
        return mult_f3_f44(rgb, self.output_matrix)

    def linear(self, rgb: ArrayFloat) -> ArrayFloat:
        """Stages 1-4: (N, 3) scene values -> clipped linear display values."""
        d = self.descriptor
        return smart_clip(self.display(rgb), lo=d.clip_low, hi=d.clip_high)

    def encode(self, rgb: ArrayFloat) -> ArrayFloat:
        """Stage 5: transfer function and optional quantization."""
        d = self.descriptor
        signal = encode(rgb, d.transfer, gamma=d.gamma,
                        peak_luminance=d.peak_luminance, black_luminance=d.bt1886_black)
        if d.bit_depth is None:
            return np.asarray(signal, dtype=np.float64)
        return np.asarray(
            quantize(signal, d.bit_depth, d.min_code_value, d.max_code_value),
            dtype=np.float64,
        )

    # -- public -------------------------------------------------------------
    def apply(self, pixels: ArrayFloat) -> ArrayFloat:
        """
        Runs the full pipeline.

        Raises:
            OutOfRangeError: If any input pixel is non-finite, or a finite
                pixel overflows float64 before the clip stage (use
                ``evaluate`` to mask such pixels instead).
        """
        rgb, alpha, shape = split_pixels(pixels)
        if not np.all(np.isfinite(rgb)):
            raise OutOfRangeError(f"{self.name}: non-finite input pixel(s)")
        pre = self.display(rgb)
        overflow = ~np.all(np.isfinite(pre), axis=1)
        if np.any(overflow):
            raise OutOfRangeError(
                f"{self.name}: {int(np.count_nonzero(overflow))} finite input pixel(s) "
                f"overflowed float64 during rendering (first at index "
                f"{int(np.argmax(overflow))}, max |input| {np.max(np.abs(rgb[overflow])):.3e})"
            )
        d = self.descriptor
        lin = smart_clip(pre, lo=d.clip_low, hi=d.clip_high)
        return merge_pixels(self.encode(lin), alpha, shape)

    def evaluate(self, pixels: ArrayFloat,
                 sentinel: float = np.nan) -> Tuple[ArrayFloat, np.ndarray]:
        """
        Batch evaluation that never aborts on a bad pixel.

        Returns:
            (out, valid): out has the input shape; rows flagged False in
            *valid* carry *sentinel* in their colour channels (alpha is
            still passed through).
        """
        rgb, alpha, shape = split_pixels(pixels)
        d = self.descriptor
        pre = self.display(rgb)
        lin = smart_clip(pre, lo=d.clip_low, hi=d.clip_high)
        valid = (np.all(np.isfinite(rgb), axis=1) & np.all(np.isfinite(pre), axis=1)
                 & np.all(np.isfinite(lin), axis=1))
        out = np.full_like(lin, sentinel)
        if np.any(valid):
            out[valid] = self.encode(np.ascontiguousarray(lin[valid]))
        bad = int(valid.size - np.count_nonzero(valid))
        if bad:
            logger.debug("%s: %d of %d pixel(s) failed evaluation", self.name, bad, valid.size)
        if len(shape) == 1:
            return merge_pixels(out, alpha, shape), valid[0]
        return merge_pixels(out, alpha, shape), valid

    __call__ = apply

    def __repr__(self) -> str:
        d = self.descriptor
        return (f"OutputDeviceTransform(name={d.name!r}, transfer={d.transfer!r}, "
                f"bit_depth={d.bit_depth})")


@functools.lru_cache(maxsize=32)
def compile_transform(descriptor: TransformDescriptor) -> OutputDeviceTransform:
    """Cached OutputDeviceTransform for a (hashable, frozen) descriptor."""
    return OutputDeviceTransform(descriptor)


def apply(descriptor: TransformDescriptor, pixels: ArrayFloat) -> ArrayFloat:
    """``OutputDeviceTransform(descriptor).apply(pixels)`` with compilation cached."""
    return compile_transform(descriptor).apply(pixels)


# =============================================================================
# 4. OUTPUT ADAPTER
# =============================================================================

class OutputAdapter:
    """
    Converts pipeline output to what an image writer expects.

    With ``normalize=True`` quantized code values are divided by
    2^bit_depth - 1, giving floats in [0, 1] that still sit exactly on the
    code-value grid.  Float-output transforms pass through unchanged.
    """

    def __init__(self, transform: Union[OutputDeviceTransform, TransformDescriptor],
                 normalize: bool = True):
        if isinstance(transform, TransformDescriptor):
            transform = compile_transform(transform)
        self.transform = transform
        self.normalize = bool(normalize)

    def apply(self, pixels: ArrayFloat) -> ArrayFloat:
        out = self.transform.apply(pixels)
        bit_depth = self.transform.descriptor.bit_depth
        if not self.normalize or bit_depth is None:
            return out
        out = np.array(out, dtype=np.float64, copy=True)
        out[..., :3] /= float(max_code_value(bit_depth))
        return out

    __call__ = apply


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    print("--- Tincture Pipeline Validation ---")

    desc = TransformDescriptor(
        name="validation.gamma26",
        input_primaries=REC709,
        rendering_primaries=REC709,
        output_primaries=REC709,
        gamma=2.6,
        bit_depth=12,
    )
    odt = OutputDeviceTransform(desc)

    print("1. Mid grey through gamma 2.6 / 12 bit...")
    res = odt.apply(np.array([0.5, 0.5, 0.5, 0.25]))
    expected = np.floor(4095 * 0.5 ** (1 / 2.6) + 0.5)
    print(f"   Output: {res}  (expected {expected:.0f} per channel, alpha 0.25)")

    print("2. Out-of-gamut colour...")
    res = odt.apply(np.array([1.2, 0.3, -0.1]))
    print(f"   Output: {res}  in range: {bool(np.all((res >= 0) & (res <= 4095)))}")

    print("3. Masked batch evaluation...")
    out, ok = odt.evaluate(np.array([[0.1, 0.2, 0.3], [np.nan, 0.0, 0.0]]))
    print(f"   Valid mask: {ok}")

    print("4. State round-trip...")
    same = TransformDescriptor.from_state(desc.get_state()) == desc
    print(f"   {'[PASS]' if same else '[FAIL]'}")

    print("--- Validation Complete ---")

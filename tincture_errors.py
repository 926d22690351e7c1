# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tincture_errors.py — Exception hierarchy.

All errors derive from ``ValueError`` so that callers who only guard
against bad parameters with ``except ValueError`` keep working.  Nothing
in the engine retries: evaluation is deterministic, so the same input
always fails the same way.
"""

__all__ = ["TinctureError", "InvalidGamutError", "OutOfRangeError"]


class TinctureError(ValueError):
    """Base class for every error raised by the transform engine."""


class InvalidGamutError(TinctureError):
    """Primaries are degenerate (collinear) and span no usable gamut."""


class OutOfRangeError(TinctureError):
    """
    A value lies outside its physically meaningful domain.

    Raised for descriptor parameters (e.g. a roll-off width <= 0) and for
    per-pixel preconditions (e.g. negative input to a power-law encode).
    """

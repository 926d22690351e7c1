# -*- coding: utf-8 -*-
"""
Tincture: Declarative output device transforms for scene-referred imagery
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: device_transforms — Named transform registry.

Every concrete device transform is a fixed, named instantiation of a
descriptor.  The registry is read through ``MappingProxyType`` views
(``TRANSFORMS``, ``IDTS``); writes go through ``register_transform`` /
``register_idt`` under a re-entrant lock.

JSON files accepted by ``load_transforms``:

    [ {<TransformDescriptor state>}, ... ]
or
    {"transforms": [ ... ], "idts": [ {<InputDeviceTransform state>}, ... ]}
"""

import json
import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Union

from tincture_idt import InputDeviceTransform
from tincture_pipeline import TransformDescriptor

from .academy import builtin_transforms
from .cameras import builtin_idts

__all__ = [
    "TRANSFORMS",
    "IDTS",
    "get_transform",
    "get_idt",
    "list_transforms",
    "list_idts",
    "register_transform",
    "register_idt",
    "load_transforms",
]

logger = logging.getLogger(__name__)

_lock = threading.RLock()
_transforms: Dict[str, TransformDescriptor] = builtin_transforms()
_idts: Dict[str, InputDeviceTransform] = builtin_idts()

TRANSFORMS: Mapping[str, TransformDescriptor] = MappingProxyType(_transforms)
IDTS: Mapping[str, InputDeviceTransform] = MappingProxyType(_idts)


# -- read interface --------------------------------------------------------
def get_transform(name: str) -> TransformDescriptor:
    """Descriptor registered under *name*.  Raises KeyError if absent."""
    try:
        return _transforms[name]
    except KeyError:
        raise KeyError(f"No output transform named {name!r}. Known: {list_transforms()}") from None


def get_idt(name: str) -> InputDeviceTransform:
    """Input transform registered under *name*.  Raises KeyError if absent."""
    try:
        return _idts[name]
    except KeyError:
        raise KeyError(f"No input transform named {name!r}. Known: {list_idts()}") from None


def list_transforms() -> List[str]:
    return sorted(_transforms)


def list_idts() -> List[str]:
    return sorted(_idts)


# -- write interface -------------------------------------------------------
def register_transform(descriptor: TransformDescriptor, overwrite: bool = False) -> None:
    """
    Adds *descriptor* under its own name.

    Raises:
        KeyError: If the name is taken and *overwrite* is False.
    """
    if not isinstance(descriptor, TransformDescriptor):
        raise TypeError(f"Expected TransformDescriptor, got {type(descriptor)}")
    with _lock:
        if descriptor.name in _transforms and not overwrite:
            raise KeyError(f"Output transform {descriptor.name!r} is already registered.")
        _transforms[descriptor.name] = descriptor
    logger.debug("Registered output transform %s", descriptor.name)


def register_idt(idt: InputDeviceTransform, overwrite: bool = False) -> None:
    """Adds *idt* under its own name; same rules as ``register_transform``."""
    if not isinstance(idt, InputDeviceTransform):
        raise TypeError(f"Expected InputDeviceTransform, got {type(idt)}")
    with _lock:
        if idt.name in _idts and not overwrite:
            raise KeyError(f"Input transform {idt.name!r} is already registered.")
        _idts[idt.name] = idt
    logger.debug("Registered input transform %s", idt.name)


def load_transforms(path: Union[str, Path], overwrite: bool = False) -> List[str]:
    """
    Registers every transform stored in a JSON file.

    The whole file is parsed and validated before anything is registered,
    so a bad entry leaves the registry untouched.

    Returns:
        Names of the registered transforms, in file order.
    """
    with open(path, "r", encoding="utf-8") as fh:
        payload: Any = json.load(fh)

    if isinstance(payload, list):
        odt_states, idt_states = payload, []
    elif isinstance(payload, dict):
        odt_states = payload.get("transforms", [])
        idt_states = payload.get("idts", [])
    else:
        raise ValueError(f"{path}: expected a list or an object at the top level")

    odts = [TransformDescriptor.from_state(s) for s in odt_states]
    idts = [InputDeviceTransform.from_state(s) for s in idt_states]

    with _lock:
        taken = [d.name for d in odts if d.name in _transforms]
        taken += [i.name for i in idts if i.name in _idts]
        if taken and not overwrite:
            raise KeyError(f"{path}: transforms already registered: {taken}")
        for d in odts:
            register_transform(d, overwrite=True)
        for i in idts:
            register_idt(i, overwrite=True)

    names = [d.name for d in odts] + [i.name for i in idts]
    logger.info("Loaded %d transform(s) from %s", len(names), path)
    return names

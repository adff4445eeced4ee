"""Dynamic local flags: decoding and slot/constant attribution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .cdi import (
    CustomDebugInfoKind,
    DynamicLocalInfo,
    decode_dynamic_locals_record,
    try_get_custom_debug_info_record,
)
from .scopes import SymScope

logger = logging.getLogger(__name__)

CONSTANT_SLOT = -1

DynamicFlags = Tuple[bool, ...]


class LocalNameKind(IntEnum):
    DUPLICATE = 0
    VARIABLE = 1
    CONSTANT = 2


@dataclass(frozen=True)
class DynamicLocalMaps:
    by_slot: Mapping[int, DynamicFlags] = field(default_factory=lambda: MappingProxyType({}))
    by_name: Mapping[str, DynamicFlags] = field(default_factory=lambda: MappingProxyType({}))


def expand_flags(info: DynamicLocalInfo) -> DynamicFlags:
    return tuple((info.flags >> i) & 1 != 0 for i in range(info.flag_count))


def classify_local_names(scopes: Sequence[SymScope]) -> Dict[str, LocalNameKind]:
    """Name classification over every scope of the method."""
    names: Dict[str, LocalNameKind] = {}
    first_local = next((local for scope in scopes for local in scope.locals if local.slot == 0), None)
    if first_local is not None:
        names[first_local.name] = LocalNameKind.VARIABLE
    for scope in scopes:
        for constant in scope.constants:
            names[constant.name] = LocalNameKind.DUPLICATE if constant.name in names else LocalNameKind.CONSTANT
    return names


def remove_ambiguous_locals(
    dynamic_locals: Iterable[DynamicLocalInfo],
    scopes: Sequence[SymScope],
) -> List[DynamicLocalInfo]:
    """Attribute slot 0 buckets to a local or a constant.

    Constants are encoded with slot 0, the same slot as a real local in slot
    0.  When a slot 0 local and a constant (or two constants) share a name
    the bucket cannot be attributed and is dropped; buckets naming only a
    constant move to ``CONSTANT_SLOT``.
    """
    names = classify_local_names(scopes)
    resolved: List[DynamicLocalInfo] = []
    for info in dynamic_locals:
        slot = info.slot_id
        if slot == 0:
            kind = names.get(info.name)
            if kind == LocalNameKind.DUPLICATE:
                logger.debug("dropping ambiguous dynamic flags for %r", info.name)
                continue
            if kind == LocalNameKind.CONSTANT:
                slot = CONSTANT_SLOT
        resolved.append(DynamicLocalInfo(info.flag_count, info.flags, slot, info.name))
    return resolved


def build_dynamic_local_maps(dynamic_locals: Iterable[DynamicLocalInfo]) -> DynamicLocalMaps:
    by_slot: Dict[int, DynamicFlags] = {}
    by_name: Dict[str, DynamicFlags] = {}
    for info in dynamic_locals:
        flags = expand_flags(info)
        if info.slot_id < 0:
            by_name[info.name] = flags
        else:
            by_slot[info.slot_id] = flags
    return DynamicLocalMaps(by_slot=MappingProxyType(by_slot), by_name=MappingProxyType(by_name))


def read_dynamic_local_maps(custom_debug_info: Optional[bytes], scopes: Sequence[SymScope]) -> DynamicLocalMaps:
    """Decode the dynamic locals record of a CDI blob, if present.

    Raises CustomDebugInfoError when the blob itself is malformed.
    """
    record = try_get_custom_debug_info_record(custom_debug_info, CustomDebugInfoKind.DYNAMIC_LOCALS)
    if record is None:
        return DynamicLocalMaps()
    return build_dynamic_local_maps(remove_ambiguous_locals(decode_dynamic_locals_record(record), scopes))


__all__ = [
    "CONSTANT_SLOT",
    "DynamicFlags",
    "DynamicLocalMaps",
    "LocalNameKind",
    "expand_flags",
    "classify_local_names",
    "remove_ambiguous_locals",
    "build_dynamic_local_maps",
    "read_dynamic_local_maps",
]

"""Symbol materialization for locals and constants."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Generic, List, Mapping, Optional, Sequence, TypeVar

from .constants import get_sym_constant_value
from .dynamic_locals import DynamicFlags
from .scopes import SymScope

logger = logging.getLogger(__name__)

TType = TypeVar("TType")
TLocal = TypeVar("TLocal")


class BadImageFormatError(ValueError):
    """Signature or metadata bytes are malformed."""


class UnsupportedSignatureContent(ValueError):
    """Signature is well formed but uses a construct the decoder cannot represent."""


class SymbolKind(IntEnum):
    NAMED_TYPE = 0
    ARRAY_TYPE = 1
    ERROR_TYPE = 2


@dataclass(frozen=True)
class LocalInfo(Generic[TType]):
    """One entry of a method's local signature."""

    type: TType
    is_pinned: bool = False
    is_byref: bool = False


class SymbolProvider(Generic[TType, TLocal]):
    """Language services the decoder needs to build symbols.

    Type objects returned by the provider expose ``kind`` (SymbolKind),
    ``special_type``, ``is_reference_type`` and ``enum_underlying_type``.
    """

    def decode_local_variable_type(self, signature: bytes) -> TType:
        """Raises UnsupportedSignatureContent or BadImageFormatError."""
        raise NotImplementedError("SymbolProvider must implement decode_local_variable_type()")

    def get_local_constant(
        self,
        name: str,
        type_symbol: TType,
        value: Any,
        dynamic_flags: Optional[DynamicFlags],
    ) -> TLocal:
        raise NotImplementedError("SymbolProvider must implement get_local_constant()")

    def get_local_variable(
        self,
        name: Optional[str],
        slot_index: int,
        info: LocalInfo[TType],
        dynamic_flags: Optional[DynamicFlags],
    ) -> TLocal:
        raise NotImplementedError("SymbolProvider must implement get_local_variable()")

    def get_type_symbol_for_serialized_type(self, type_name: str) -> TType:
        raise NotImplementedError("SymbolProvider must implement get_type_symbol_for_serialized_type()")


def get_constants(
    provider: SymbolProvider[TType, TLocal],
    scopes: Sequence[SymScope],
    dynamic_local_constant_map: Optional[Mapping[str, DynamicFlags]] = None,
) -> List[TLocal]:
    """Constant symbols for ``scopes``; undecodable constants are skipped."""
    constants: List[TLocal] = []
    for scope in scopes:
        for constant in scope.constants:
            try:
                type_symbol = provider.decode_local_variable_type(constant.signature)
            except (UnsupportedSignatureContent, BadImageFormatError) as exc:
                logger.debug("skipping constant %r: %s", constant.name, exc)
                continue
            if getattr(type_symbol, "kind", None) == SymbolKind.ERROR_TYPE:
                continue
            value = get_sym_constant_value(type_symbol, constant.value)
            if value.is_bad:
                logger.debug("skipping constant %r: bad value %r", constant.name, constant.value)
                continue
            flags = (dynamic_local_constant_map or {}).get(constant.name)
            constants.append(provider.get_local_constant(constant.name, type_symbol, value, flags))
    return constants


def get_locals(
    provider: SymbolProvider[TType, TLocal],
    names: Sequence[Optional[str]],
    local_info: Sequence[LocalInfo[TType]],
    dynamic_local_map: Optional[Mapping[int, DynamicFlags]] = None,
) -> List[TLocal]:
    """Local symbols in slot order, pairing signature entries with PDB names.

    With no local signature (e.g. a dump without heap) no locals are produced:
    the names alone carry no type information.
    """
    if not local_info:
        return []
    dynamic_local_map = dynamic_local_map or {}
    symbols: List[TLocal] = []
    for slot, info in enumerate(local_info):
        name = names[slot] if slot < len(names) else None
        symbols.append(provider.get_local_variable(name, slot, info, dynamic_local_map.get(slot)))
    return symbols


__all__ = [
    "BadImageFormatError",
    "UnsupportedSignatureContent",
    "SymbolKind",
    "LocalInfo",
    "SymbolProvider",
    "get_constants",
    "get_locals",
]

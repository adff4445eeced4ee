"""Conversion of raw PDB constant values into typed constant values."""

from __future__ import annotations

import datetime
import decimal
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

_DOTNET_EPOCH = datetime.datetime(1, 1, 1)
_TICKS_PER_MICROSECOND = 10


class SpecialType(IntEnum):
    NONE = 0
    OBJECT = 1
    BOOLEAN = 2
    CHAR = 3
    SBYTE = 4
    BYTE = 5
    INT16 = 6
    UINT16 = 7
    INT32 = 8
    UINT32 = 9
    INT64 = 10
    UINT64 = 11
    DECIMAL = 12
    SINGLE = 13
    DOUBLE = 14
    STRING = 15
    INTPTR = 16
    UINTPTR = 17
    DATETIME = 18


# (bits, signed)
_INTEGRAL = {
    SpecialType.SBYTE: (8, True),
    SpecialType.BYTE: (8, False),
    SpecialType.INT16: (16, True),
    SpecialType.UINT16: (16, False),
    SpecialType.INT32: (32, True),
    SpecialType.UINT32: (32, False),
    SpecialType.INT64: (64, True),
    SpecialType.UINT64: (64, False),
}


@dataclass(frozen=True)
class ConstantValue:
    value: Any = None
    is_bad: bool = False

    @property
    def is_null(self) -> bool:
        return not self.is_bad and self.value is None


ConstantValue.NULL = ConstantValue(None)  # type: ignore[attr-defined]
ConstantValue.BAD = ConstantValue(None, is_bad=True)  # type: ignore[attr-defined]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_integral(value: Any, bits: int, signed: bool) -> Optional[int]:
    """Reinterpret ``value`` within ``bits`` (PDBs store unsigned values signed)."""
    if not _is_int(value):
        return None
    if not -(1 << (bits - 1)) <= value < (1 << bits):
        return None
    value &= (1 << bits) - 1
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def get_sym_constant_value(type_symbol: Any, raw_value: Any) -> ConstantValue:
    underlying = getattr(type_symbol, "enum_underlying_type", None)
    if underlying is not None:
        type_symbol = underlying
    special = getattr(type_symbol, "special_type", SpecialType.NONE)

    if special == SpecialType.BOOLEAN:
        if not isinstance(raw_value, int):
            return ConstantValue.BAD
        return ConstantValue(raw_value != 0)
    if special in _INTEGRAL:
        bits, signed = _INTEGRAL[special]
        number = _coerce_integral(raw_value, bits, signed)
        return ConstantValue.BAD if number is None else ConstantValue(number)
    if special == SpecialType.CHAR:
        if isinstance(raw_value, str) and len(raw_value) == 1:
            return ConstantValue(raw_value)
        unit = _coerce_integral(raw_value, 16, False)
        return ConstantValue.BAD if unit is None else ConstantValue(chr(unit))
    if special in (SpecialType.SINGLE, SpecialType.DOUBLE):
        if _is_int(raw_value) or isinstance(raw_value, float):
            return ConstantValue(float(raw_value))
        return ConstantValue.BAD
    if special == SpecialType.DECIMAL:
        if isinstance(raw_value, bool):
            return ConstantValue.BAD
        if isinstance(raw_value, (decimal.Decimal, int, str)):
            try:
                return ConstantValue(decimal.Decimal(raw_value))
            except decimal.InvalidOperation:
                return ConstantValue.BAD
        return ConstantValue.BAD
    if special == SpecialType.DATETIME:
        if isinstance(raw_value, datetime.datetime):
            return ConstantValue(raw_value)
        if _is_int(raw_value) and raw_value >= 0:
            try:
                return ConstantValue(_DOTNET_EPOCH + datetime.timedelta(microseconds=raw_value // _TICKS_PER_MICROSECOND))
            except OverflowError:
                return ConstantValue.BAD
        return ConstantValue.BAD
    if special == SpecialType.STRING:
        if _is_int(raw_value) and raw_value == 0:
            return ConstantValue.NULL
        if raw_value is None:
            return ConstantValue("")
        return ConstantValue(raw_value) if isinstance(raw_value, str) else ConstantValue.BAD
    if special == SpecialType.OBJECT or getattr(type_symbol, "is_reference_type", False):
        if _is_int(raw_value) and raw_value == 0:
            return ConstantValue.NULL
        return ConstantValue.BAD
    return ConstantValue.BAD


__all__ = ["SpecialType", "ConstantValue", "get_sym_constant_value"]

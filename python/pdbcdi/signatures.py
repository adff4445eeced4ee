"""ECMA-335 signature decoding and a symbol provider built on it.

Only the subset that appears in local and constant signatures of ordinary
methods is understood: custom modifiers, BYREF, PINNED, primitives,
string/object, single-dimension arrays and CLASS/VALUETYPE references
resolved through a caller supplied token table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import ConstantValue, SpecialType
from .symbols import (
    BadImageFormatError,
    LocalInfo,
    SymbolKind,
    SymbolProvider,
    UnsupportedSignatureContent,
)

ELEMENT_TYPE_VOID = 0x01
ELEMENT_TYPE_STRING = 0x0E
ELEMENT_TYPE_PTR = 0x0F
ELEMENT_TYPE_BYREF = 0x10
ELEMENT_TYPE_VALUETYPE = 0x11
ELEMENT_TYPE_CLASS = 0x12
ELEMENT_TYPE_VAR = 0x13
ELEMENT_TYPE_ARRAY = 0x14
ELEMENT_TYPE_GENERICINST = 0x15
ELEMENT_TYPE_TYPEDBYREF = 0x16
ELEMENT_TYPE_FNPTR = 0x1B
ELEMENT_TYPE_OBJECT = 0x1C
ELEMENT_TYPE_SZARRAY = 0x1D
ELEMENT_TYPE_MVAR = 0x1E
ELEMENT_TYPE_CMOD_REQD = 0x1F
ELEMENT_TYPE_CMOD_OPT = 0x20
ELEMENT_TYPE_PINNED = 0x45
LOCAL_SIG = 0x07

TABLE_TYPEREF = 0x01
TABLE_TYPEDEF = 0x02
TABLE_TYPESPEC = 0x1B
_TYPE_DEF_OR_REF_TABLES = (TABLE_TYPEDEF, TABLE_TYPEREF, TABLE_TYPESPEC)

_PRIMITIVES: Dict[int, Tuple[str, SpecialType]] = {
    0x02: ("System.Boolean", SpecialType.BOOLEAN),
    0x03: ("System.Char", SpecialType.CHAR),
    0x04: ("System.SByte", SpecialType.SBYTE),
    0x05: ("System.Byte", SpecialType.BYTE),
    0x06: ("System.Int16", SpecialType.INT16),
    0x07: ("System.UInt16", SpecialType.UINT16),
    0x08: ("System.Int32", SpecialType.INT32),
    0x09: ("System.UInt32", SpecialType.UINT32),
    0x0A: ("System.Int64", SpecialType.INT64),
    0x0B: ("System.UInt64", SpecialType.UINT64),
    0x0C: ("System.Single", SpecialType.SINGLE),
    0x0D: ("System.Double", SpecialType.DOUBLE),
    0x18: ("System.IntPtr", SpecialType.INTPTR),
    0x19: ("System.UIntPtr", SpecialType.UINTPTR),
}

_WELL_KNOWN: Dict[str, SpecialType] = {name: special for name, special in _PRIMITIVES.values()}
_WELL_KNOWN.update(
    {
        "System.Object": SpecialType.OBJECT,
        "System.String": SpecialType.STRING,
        "System.Decimal": SpecialType.DECIMAL,
        "System.DateTime": SpecialType.DATETIME,
    }
)


@dataclass(frozen=True)
class TypeSymbol:
    name: str
    special_type: SpecialType = SpecialType.NONE
    kind: SymbolKind = SymbolKind.NAMED_TYPE
    is_reference_type: bool = False
    enum_underlying_type: Optional["TypeSymbol"] = None
    element_type: Optional["TypeSymbol"] = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class LocalConstantSymbol:
    name: str
    type: TypeSymbol
    value: ConstantValue
    dynamic_flags: Optional[Tuple[bool, ...]] = None


@dataclass(frozen=True)
class LocalVariableSymbol:
    name: Optional[str]
    slot: int
    type: TypeSymbol
    is_pinned: bool = False
    is_byref: bool = False
    dynamic_flags: Optional[Tuple[bool, ...]] = None


STRING_TYPE = TypeSymbol("System.String", SpecialType.STRING, is_reference_type=True)
OBJECT_TYPE = TypeSymbol("System.Object", SpecialType.OBJECT, is_reference_type=True)


def error_type(name: str) -> TypeSymbol:
    return TypeSymbol(name, kind=SymbolKind.ERROR_TYPE)


class SignatureReader:
    """Cursor over a signature blob."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def read_byte(self) -> int:
        if self.offset >= len(self.data):
            raise BadImageFormatError("signature truncated")
        value = self.data[self.offset]
        self.offset += 1
        return value

    def peek_byte(self) -> int:
        if self.offset >= len(self.data):
            raise BadImageFormatError("signature truncated")
        return self.data[self.offset]

    def read_compressed_uint(self) -> int:
        first = self.read_byte()
        if first & 0x80 == 0:
            return first
        if first & 0xC0 == 0x80:
            return ((first & 0x3F) << 8) | self.read_byte()
        if first & 0xE0 == 0xC0:
            value = first & 0x1F
            for _ in range(3):
                value = (value << 8) | self.read_byte()
            return value
        raise BadImageFormatError(f"invalid compressed integer lead byte 0x{first:02X}")

    def read_type_handle(self) -> int:
        coded = self.read_compressed_uint()
        tag = coded & 0x3
        if tag >= len(_TYPE_DEF_OR_REF_TABLES):
            raise BadImageFormatError(f"invalid TypeDefOrRef tag {tag}")
        return (_TYPE_DEF_OR_REF_TABLES[tag] << 24) | (coded >> 2)


def _skip_custom_modifiers(reader: SignatureReader) -> None:
    while reader.remaining and reader.peek_byte() in (ELEMENT_TYPE_CMOD_REQD, ELEMENT_TYPE_CMOD_OPT):
        reader.read_byte()
        reader.read_type_handle()


def decode_type(reader: SignatureReader, types: Mapping[int, TypeSymbol]) -> TypeSymbol:
    _skip_custom_modifiers(reader)
    code = reader.read_byte()
    primitive = _PRIMITIVES.get(code)
    if primitive is not None:
        return TypeSymbol(primitive[0], primitive[1])
    if code == ELEMENT_TYPE_STRING:
        return STRING_TYPE
    if code == ELEMENT_TYPE_OBJECT:
        return OBJECT_TYPE
    if code == ELEMENT_TYPE_SZARRAY:
        element = decode_type(reader, types)
        return TypeSymbol(f"{element.name}[]", kind=SymbolKind.ARRAY_TYPE, is_reference_type=True, element_type=element)
    if code in (ELEMENT_TYPE_CLASS, ELEMENT_TYPE_VALUETYPE):
        token = reader.read_type_handle()
        resolved = types.get(token)
        if resolved is None:
            return error_type(f"<unresolved 0x{token:08X}>")
        return resolved
    if code in (
        ELEMENT_TYPE_VOID,
        ELEMENT_TYPE_PTR,
        ELEMENT_TYPE_VAR,
        ELEMENT_TYPE_ARRAY,
        ELEMENT_TYPE_GENERICINST,
        ELEMENT_TYPE_TYPEDBYREF,
        ELEMENT_TYPE_FNPTR,
        ELEMENT_TYPE_MVAR,
    ):
        raise UnsupportedSignatureContent(f"unsupported element type 0x{code:02X}")
    raise BadImageFormatError(f"invalid element type 0x{code:02X}")


def decode_local(reader: SignatureReader, types: Mapping[int, TypeSymbol]) -> LocalInfo[TypeSymbol]:
    _skip_custom_modifiers(reader)
    is_pinned = False
    is_byref = False
    if reader.peek_byte() == ELEMENT_TYPE_PINNED:
        reader.read_byte()
        is_pinned = True
    _skip_custom_modifiers(reader)
    if reader.peek_byte() == ELEMENT_TYPE_BYREF:
        reader.read_byte()
        is_byref = True
    return LocalInfo(decode_type(reader, types), is_pinned=is_pinned, is_byref=is_byref)


def decode_local_signature(blob: bytes, types: Optional[Mapping[int, TypeSymbol]] = None) -> List[LocalInfo[TypeSymbol]]:
    """Decode a LOCAL_SIG blob into one LocalInfo per slot."""
    reader = SignatureReader(blob)
    header = reader.read_byte()
    if header != LOCAL_SIG:
        raise BadImageFormatError(f"expected local signature header, got 0x{header:02X}")
    count = reader.read_compressed_uint()
    return [decode_local(reader, types or {}) for _ in range(count)]


def _strip_assembly_qualification(type_name: str) -> str:
    depth = 0
    for index, ch in enumerate(type_name):
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == "," and depth == 0:
            return type_name[:index].strip()
    return type_name.strip()


@dataclass
class SignatureSymbolProvider(SymbolProvider[TypeSymbol, Any]):
    """Symbol provider backed by signature decoding and a type token table."""

    types: Dict[int, TypeSymbol] = field(default_factory=dict)
    named_types: Dict[str, TypeSymbol] = field(default_factory=dict)

    @classmethod
    def from_type_table(cls, table: Mapping[int, Mapping[str, Any]]) -> "SignatureSymbolProvider":
        """Build from ``{token: {"name", "value_type", "enum_underlying"}}`` entries."""
        provider = cls()
        for token, entry in table.items():
            name = str(entry.get("name") or f"<type 0x{token:08X}>")
            underlying_name = entry.get("enum_underlying")
            underlying = provider.get_type_symbol_for_serialized_type(underlying_name) if underlying_name else None
            symbol = TypeSymbol(
                name,
                is_reference_type=not (entry.get("value_type") or underlying is not None),
                enum_underlying_type=underlying,
            )
            provider.types[token] = symbol
            provider.named_types[name] = symbol
        return provider

    def decode_local_variable_type(self, signature: bytes) -> TypeSymbol:
        reader = SignatureReader(signature)
        info = decode_local(reader, self.types)
        if reader.remaining:
            raise BadImageFormatError(f"{reader.remaining} trailing bytes after local type")
        return info.type

    def decode_local_signature(self, blob: bytes) -> List[LocalInfo[TypeSymbol]]:
        return decode_local_signature(blob, self.types)

    def get_local_constant(self, name, type_symbol, value, dynamic_flags) -> LocalConstantSymbol:
        return LocalConstantSymbol(name=name, type=type_symbol, value=value, dynamic_flags=dynamic_flags)

    def get_local_variable(self, name, slot_index, info, dynamic_flags) -> LocalVariableSymbol:
        return LocalVariableSymbol(
            name=name,
            slot=slot_index,
            type=info.type,
            is_pinned=info.is_pinned,
            is_byref=info.is_byref,
            dynamic_flags=dynamic_flags,
        )

    def get_type_symbol_for_serialized_type(self, type_name: str) -> TypeSymbol:
        name = _strip_assembly_qualification(type_name)
        if not name:
            return error_type(type_name)
        known = self.named_types.get(name)
        if known is not None:
            return known
        special = _WELL_KNOWN.get(name)
        if special is not None:
            return TypeSymbol(
                name,
                special,
                is_reference_type=special in (SpecialType.OBJECT, SpecialType.STRING),
            )
        return TypeSymbol(name, is_reference_type=True)


__all__ = [
    "TypeSymbol",
    "LocalConstantSymbol",
    "LocalVariableSymbol",
    "SignatureReader",
    "SignatureSymbolProvider",
    "decode_type",
    "decode_local",
    "decode_local_signature",
    "error_type",
]

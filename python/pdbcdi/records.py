"""Decoded debug-info records shared by the pdbcdi decoders."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from .assembly_identity import AssemblyIdentity


class ImportTargetKind(IntEnum):
    NAMESPACE = 0
    TYPE = 1
    NAMESPACE_OR_TYPE = 2
    ASSEMBLY = 3
    XML_NAMESPACE = 4
    METHOD_TOKEN = 5
    CURRENT_NAMESPACE = 6
    DEFAULT_NAMESPACE = 7
    DEFUNCT = 8


class VBImportScopeKind(IntEnum):
    UNSPECIFIED = 0
    FILE = 1
    PROJECT = 2


@dataclass(frozen=True)
class ImportRecord:
    """One resolved import directive.

    ``target_type`` is set for C# type imports (the symbol provider's type
    symbol); every other targeted kind carries ``target_string``.
    """

    target_kind: ImportTargetKind
    alias: Optional[str] = None
    target_type: Any = None
    target_string: Optional[str] = None
    target_assembly: Optional[AssemblyIdentity] = None
    target_assembly_alias: Optional[str] = None

    def __post_init__(self) -> None:
        if self.target_type is not None and self.target_string is not None:
            raise ValueError("import record cannot target both a type and a string")


@dataclass(frozen=True)
class ExternAliasRecord:
    alias: str
    target_assembly: AssemblyIdentity


@dataclass(frozen=True)
class HoistedLocalScopeRecord:
    """Live IL range of a hoisted state machine local."""

    start_offset: int
    length: int

    @property
    def end_offset_exclusive(self) -> int:
        return self.start_offset + self.length


@dataclass(frozen=True)
class ILSpan:
    """Half-open IL offset range ``[start_offset, end_offset_exclusive)``."""

    start_offset: int
    end_offset_exclusive: int

    MAX_OFFSET = 0xFFFFFFFF

    def __post_init__(self) -> None:
        if self.start_offset < 0 or self.end_offset_exclusive < self.start_offset:
            raise ValueError(f"invalid IL span [{self.start_offset}, {self.end_offset_exclusive})")

    def contains(self, offset: int) -> bool:
        return self.start_offset <= offset < self.end_offset_exclusive

    @property
    def is_unbounded(self) -> bool:
        return self == ILSpan.MAX_VALUE

    def __str__(self) -> str:
        if self.is_unbounded:
            return "[0x0, max)"
        return f"[0x{self.start_offset:X}, 0x{self.end_offset_exclusive:X})"


ILSpan.MAX_VALUE = ILSpan(0, ILSpan.MAX_OFFSET)  # type: ignore[attr-defined]


__all__ = [
    "ImportTargetKind",
    "VBImportScopeKind",
    "ImportRecord",
    "ExternAliasRecord",
    "HoistedLocalScopeRecord",
    "ILSpan",
]

"""Custom debug info (CDI) blob reader.

A native PDB attaches one CDI blob per method.  The blob starts with a
4-byte global header (version, record count, padding) followed by records:

    +0  version   (u8)
    +1  kind      (u8)
    +2  padding   (u8)
    +3  alignment (u8)   honoured for EnC records only
    +4  size      (i32)  total record size, header included
    +8  body

All integers are little endian.  Container-level corruption raises
CustomDebugInfoError; individual bad entries inside a record body are
dropped and logged.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

CDI_VERSION = 4
GLOBAL_HEADER = struct.Struct("<BBxx")
RECORD_HEADER = struct.Struct("<BBxBi")
INT32 = struct.Struct("<i")
UINT16 = struct.Struct("<H")
HOISTED_SCOPE_ENTRY = struct.Struct("<ii")

DYNAMIC_FLAG_BYTES = 64
DYNAMIC_NAME_BYTES = 128
DYNAMIC_BUCKET = struct.Struct(f"<{DYNAMIC_FLAG_BYTES}sii{DYNAMIC_NAME_BYTES}s")
MAX_DYNAMIC_FLAGS = DYNAMIC_FLAG_BYTES


class CustomDebugInfoError(ValueError):
    """Raised when a CDI blob or record is structurally invalid."""


class CustomDebugInfoKind(IntEnum):
    USING_INFO = 0
    FORWARD_INFO = 1
    FORWARD_TO_MODULE_INFO = 2
    STATE_MACHINE_HOISTED_LOCAL_SCOPES = 3
    FORWARD_ITERATOR = 4
    DYNAMIC_LOCALS = 5
    EDIT_AND_CONTINUE_LOCAL_SLOT_MAP = 6
    EDIT_AND_CONTINUE_LAMBDA_MAP = 7
    TUPLE_ELEMENT_NAMES = 8


_ALIGNED_KINDS = {
    CustomDebugInfoKind.EDIT_AND_CONTINUE_LOCAL_SLOT_MAP,
    CustomDebugInfoKind.EDIT_AND_CONTINUE_LAMBDA_MAP,
}


@dataclass(frozen=True)
class CustomDebugInfoRecord:
    kind: int
    version: int
    data: bytes


@dataclass(frozen=True)
class DynamicLocalInfo:
    """One bucket of the dynamic locals record.

    ``slot_id`` 0 is shared by a local in slot 0 and every constant; -1 is
    assigned once a bucket has been attributed to a constant.
    """

    flag_count: int
    flags: int
    slot_id: int
    name: str


@dataclass(frozen=True)
class StateMachineHoistedLocalScope:
    start_offset: int
    end_offset: int


def iter_custom_debug_info_records(blob: bytes) -> Iterator[CustomDebugInfoRecord]:
    if len(blob) < GLOBAL_HEADER.size:
        raise CustomDebugInfoError("custom debug info shorter than its global header")
    version, _count = GLOBAL_HEADER.unpack_from(blob, 0)
    if version != CDI_VERSION:
        logger.debug("ignoring custom debug info with global version %d", version)
        return
    offset = GLOBAL_HEADER.size
    while offset <= len(blob) - RECORD_HEADER.size:
        rec_version, kind, alignment, size = RECORD_HEADER.unpack_from(blob, offset)
        offset += RECORD_HEADER.size
        if size < RECORD_HEADER.size:
            raise CustomDebugInfoError(f"record size {size} smaller than record header")
        if kind in _ALIGNED_KINDS:
            if alignment > 3:
                raise CustomDebugInfoError(f"invalid record alignment {alignment}")
        else:
            alignment = 0
        body_size = size - RECORD_HEADER.size
        if offset > len(blob) - body_size or alignment > body_size:
            raise CustomDebugInfoError(f"record of kind {kind} runs past the end of the blob")
        yield CustomDebugInfoRecord(kind=kind, version=rec_version, data=bytes(blob[offset : offset + body_size - alignment]))
        offset += body_size


def try_get_custom_debug_info_record(blob: Optional[bytes], kind: CustomDebugInfoKind) -> Optional[bytes]:
    """Return the body of the first record of ``kind`` or None."""
    if not blob:
        return None
    for record in iter_custom_debug_info_records(blob):
        if record.kind == kind:
            return record.data
    return None


def _read_int32(data: bytes, offset: int) -> int:
    if offset < 0 or offset + INT32.size > len(data):
        raise CustomDebugInfoError("read past the end of a custom debug info record")
    return INT32.unpack_from(data, offset)[0]


def decode_using_record(data: bytes) -> Tuple[int, ...]:
    """Group sizes of the C# using namespaces, one per nesting level."""
    if len(data) < UINT16.size:
        raise CustomDebugInfoError("using record too short")
    count = UINT16.unpack_from(data, 0)[0]
    end = UINT16.size * (count + 1)
    if end > len(data):
        raise CustomDebugInfoError("using record truncated")
    return tuple(UINT16.unpack_from(data, UINT16.size * (i + 1))[0] for i in range(count))


def decode_forward_record(data: bytes) -> int:
    return _read_int32(data, 0)


def decode_forward_to_module_record(data: bytes) -> int:
    return _read_int32(data, 0)


def decode_forward_iterator_record(data: bytes) -> str:
    """State machine type name (UTF-16LE, NUL terminated)."""
    return _decode_utf16z(data)


def decode_state_machine_hoisted_local_scopes_record(data: bytes) -> List[StateMachineHoistedLocalScope]:
    count = _read_int32(data, 0)
    if count < 0:
        raise CustomDebugInfoError(f"negative hoisted scope count {count}")
    scopes: List[StateMachineHoistedLocalScope] = []
    offset = INT32.size
    for index in range(count):
        if offset + HOISTED_SCOPE_ENTRY.size > len(data):
            logger.debug("hoisted scope record truncated at entry %d of %d", index, count)
            break
        start, end = HOISTED_SCOPE_ENTRY.unpack_from(data, offset)
        offset += HOISTED_SCOPE_ENTRY.size
        scopes.append(StateMachineHoistedLocalScope(start, end))
    return scopes


def decode_dynamic_locals_record(data: bytes) -> List[DynamicLocalInfo]:
    count = _read_int32(data, 0)
    if count < 0:
        raise CustomDebugInfoError(f"negative dynamic local count {count}")
    infos: List[DynamicLocalInfo] = []
    offset = INT32.size
    for index in range(count):
        if offset + DYNAMIC_BUCKET.size > len(data):
            logger.debug("dynamic locals record truncated at bucket %d of %d", index, count)
            break
        raw_flags, flag_count, slot_id, raw_name = DYNAMIC_BUCKET.unpack_from(data, offset)
        offset += DYNAMIC_BUCKET.size
        if not 0 <= flag_count <= MAX_DYNAMIC_FLAGS or slot_id < 0:
            logger.debug("dropping dynamic local bucket %d (flag count %d, slot %d)", index, flag_count, slot_id)
            continue
        flags = 0
        for bit, value in enumerate(raw_flags):
            if value:
                flags |= 1 << bit
        infos.append(DynamicLocalInfo(flag_count=flag_count, flags=flags, slot_id=slot_id, name=_decode_utf16z(raw_name)))
    return infos


def _decode_utf16z(raw: bytes) -> str:
    end = len(raw) - len(raw) % 2
    for pos in range(0, end, 2):
        if raw[pos] == 0 and raw[pos + 1] == 0:
            end = pos
            break
    return raw[:end].decode("utf-16-le", errors="replace")


__all__ = [
    "CDI_VERSION",
    "CustomDebugInfoError",
    "CustomDebugInfoKind",
    "CustomDebugInfoRecord",
    "DynamicLocalInfo",
    "StateMachineHoistedLocalScope",
    "iter_custom_debug_info_records",
    "try_get_custom_debug_info_record",
    "decode_using_record",
    "decode_forward_record",
    "decode_forward_to_module_record",
    "decode_forward_iterator_record",
    "decode_state_machine_hoisted_local_scopes_record",
    "decode_dynamic_locals_record",
]

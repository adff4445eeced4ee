"""Helpers that build custom debug info blobs for tests."""

from __future__ import annotations

import struct
from typing import Iterable, Sequence, Tuple


def record(kind: int, body: bytes, *, version: int = 4, alignment: int = 0) -> bytes:
    return struct.pack("<BBxBi", version, kind, alignment, 8 + len(body)) + body


def blob(*records: bytes, version: int = 4) -> bytes:
    return struct.pack("<BBxx", version, len(records)) + b"".join(records)


def using_record(*group_sizes: int) -> bytes:
    body = struct.pack("<H", len(group_sizes)) + b"".join(struct.pack("<H", size) for size in group_sizes)
    if len(body) % 4:
        body += b"\x00" * (4 - len(body) % 4)
    return record(0, body)


def forward_record(token: int) -> bytes:
    return record(1, struct.pack("<i", token))


def forward_to_module_record(token: int) -> bytes:
    return record(2, struct.pack("<i", token))


def hoisted_record(scopes: Sequence[Tuple[int, int]]) -> bytes:
    body = struct.pack("<i", len(scopes)) + b"".join(struct.pack("<ii", start, end) for start, end in scopes)
    return record(3, body)


def dynamic_bucket(name: str, flags: Iterable[bool], slot: int, *, flag_count: int = None) -> bytes:
    flag_list = list(flags)
    raw_flags = bytes(1 if flag else 0 for flag in flag_list).ljust(64, b"\x00")
    raw_name = name.encode("utf-16-le").ljust(128, b"\x00")
    count = len(flag_list) if flag_count is None else flag_count
    return struct.pack("<64sii128s", raw_flags, count, slot, raw_name)


def dynamic_record(*buckets: bytes) -> bytes:
    return record(5, struct.pack("<i", len(buckets)) + b"".join(buckets))

"""JSON-backed symbol reader.

Loads a PDB dump describing methods, their custom debug info and scope
trees, and answers the reader queries ``read_method_debug_info`` makes::

    {
      "methods": [
        {
          "token": "0x06000001",
          "version": 1,
          "custom_debug_info": "04010000...",
          "import_strings": ["USystem", "TSystem.Math"],
          "local_signature": "0702080e",
          "root_scope": {
            "start": 0, "end": 32,
            "locals": [{"name": "x", "slot": 0}],
            "constants": [{"name": "C", "value": 1, "signature": "08"}],
            "children": []
          }
        }
      ],
      "types": {"0x02000002": {"name": "Demo.Color", "enum_underlying": "System.Int32"}},
      "portable_metadata": null
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .scopes import SymConstant, SymLocal, SymScope


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 0)
    raise ValueError(f"expected integer, got {value!r}")


def _parse_hex(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected hex string, got {value!r}")
    return bytes.fromhex(value)


def _parse_scope(entry: Mapping[str, Any]) -> SymScope:
    locals_ = tuple(
        SymLocal(
            name=str(item.get("name") or ""),
            slot=_parse_int(item.get("slot", 0)),
            attributes=_parse_int(item.get("attributes", 0)),
        )
        for item in entry.get("locals") or []
    )
    constants = tuple(
        SymConstant(
            name=str(item.get("name") or ""),
            value=item.get("value"),
            signature=_parse_hex(item.get("signature")) or b"",
        )
        for item in entry.get("constants") or []
    )
    children = tuple(_parse_scope(child) for child in entry.get("children") or [])
    return SymScope(
        start_offset=_parse_int(entry.get("start", 0)),
        end_offset=_parse_int(entry.get("end", 0)),
        locals=locals_,
        constants=constants,
        children=children,
    )


@dataclass(frozen=True)
class SymMethod:
    token: int
    version: int
    root_scope: Optional[SymScope] = None
    import_strings: Optional[Tuple[str, ...]] = None
    custom_debug_info: Optional[bytes] = None
    local_signature: Optional[bytes] = None

    def get_import_strings(self) -> Optional[Tuple[str, ...]]:
        return self.import_strings


@dataclass
class JsonSymReader:
    """In-memory reader over a PDB dump."""

    methods: Dict[Tuple[int, int], SymMethod] = field(default_factory=dict)
    portable_metadata: Optional[bytes] = None
    type_table: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    path: Optional[Path] = None

    @classmethod
    def from_file(cls, path: Path | str) -> "JsonSymReader":
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        reader = cls.from_dict(data)
        reader.path = path
        return reader

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JsonSymReader":
        reader = cls(portable_metadata=_parse_hex(data.get("portable_metadata")))
        for token, entry in (data.get("types") or {}).items():
            reader.type_table[_parse_int(token)] = dict(entry)
        for entry in data.get("methods") or []:
            reader.add_method(_parse_method(entry))
        return reader

    def add_method(self, method: SymMethod) -> None:
        self.methods[(method.token, method.version)] = method

    def get_method_by_version(self, token: int, version: int) -> Optional[SymMethod]:
        return self.methods.get((token, version))

    def get_custom_debug_info_bytes(self, token: int, version: int) -> Optional[bytes]:
        method = self.get_method_by_version(token, version)
        return method.custom_debug_info if method is not None else None

    def get_portable_debug_metadata(self) -> Optional[bytes]:
        return self.portable_metadata

    def list_methods(self) -> List[SymMethod]:
        return sorted(self.methods.values(), key=lambda m: (m.token, m.version))


def _parse_method(entry: Mapping[str, Any]) -> SymMethod:
    root = entry.get("root_scope")
    imports: Optional[Sequence[str]] = entry.get("import_strings")
    return SymMethod(
        token=_parse_int(entry["token"]),
        version=_parse_int(entry.get("version", 1)),
        root_scope=_parse_scope(root) if root is not None else None,
        import_strings=tuple(str(s) for s in imports) if imports is not None else None,
        custom_debug_info=_parse_hex(entry.get("custom_debug_info")),
        local_signature=_parse_hex(entry.get("local_signature")),
    )


__all__ = ["SymMethod", "JsonSymReader"]

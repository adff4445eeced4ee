"""Output helpers for the pdbcdi inspector."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .constants import ConstantValue
from .context import InspectorContext
from .method_info import MethodDebugInfo
from .records import ExternAliasRecord, ImportRecord


def _json_dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, default=str)


def emit_result(ctx: InspectorContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit a successful command result."""
    if ctx.json_output:
        payload: Dict[str, Any] = {"status": "ok"}
        if data is not None:
            payload["result"] = data
        else:
            payload["message"] = message
        print(_json_dump(payload))
    else:
        print(message)


def emit_error(ctx: InspectorContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit an error message respecting JSON mode."""
    payload: Dict[str, Any] = {"status": "error", "error": message}
    if data:
        payload["details"] = dict(data)
    if ctx.json_output:
        print(_json_dump(payload))
    else:
        print(f"error: {message}")


def _flags_text(flags: Optional[Sequence[bool]]) -> str:
    if flags is None:
        return ""
    return "".join("1" if flag else "0" for flag in flags)


def import_to_dict(record: ImportRecord) -> Dict[str, Any]:
    target = record.target_string if record.target_type is None else str(record.target_type)
    return {
        "kind": record.target_kind.name,
        "alias": record.alias,
        "target": target,
        "extern_alias": record.target_assembly_alias,
    }


def extern_alias_to_dict(record: ExternAliasRecord) -> Dict[str, Any]:
    return {"alias": record.alias, "assembly": record.target_assembly.display_name}


def _constant_text(value: ConstantValue) -> str:
    return "null" if value.is_null else repr(value.value)


def method_info_to_dict(info: MethodDebugInfo) -> Dict[str, Any]:
    return {
        "reuse_span": [info.reuse_span.start_offset, info.reuse_span.end_offset_exclusive],
        "default_namespace": info.default_namespace_name,
        "import_groups": [[import_to_dict(record) for record in group] for group in info.import_record_groups],
        "extern_aliases": [extern_alias_to_dict(record) for record in info.extern_alias_records],
        "hoisted_scopes": [[scope.start_offset, scope.length] for scope in info.hoisted_local_scope_records],
        "local_names": list(info.local_variable_names),
        "constants": [
            {
                "name": constant.name,
                "type": str(constant.type),
                "value": _constant_text(constant.value),
                "dynamic": _flags_text(constant.dynamic_flags) or None,
            }
            for constant in info.local_constants
        ],
        "dynamic_slots": {str(slot): _flags_text(flags) for slot, flags in info.dynamic_local_map.items()},
        "dynamic_constants": {name: _flags_text(flags) for name, flags in info.dynamic_local_constant_map.items()},
    }


def render_import_groups(groups: Iterable[Iterable[ImportRecord]], *, labels: Optional[List[str]] = None) -> None:
    for index, group in enumerate(groups):
        label = labels[index] if labels and index < len(labels) else f"group {index}"
        records = list(group)
        print(f"  {label}:")
        if not records:
            print("    (none)")
            continue
        for record in records:
            entry = import_to_dict(record)
            alias = f"{entry['alias']} = " if entry["alias"] else ""
            extern = f" (extern {entry['extern_alias']})" if entry["extern_alias"] else ""
            print(f"    {entry['kind']:<18} {alias}{entry['target'] or ''}{extern}")


def render_method_info(info: MethodDebugInfo) -> None:
    print(f"  reuse span : {info.reuse_span}")
    if info.default_namespace_name:
        print(f"  default ns : {info.default_namespace_name}")
    if info.hoisted_local_scope_records:
        scopes = ", ".join(f"0x{s.start_offset:X}+{s.length}" for s in info.hoisted_local_scope_records)
        print(f"  hoisted    : {scopes}")
    for record in info.extern_alias_records:
        print(f"  extern     : {record.alias} -> {record.target_assembly.display_name}")
    names = ", ".join(name or "-" for name in info.local_variable_names)
    print(f"  locals     : {names or '(none)'}")
    for constant in info.local_constants:
        dynamic = _flags_text(constant.dynamic_flags)
        suffix = f"  dynamic={dynamic}" if dynamic else ""
        print(f"  const      : {constant.type} {constant.name} = {_constant_text(constant.value)}{suffix}")


__all__ = [
    "emit_result",
    "emit_error",
    "import_to_dict",
    "extern_alias_to_dict",
    "method_info_to_dict",
    "render_import_groups",
    "render_method_info",
]

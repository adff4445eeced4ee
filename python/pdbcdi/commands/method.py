"""Method debug info commands (method, imports, locals)."""

from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

from .base import Command
from ..context import InspectorContext
from ..method_info import MethodDebugInfo
from ..output import (
    emit_error,
    emit_result,
    extern_alias_to_dict,
    import_to_dict,
    method_info_to_dict,
    render_import_groups,
    render_method_info,
)
from ..parser import parse_number


def _build_parser(prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, add_help=False)
    parser.add_argument("token", type=parse_number, help="Method token (e.g. 0x06000001)")
    parser.add_argument("offset", type=parse_number, nargs="?", default=0, help="IL offset (default 0)")
    parser.add_argument("--version", type=parse_number, default=1, help="Method version (default 1)")
    dialect = parser.add_mutually_exclusive_group()
    dialect.add_argument("--vb", dest="visual_basic", action="store_true", default=None, help="Decode as Visual Basic")
    dialect.add_argument("--cs", dest="visual_basic", action="store_false", help="Decode as C#")
    return parser


class _MethodQueryCommand(Command):
    def __init__(self, name: str, description: str, aliases=()) -> None:
        super().__init__(name, description, aliases=aliases)
        self._parser = _build_parser(name)

    def run(self, ctx: InspectorContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        try:
            info = ctx.query(args.token, args.version, args.offset, visual_basic=args.visual_basic)
        except RuntimeError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        header = f"method 0x{args.token:08X} v{args.version} @ IL_{args.offset:04X}"
        return self.render(ctx, args, info, header)

    def render(self, ctx: InspectorContext, args: argparse.Namespace, info: MethodDebugInfo, header: str) -> int:
        raise NotImplementedError


class MethodCommand(_MethodQueryCommand):
    def __init__(self) -> None:
        super().__init__("method", "Show decoded debug info for a method", aliases=("m",))

    def render(self, ctx, args, info, header) -> int:
        if ctx.json_output:
            emit_result(ctx, message=header, data=method_info_to_dict(info))
            return 0
        print(header)
        render_method_info(info)
        return 0


class ImportsCommand(_MethodQueryCommand):
    def __init__(self) -> None:
        super().__init__("imports", "Show import groups and extern aliases of a method")

    def render(self, ctx, args, info, header) -> int:
        visual_basic = ctx.visual_basic if args.visual_basic is None else args.visual_basic
        if ctx.json_output:
            data: Dict[str, Any] = {
                "import_groups": [[import_to_dict(r) for r in group] for group in info.import_record_groups],
                "extern_aliases": [extern_alias_to_dict(r) for r in info.extern_alias_records],
                "default_namespace": info.default_namespace_name,
            }
            emit_result(ctx, message=header, data=data)
            return 0
        print(header)
        labels: Optional[List[str]] = ["file", "project"] if visual_basic else None
        if not info.import_record_groups:
            print("  (no imports)")
        render_import_groups(info.import_record_groups, labels=labels)
        if info.default_namespace_name:
            print(f"  default namespace: {info.default_namespace_name}")
        for record in info.extern_alias_records:
            print(f"  extern alias {record.alias} = {record.target_assembly.display_name}")
        return 0


class LocalsCommand(_MethodQueryCommand):
    def __init__(self) -> None:
        super().__init__("locals", "Show local and constant symbols of a method", aliases=("l",))

    def render(self, ctx, args, info, header) -> int:
        locals_ = ctx.local_symbols(args.token, args.version, info)
        rows = [
            {
                "slot": local.slot,
                "name": local.name,
                "type": str(local.type),
                "pinned": local.is_pinned,
                "byref": local.is_byref,
                "dynamic": "".join("1" if f else "0" for f in local.dynamic_flags) if local.dynamic_flags else None,
            }
            for local in locals_
        ]
        constants = method_info_to_dict(info)["constants"]
        if ctx.json_output:
            emit_result(ctx, message=header, data={"locals": rows, "constants": constants})
            return 0
        print(header)
        if not rows and not constants:
            print("  (no locals)")
        for row in rows:
            flags = [flag for flag in ("pinned", "byref") if row[flag]]
            if row["dynamic"]:
                flags.append(f"dynamic={row['dynamic']}")
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            print(f"  [{row['slot']}] {row['type']} {row['name'] or '<unnamed>'}{suffix}")
        for constant in constants:
            suffix = f"  [dynamic={constant['dynamic']}]" if constant["dynamic"] else ""
            print(f"  const {constant['type']} {constant['name']} = {constant['value']}{suffix}")
        return 0


__all__ = ["MethodCommand", "ImportsCommand", "LocalsCommand"]

"""Load command."""

from __future__ import annotations

import argparse
from typing import List

from .base import Command
from ..context import InspectorContext
from ..output import emit_error, emit_result


class LoadCommand(Command):
    def __init__(self) -> None:
        super().__init__("load", "Load a PDB dump (JSON) or show the loaded one")
        parser = argparse.ArgumentParser(prog="load", add_help=False)
        parser.add_argument("path", nargs="?", help="Path to the PDB dump")
        self._parser = parser

    def run(self, ctx: InspectorContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        if not args.path:
            path = str(ctx.pdb_path) if ctx.pdb_path else None
            emit_result(ctx, message=f"PDB dump: {path or '(unset)'}", data={"pdb_path": path})
            return 0
        try:
            reader = ctx.load_pdb(args.path)
        except (OSError, ValueError) as exc:
            emit_error(ctx, message=f"failed to load PDB dump: {exc}")
            return 1
        data = {
            "pdb_path": str(ctx.pdb_path),
            "methods": [f"0x{m.token:08X}/{m.version}" for m in reader.list_methods()],
        }
        emit_result(ctx, message=f"Loaded {len(reader.methods)} methods from {ctx.pdb_path}", data=data)
        return 0

"""pdbcdi CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

from .commands import CommandRegistry, build_registry
from .context import InspectorContext
from .parser import split_command
from .repl import InspectorREPL

LOG = logging.getLogger("pdbcdi.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect method debug info in native PDB dumps")
    parser.add_argument("--pdb", type=Path, help="PDB dump (JSON) to load at startup")
    parser.add_argument("--vb", action="store_true", help="Decode methods as Visual Basic by default")
    parser.add_argument("--json", action="store_true", help="Emit JSON output when supported")
    parser.add_argument("--log-level", default=os.environ.get("PDBCDI_LOG", "INFO"), help="Logging level (default INFO)")
    parser.add_argument(
        "-c",
        "--command",
        help="Execute a single command non-interactively (quote the command string)",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".pdbcdi-history",
        help="Path to command history file",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    ctx = InspectorContext(json_output=args.json, visual_basic=args.vb)
    if args.pdb is not None:
        try:
            ctx.load_pdb(args.pdb)
        except (OSError, ValueError) as exc:
            LOG.error("failed to load %s: %s", args.pdb, exc)
            return 1
    registry = build_registry()
    if args.command:
        return _run_single_command(ctx, registry, args.command)
    repl = InspectorREPL(ctx, registry, history_path=args.history)
    try:
        return repl.run()
    except SystemExit as exc:
        return int(exc.code or 0)
    except KeyboardInterrupt:
        print()
        return 0


def _run_single_command(ctx: InspectorContext, registry: CommandRegistry, command_line: str) -> int:
    argv = split_command(command_line)
    if not argv:
        return 0
    cmd_name, *cmd_args = argv
    if cmd_name.startswith("#parse-error"):
        print(f"Parse error: {' '.join(cmd_args)}")
        return 1
    cmd_name = ctx.resolve_alias(cmd_name)
    command = registry.get(cmd_name)
    if not command:
        print(f"Unknown command: {cmd_name}")
        return 1
    try:
        return command.run(ctx, cmd_args)
    except SystemExit as exc:
        return int(exc.code or 0)
    except Exception as exc:
        LOG.exception("command failed")
        print(f"Command '{cmd_name}' failed: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

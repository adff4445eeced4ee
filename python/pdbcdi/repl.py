"""Interactive REPL for the pdbcdi inspector."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from .commands import CommandRegistry
from .completion import InspectorCompleter
from .context import InspectorContext
from .parser import split_command

LOGGER = logging.getLogger("pdbcdi.repl")


class InspectorREPL:
    """prompt_toolkit REPL dispatching to the command registry."""

    def __init__(
        self,
        ctx: InspectorContext,
        registry: CommandRegistry,
        *,
        history_path: Optional[Path] = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.history_path = history_path

    def _build_session(self) -> PromptSession:
        history = InMemoryHistory()
        if self.history_path is not None:
            try:
                self.history_path.parent.mkdir(parents=True, exist_ok=True)
                history = FileHistory(str(self.history_path))
            except OSError as exc:
                LOGGER.warning("history file %s unavailable: %s", self.history_path, exc)
        completer = InspectorCompleter(self.ctx, self.registry)
        return PromptSession("pdbcdi> ", history=history, completer=completer, complete_while_typing=True)

    def run(self) -> int:
        session = self._build_session()
        buffer: List[str] = []
        while True:
            try:
                with patch_stdout():
                    line = session.prompt()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if self._handle_multiline(buffer, line):
                continue
            payload = " ".join(buffer) if buffer else line
            buffer.clear()
            self._dispatch(payload)

    def _dispatch(self, line: str) -> int:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return 0
        argv = split_command(stripped)
        if not argv:
            return 0
        cmd_name, *cmd_args = argv
        if cmd_name.startswith("#parse-error"):
            print(f"Parse error: {cmd_args[-1] if cmd_args else cmd_name}")
            return 1
        cmd_name = self.ctx.resolve_alias(cmd_name)
        command = self.registry.get(cmd_name)
        if not command:
            print(f"Unknown command: {cmd_name}")
            return 1
        try:
            return command.run(self.ctx, cmd_args)
        except SystemExit:
            raise
        except Exception as exc:
            LOGGER.exception("command failed")
            print(f"Command '{cmd_name}' failed: {exc}")
            return 1

    def _handle_multiline(self, buffer: List[str], line: str) -> bool:
        stripped = line.rstrip()
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1])
            return True
        if buffer:
            buffer.append(stripped)
        return False


__all__ = ["InspectorREPL"]

"""prompt_toolkit completer for the pdbcdi inspector."""

from __future__ import annotations

import shlex
from typing import Iterable, List

from prompt_toolkit.completion import Completer, Completion, PathCompleter
from prompt_toolkit.document import Document

from .commands import CommandRegistry
from .context import InspectorContext

PATH_COMMANDS = {"load"}
METHOD_COMMANDS = {"method", "m", "imports", "locals", "l"}


def _normalise_tokens(text: str) -> List[str]:
    if not text:
        return []
    try:
        tokens = shlex.split(text, posix=True)
        trailing = text[-1].isspace()
    except ValueError:
        tokens = text.strip().split()
        trailing = text.endswith((" ", "\t"))
    if trailing:
        tokens.append("")
    return tokens


class InspectorCompleter(Completer):
    """Completes command names, method tokens and dump paths."""

    def __init__(self, ctx: InspectorContext, registry: CommandRegistry) -> None:
        self.ctx = ctx
        self.registry = registry
        self._path = PathCompleter(expanduser=True)

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        tokens = _normalise_tokens(document.text_before_cursor)
        if len(tokens) <= 1:
            prefix = tokens[0] if tokens else ""
            yield from self._command_completions(prefix)
            return
        command = self.ctx.resolve_alias(tokens[0])
        prefix = tokens[-1]
        if command in PATH_COMMANDS and len(tokens) == 2:
            sub_document = Document(prefix, cursor_position=len(prefix))
            yield from self._path.get_completions(sub_document, complete_event)
            return
        if command in METHOD_COMMANDS and len(tokens) == 2:
            yield from self._token_completions(prefix)

    def _command_completions(self, prefix: str) -> Iterable[Completion]:
        for command in self.registry.list_commands():
            for name in (command.name, *command.aliases):
                if name.startswith(prefix):
                    yield Completion(name, start_position=-len(prefix), display_meta=command.description)

    def _token_completions(self, prefix: str) -> Iterable[Completion]:
        try:
            reader = self.ctx.ensure_reader()
        except RuntimeError:
            return
        seen = set()
        for method in reader.list_methods():
            text = f"0x{method.token:08X}"
            if text in seen or not text.lower().startswith(prefix.lower()):
                continue
            seen.add(text)
            yield Completion(text, start_position=-len(prefix))


__all__ = ["InspectorCompleter"]

"""Command base classes for the pdbcdi inspector."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from ..context import InspectorContext


@dataclass
class Command:
    """Abstract command description."""

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)

    def run(self, ctx: InspectorContext, argv: List[str]) -> int:
        raise NotImplementedError("Command must implement run()")

    def format_help(self) -> str:
        return f"{self.name:<12} {self.description}"

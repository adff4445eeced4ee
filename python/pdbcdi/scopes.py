"""Lexical scope model and traversal helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

LOCAL_DEBUGGER_HIDDEN = 0x1


@dataclass(frozen=True)
class SymLocal:
    name: str
    slot: int
    attributes: int = 0

    @property
    def is_hidden(self) -> bool:
        return bool(self.attributes & LOCAL_DEBUGGER_HIDDEN)


@dataclass(frozen=True)
class SymConstant:
    """A constant declared in a scope: raw PDB value plus type signature."""

    name: str
    value: Any
    signature: bytes = b""


@dataclass(frozen=True)
class SymScope:
    """Scope as reported by the PDB; ``end_offset`` inclusivity is dialect specific."""

    start_offset: int
    end_offset: int
    locals: Tuple[SymLocal, ...] = ()
    constants: Tuple[SymConstant, ...] = ()
    children: Tuple["SymScope", ...] = field(default=(), repr=False)

    def contains(self, offset: int, *, is_end_inclusive: bool) -> bool:
        if offset < self.start_offset:
            return False
        if is_end_inclusive:
            return offset <= self.end_offset
        return offset < self.end_offset


def get_all_scopes(
    root: Optional[SymScope],
    il_offset: int,
    *,
    is_end_inclusive: bool,
) -> Tuple[List[SymScope], List[SymScope]]:
    """Walk the scope tree and return ``(all_scopes, containing_scopes)``.

    The walk is depth first with children visited last-to-first, the order the
    native reader reports them in.  A negative ``il_offset`` collects no
    containing scopes.
    """
    all_scopes: List[SymScope] = []
    containing: List[SymScope] = []
    if root is None:
        return all_scopes, containing
    stack = [root]
    while stack:
        scope = stack.pop()
        all_scopes.append(scope)
        if il_offset >= 0 and scope.contains(il_offset, is_end_inclusive=is_end_inclusive):
            containing.append(scope)
        stack.extend(scope.children)
    return all_scopes, containing


def get_local_names(scopes: Sequence[SymScope]) -> List[Optional[str]]:
    """Local names indexed by slot; unnamed slots hold None."""
    names: List[Optional[str]] = []
    for scope in scopes:
        for local in scope.locals:
            if local.is_hidden or local.slot < 0:
                continue
            while len(names) <= local.slot:
                names.append(None)
            names[local.slot] = local.name
    return names


__all__ = [
    "LOCAL_DEBUGGER_HIDDEN",
    "SymLocal",
    "SymConstant",
    "SymScope",
    "get_all_scopes",
    "get_local_names",
]

"""Reuse span calculation.

A decoded MethodDebugInfo stays valid while the instruction pointer moves
inside the span returned here; leaving it means a scope boundary was
crossed and the debug info must be read again.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .records import ILSpan
from .scopes import SymScope


def calculate_reuse_span(il_offset: int, initial_span: ILSpan, scopes: Iterable[ILSpan]) -> ILSpan:
    if il_offset < 0:
        raise ValueError("IL offset must be non-negative")
    start = initial_span.start_offset
    end = initial_span.end_offset_exclusive
    for scope in scopes:
        if il_offset < scope.start_offset:
            end = min(end, scope.start_offset)
        elif il_offset >= scope.end_offset_exclusive:
            start = max(start, scope.end_offset_exclusive)
        else:
            start = max(start, scope.start_offset)
            end = min(end, scope.end_offset_exclusive)
    return ILSpan(start, end)


def scope_spans(scopes: Sequence[SymScope], *, is_end_inclusive: bool) -> list[ILSpan]:
    bump = 1 if is_end_inclusive else 0
    spans = []
    for scope in scopes:
        end = scope.end_offset + bump
        if 0 <= scope.start_offset <= end:
            spans.append(ILSpan(scope.start_offset, end))
    return spans


def get_reuse_span(scopes: Sequence[SymScope], il_offset: int, *, is_end_inclusive: bool) -> ILSpan:
    spans = scope_spans(scopes, is_end_inclusive=is_end_inclusive)
    if il_offset < 0 or not any(span.contains(il_offset) for span in spans):
        # outside the method's scopes: nothing to bound against
        return ILSpan.MAX_VALUE
    return calculate_reuse_span(il_offset, ILSpan.MAX_VALUE, spans)


__all__ = ["calculate_reuse_span", "scope_spans", "get_reuse_span"]

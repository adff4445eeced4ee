"""Tests for the method debug info cache."""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT / "python"))

from pdbcdi.cache import MethodDebugInfoCache
from pdbcdi.method_info import MethodDebugInfo
from pdbcdi.records import ILSpan


class CountingLoader:
    def __init__(self, span: ILSpan) -> None:
        self.span = span
        self.calls = []

    def __call__(self, reader, provider, token, version, il_offset, is_visual_basic):
        self.calls.append((token, version, il_offset, is_visual_basic))
        return MethodDebugInfo(reuse_span=self.span)


def test_cache_reuses_info_inside_span():
    loader = CountingLoader(ILSpan(10, 20))
    cache = MethodDebugInfoCache(reader=object(), loader=loader)
    first = cache.query(1, 1, 12)
    second = cache.query(1, 1, 19)
    assert first is second
    assert len(loader.calls) == 1
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1


def test_cache_rereads_outside_span():
    loader = CountingLoader(ILSpan(10, 20))
    cache = MethodDebugInfoCache(reader=object(), loader=loader)
    cache.query(1, 1, 12)
    cache.query(1, 1, 20)
    assert [call[2] for call in loader.calls] == [12, 20]


def test_cache_keys_on_version_and_dialect():
    loader = CountingLoader(ILSpan.MAX_VALUE)
    cache = MethodDebugInfoCache(reader=object(), loader=loader)
    cache.query(1, 1, 0)
    cache.query(1, 2, 0)
    cache.query(1, 1, 0, is_visual_basic=True)
    cache.query(1, 1, 5)
    assert len(loader.calls) == 3
    assert cache.lookup(1, 2) is not None


def test_cache_invalidation():
    loader = CountingLoader(ILSpan.MAX_VALUE)
    cache = MethodDebugInfoCache(reader=object(), loader=loader)
    cache.query(1, 1, 0)
    cache.query(2, 1, 0)
    cache.invalidate_method(1)
    assert cache.lookup(1, 1) is None
    assert cache.lookup(2, 1) is not None
    cache.clear()
    assert cache.lookup(2, 1) is None

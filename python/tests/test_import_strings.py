"""Tests for the C# and Visual Basic import string dialects."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT / "python"))
sys.path.append(str(Path(__file__).resolve().parent))

from cdi_builders import blob, forward_record, forward_to_module_record, using_record
from pdbcdi.cdi import CustomDebugInfoError
from pdbcdi.import_strings import (
    Dialect,
    ImportStringError,
    ParsedImport,
    format_csharp_import_string,
    get_csharp_grouped_import_strings,
    get_import_string_parser,
    get_visual_basic_import_strings,
    parse_csharp_import_string,
    parse_visual_basic_import_string,
)
from pdbcdi.records import ImportTargetKind, VBImportScopeKind


@pytest.mark.parametrize(
    "text, expected",
    [
        ("USystem", ParsedImport(ImportTargetKind.NAMESPACE, target="System")),
        ("U", ParsedImport(ImportTargetKind.NAMESPACE, target="")),
        ("ESystem.IO ext", ParsedImport(ImportTargetKind.NAMESPACE, extern_alias="ext", target="System.IO")),
        ("TSystem.Math", ParsedImport(ImportTargetKind.TYPE, target="System.Math")),
        ("AIO USystem.IO", ParsedImport(ImportTargetKind.NAMESPACE, alias="IO", target="System.IO")),
        ("AM TSystem.Math", ParsedImport(ImportTargetKind.TYPE, alias="M", target="System.Math")),
        (
            "AL ESystem.Linq ext",
            ParsedImport(ImportTargetKind.NAMESPACE, alias="L", extern_alias="ext", target="System.Linq"),
        ),
        ("Xext", ParsedImport(ImportTargetKind.ASSEMBLY, alias="ext")),
        ("Zext Lib, Version=1.0.0.0", ParsedImport(ImportTargetKind.ASSEMBLY, alias="ext", target="Lib, Version=1.0.0.0")),
    ],
)
def test_parse_csharp_import_string(text, expected):
    assert parse_csharp_import_string(text) == expected


@pytest.mark.parametrize("text", ["", "Q", "ESystem", "ESystem ", "Aalias", "Aalias QFoo", "Zext"])
def test_parse_csharp_import_string_rejects_malformed(text):
    with pytest.raises(ImportStringError):
        parse_csharp_import_string(text)


@pytest.mark.parametrize("text", ["USystem", "ESystem.IO ext", "TSystem.Math", "AIO USystem.IO", "AL ESystem.Linq ext", "Xext"])
def test_csharp_import_string_reencodes(text):
    assert format_csharp_import_string(parse_csharp_import_string(text)) == text


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", ParsedImport(ImportTargetKind.CURRENT_NAMESPACE, target="")),
        ("Foo.Bar", ParsedImport(ImportTargetKind.CURRENT_NAMESPACE, target="Foo.Bar")),
        ("&Defunct", ParsedImport(ImportTargetKind.DEFUNCT, target="&Defunct")),
        ("*Root", ParsedImport(ImportTargetKind.DEFAULT_NAMESPACE, target="Root")),
        ("@F:System", ParsedImport(ImportTargetKind.NAMESPACE, target="System", scope=VBImportScopeKind.FILE)),
        (
            "@PA:IO=System.IO",
            ParsedImport(ImportTargetKind.NAMESPACE_OR_TYPE, alias="IO", target="System.IO", scope=VBImportScopeKind.PROJECT),
        ),
        (
            "@FX:ns=http://example.org",
            ParsedImport(ImportTargetKind.XML_NAMESPACE, alias="ns", target="http://example.org", scope=VBImportScopeKind.FILE),
        ),
        ("@T:System.Math", ParsedImport(ImportTargetKind.TYPE, target="System.Math")),
        ("@123", ParsedImport(ImportTargetKind.METHOD_TOKEN, target="123")),
    ],
)
def test_parse_visual_basic_import_string(text, expected):
    assert parse_visual_basic_import_string(text) == expected


@pytest.mark.parametrize("text", ["@", "@F", "@PA", "@PA:IO", "@FXns=x"])
def test_parse_visual_basic_import_string_rejects_malformed(text):
    with pytest.raises(ImportStringError):
        parse_visual_basic_import_string(text)


def test_parser_lookup_by_dialect():
    assert get_import_string_parser(Dialect.CSHARP) is parse_csharp_import_string
    assert get_import_string_parser(Dialect.VISUAL_BASIC) is parse_visual_basic_import_string


def _getters(cdi, strings):
    return (lambda token: cdi.get(token)), (lambda token: strings.get(token))


def test_csharp_grouping_splits_groups_and_trailing_extern_aliases():
    get_cdi, get_strings = _getters(
        {1: blob(using_record(2, 1))},
        {1: ["USystem", "UFoo", "XA", "ZA Lib"]},
    )
    groups, aliases = get_csharp_grouped_import_strings(1, get_cdi, get_strings)
    assert groups == [["USystem", "UFoo"], ["XA"]]
    assert aliases == ["ZA Lib"]


def test_csharp_grouping_follows_one_forward():
    get_cdi, get_strings = _getters(
        {1: blob(forward_record(2)), 2: blob(using_record(1))},
        {1: [], 2: ["USystem"]},
    )
    groups, aliases = get_csharp_grouped_import_strings(1, get_cdi, get_strings)
    assert groups == [["USystem"]]
    assert aliases == []


def test_csharp_grouping_without_cdi_returns_none():
    get_cdi, get_strings = _getters({}, {1: ["USystem"]})
    assert get_csharp_grouped_import_strings(1, get_cdi, get_strings) == (None, None)


def test_csharp_grouping_uses_module_extern_aliases():
    get_cdi, get_strings = _getters(
        {1: blob(using_record(1), forward_to_module_record(9))},
        {1: ["USystem"], 9: ["UModule", "ZM Lib"]},
    )
    groups, aliases = get_csharp_grouped_import_strings(1, get_cdi, get_strings)
    assert groups == [["USystem"]]
    assert aliases == ["ZM Lib"]


@pytest.mark.parametrize(
    "sizes, strings",
    [
        ((3,), ["USystem"]),
        ((2,), ["USystem", "ZA Lib"]),
        ((1,), ["USystem", "UExtra"]),
    ],
)
def test_csharp_grouping_count_mismatch_raises(sizes, strings):
    get_cdi, get_strings = _getters({1: blob(using_record(*sizes))}, {1: strings})
    with pytest.raises(CustomDebugInfoError):
        get_csharp_grouped_import_strings(1, get_cdi, get_strings)


def test_visual_basic_import_strings_follow_forward():
    strings = {1: ["@2"], 2: ["@F:System", "*Root"]}
    assert get_visual_basic_import_strings(1, strings.get) == ["@F:System", "*Root"]
    assert get_visual_basic_import_strings(2, strings.get) == ["@F:System", "*Root"]
    assert get_visual_basic_import_strings(3, strings.get) is None

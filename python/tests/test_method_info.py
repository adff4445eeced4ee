"""End-to-end tests for read_method_debug_info."""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT / "python"))
sys.path.append(str(Path(__file__).resolve().parent))

from cdi_builders import blob, dynamic_bucket, dynamic_record, forward_record, hoisted_record, using_record
from pdbcdi.method_info import MethodDebugInfo, read_hoisted_local_scopes, read_method_debug_info
from pdbcdi.reader import JsonSymReader, SymMethod
from pdbcdi.records import HoistedLocalScopeRecord, ILSpan, ImportTargetKind
from pdbcdi.scopes import SymConstant, SymLocal, SymScope
from pdbcdi.signatures import SignatureSymbolProvider
from pdbcdi.symbols import BadImageFormatError

TOKEN = 0x06000001


def _reader(*methods, portable_metadata=None):
    reader = JsonSymReader(portable_metadata=portable_metadata)
    for method in methods:
        reader.add_method(method)
    return reader


def _root():
    return SymScope(
        0,
        100,
        locals=(SymLocal("x", 0), SymLocal("d", 1)),
        constants=(SymConstant("Max", 10, b"\x08"), SymConstant("Name", 0, b"\x0e")),
    )


def test_csharp_method_debug_info():
    cdi = blob(
        using_record(2),
        hoisted_record([(10, 19)]),
        dynamic_record(dynamic_bucket("d", [True, False, True], 1), dynamic_bucket("Max", [True], 0)),
    )
    method = SymMethod(
        TOKEN,
        1,
        root_scope=_root(),
        import_strings=("USystem", "AM TSystem.Math", "Zext Lib, Version=1.2.3.4, Culture=neutral, PublicKeyToken=null"),
        custom_debug_info=cdi,
    )
    info = read_method_debug_info(_reader(method), SignatureSymbolProvider(), TOKEN, 1, 50, False)

    (group,) = info.import_record_groups
    assert group[0].target_kind == ImportTargetKind.NAMESPACE
    assert group[0].target_string == "System"
    assert group[1].alias == "M"
    assert str(group[1].target_type) == "System.Math"
    assert group[1].target_string is None
    (extern,) = info.extern_alias_records
    assert extern.alias == "ext"
    assert extern.target_assembly.version == (1, 2, 3, 4)
    assert info.hoisted_local_scope_records == (HoistedLocalScopeRecord(10, 10),)
    assert dict(info.dynamic_local_map) == {1: (True, False, True)}
    assert dict(info.dynamic_local_constant_map) == {"Max": (True,)}
    assert info.local_variable_names == ("x", "d")
    assert [(c.name, c.value.value) for c in info.local_constants] == [("Max", 10), ("Name", None)]
    assert info.local_constants[0].dynamic_flags == (True,)
    assert info.reuse_span == ILSpan(0, 100)
    assert info.default_namespace_name == ""


def test_csharp_forwarded_imports():
    target = SymMethod(0x06000002, 1, import_strings=("USystem.Linq",), custom_debug_info=blob(using_record(1)))
    method = SymMethod(TOKEN, 1, root_scope=SymScope(0, 10), custom_debug_info=blob(forward_record(0x06000002)))
    info = read_method_debug_info(_reader(method, target), None, TOKEN, 1, 0, False)
    assert [r.target_string for r in info.import_record_groups[0]] == ["System.Linq"]


def test_visual_basic_imports_and_default_namespace():
    method = SymMethod(
        TOKEN,
        1,
        root_scope=SymScope(0, 99),
        import_strings=("*A", "@F:System", "@PA:IO=System.IO", "&Defunct", "@FX:ns=http://example.org", "*B"),
    )
    info = read_method_debug_info(_reader(method), None, TOKEN, 1, 99, True)
    file_level, project_level = info.import_record_groups
    assert [(r.target_kind, r.target_string) for r in file_level] == [
        (ImportTargetKind.NAMESPACE, "System"),
        (ImportTargetKind.XML_NAMESPACE, "http://example.org"),
    ]
    assert [(r.alias, r.target_string) for r in project_level] == [("IO", "System.IO")]
    assert info.default_namespace_name == "B"
    assert info.reuse_span == ILSpan(0, 100)
    assert info.hoisted_local_scope_records == ()


def test_visual_basic_forwarded_imports():
    target = SymMethod(0x06000002, 1, import_strings=("@P:System",))
    method = SymMethod(TOKEN, 1, import_strings=(f"@{0x06000002}",))
    info = read_method_debug_info(_reader(method, target), None, TOKEN, 1, 0, True)
    assert info.import_record_groups[1][0].target_string == "System"


def test_zero_byte_cdi_is_absent():
    method = SymMethod(TOKEN, 1, root_scope=SymScope(0, 10), import_strings=("USystem",), custom_debug_info=b"")
    info = read_method_debug_info(_reader(method), None, TOKEN, 1, 0, False)
    assert info.import_record_groups == ()
    assert info.reuse_span == ILSpan(0, 10)


def test_malformed_cdi_yields_none(caplog):
    method = SymMethod(TOKEN, 1, root_scope=SymScope(0, 10), import_strings=("USystem",), custom_debug_info=b"\x04")
    info = read_method_debug_info(_reader(method), None, TOKEN, 1, 0, False)
    assert info is MethodDebugInfo.NONE
    assert "bad custom debug info" in caplog.text


def test_group_count_mismatch_yields_none():
    method = SymMethod(TOKEN, 1, import_strings=("USystem",), custom_debug_info=blob(using_record(4)))
    assert read_method_debug_info(_reader(method), None, TOKEN, 1, 0, False) is MethodDebugInfo.NONE


def test_missing_reader_or_method():
    assert read_method_debug_info(None, None, TOKEN, 1, 0, False) is MethodDebugInfo.NONE
    info = read_method_debug_info(_reader(), None, TOKEN, 1, 0, False)
    assert info.import_record_groups == ()
    assert info.reuse_span == ILSpan.MAX_VALUE


def test_portable_metadata_delegates_to_decoder():
    calls = []

    def decoder(metadata, token, il_offset, provider, is_visual_basic):
        calls.append((metadata, token, il_offset, is_visual_basic))
        return MethodDebugInfo(default_namespace_name="Portable")

    reader = _reader(SymMethod(TOKEN, 1), portable_metadata=b"BSJB")
    info = read_method_debug_info(reader, None, TOKEN, 1, 4, False, portable_decoder=decoder)
    assert info.default_namespace_name == "Portable"
    assert calls == [(b"BSJB", TOKEN, 4, False)]


def test_bad_portable_metadata_yields_none():
    def decoder(*_args):
        raise BadImageFormatError("not metadata")

    reader = _reader(SymMethod(TOKEN, 1), portable_metadata=b"junk")
    assert read_method_debug_info(reader, None, TOKEN, 1, 0, False, portable_decoder=decoder) is MethodDebugInfo.NONE


def test_hoisted_scope_lengths():
    cdi = blob(hoisted_record([(10, 19), (-1, 4), (8, 2), (0, 0)]))
    assert read_hoisted_local_scopes(cdi, is_end_inclusive=True) == (
        HoistedLocalScopeRecord(10, 10),
        HoistedLocalScopeRecord(0, 1),
    )
    assert read_hoisted_local_scopes(None, is_end_inclusive=True) == ()

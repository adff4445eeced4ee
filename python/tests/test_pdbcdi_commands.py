"""Tests for the pdbcdi inspector commands and CLI entry point."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT / "python"))
sys.path.append(str(Path(__file__).resolve().parent))

from cdi_builders import blob, dynamic_bucket, dynamic_record, using_record
from pdbcdi import cli
from pdbcdi.commands import build_registry
from pdbcdi.context import InspectorContext
from pdbcdi.parser import parse_number, split_command


def _write_dump(tmp_path: Path) -> Path:
    cdi = blob(using_record(1), dynamic_record(dynamic_bucket("d", [False, True], 1)))
    dump = {
        "methods": [
            {
                "token": "0x06000001",
                "custom_debug_info": cdi.hex(),
                "import_strings": ["USystem", "Zext Lib, Version=1.0.0.0"],
                "local_signature": "0702081c",
                "root_scope": {
                    "start": 0,
                    "end": 64,
                    "locals": [{"name": "i", "slot": 0}, {"name": "d", "slot": 1}],
                    "constants": [{"name": "Limit", "value": 5, "signature": "08"}],
                },
            },
            {
                "token": "0x06000002",
                "import_strings": ["*Root", "@F:System", "@P:System.Linq"],
                "root_scope": {"start": 0, "end": 15},
            },
        ]
    }
    path = tmp_path / "dump.json"
    path.write_text(json.dumps(dump), encoding="utf-8")
    return path


def _loaded(tmp_path: Path, **kwargs) -> InspectorContext:
    ctx = InspectorContext(**kwargs)
    ctx.load_pdb(_write_dump(tmp_path))
    return ctx


def test_split_command_reports_parse_errors():
    assert split_command('method 0x06000001 "x') == ["#parse-error", "No closing quotation"]
    assert split_command("") == []
    assert parse_number("0x10") == 16


def test_load_command_lists_methods(tmp_path, capsys):
    ctx = InspectorContext(json_output=True)
    registry = build_registry()
    assert registry.get("load").run(ctx, [str(_write_dump(tmp_path))]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["result"]["methods"] == ["0x06000001/1", "0x06000002/1"]


def test_load_command_missing_file(tmp_path, capsys):
    ctx = InspectorContext()
    assert build_registry().get("load").run(ctx, [str(tmp_path / "absent.json")]) == 1
    assert "failed to load PDB dump" in capsys.readouterr().out


def test_method_command_requires_loaded_dump(capsys):
    assert build_registry().get("method").run(InspectorContext(), ["0x06000001"]) == 1
    assert "no PDB dump loaded" in capsys.readouterr().out


def test_method_command_json(tmp_path, capsys):
    ctx = _loaded(tmp_path, json_output=True)
    assert build_registry().get("method").run(ctx, ["0x06000001", "4"]) == 0
    result = json.loads(capsys.readouterr().out)["result"]
    assert result["reuse_span"] == [0, 64]
    assert result["local_names"] == ["i", "d"]
    assert result["dynamic_slots"] == {"1": "01"}
    assert result["extern_aliases"] == [
        {"alias": "ext", "assembly": "Lib, Version=1.0.0.0, Culture=neutral, PublicKeyToken=null"}
    ]
    assert result["constants"][0]["value"] == "5"


def test_imports_command_visual_basic_text(tmp_path, capsys):
    ctx = _loaded(tmp_path)
    assert build_registry().get("imports").run(ctx, ["0x06000002", "--vb"]) == 0
    out = capsys.readouterr().out
    assert "file:" in out
    assert "project:" in out
    assert "System.Linq" in out
    assert "default namespace: Root" in out


def test_locals_command_text(tmp_path, capsys):
    ctx = _loaded(tmp_path)
    assert build_registry().get("locals").run(ctx, ["0x06000001"]) == 0
    out = capsys.readouterr().out
    assert "[0] System.Int32 i" in out
    assert "[1] System.Object d  [dynamic=01]" in out
    assert "const System.Int32 Limit = 5" in out


def test_help_lists_commands(capsys):
    assert build_registry().get("help").run(InspectorContext(), []) == 0
    out = capsys.readouterr().out
    for name in ("load", "method", "imports", "locals", "exit"):
        assert name in out


def test_exit_command_raises():
    with pytest.raises(SystemExit):
        build_registry().get("quit").run(InspectorContext(), [])


def test_cli_single_command(tmp_path, capsys):
    path = _write_dump(tmp_path)
    rc = cli.main(["--pdb", str(path), "--json", "-c", "imports 0x06000001"])
    assert rc == 0
    result = json.loads(capsys.readouterr().out)["result"]
    assert result["import_groups"][0][0]["target"] == "System"


def test_cli_unknown_command(capsys):
    assert cli.main(["-c", "bogus"]) == 1
    assert "Unknown command: bogus" in capsys.readouterr().out


def test_cli_missing_pdb(tmp_path):
    assert cli.main(["--pdb", str(tmp_path / "missing.json"), "-c", "help"]) == 1


def test_repl_dispatch(tmp_path, capsys):
    from pdbcdi.repl import InspectorREPL

    ctx = _loaded(tmp_path)
    ctx.aliases["mi"] = "method"
    repl = InspectorREPL(ctx, build_registry())
    assert repl._dispatch("mi 0x06000001") == 0
    assert "reuse span" in capsys.readouterr().out
    assert repl._dispatch("nope") == 1
    assert repl._dispatch('load "x') == 1
    assert "Parse error" in capsys.readouterr().out
    buffer = []
    assert repl._handle_multiline(buffer, "method \\")
    assert not repl._handle_multiline(buffer, "0x06000001")
    assert buffer == ["method ", "0x06000001"]

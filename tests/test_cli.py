from __future__ import annotations

import importlib
import json
import tomllib
from pathlib import Path

import pytest

from examtrack.cli.main import main


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "remote": {"backend": "file", "data_dir": str(tmp_path / "data")},
                "log_dir": str(tmp_path / "logs"),
            }
        ),
        encoding="utf-8",
    )
    return path


def run_cli(settings_file: Path, *argv: str) -> int:
    return main(["--settings", str(settings_file), *argv])


def test_cli_list_shows_packaged_catalog(settings_file, capsys):
    assert run_cli(settings_file, "list") == 0
    out = capsys.readouterr().out
    assert len(out.splitlines()) == 30
    assert "[ ]   1 " in out


def test_cli_status_is_persisted(settings_file, capsys):
    assert run_cli(settings_file, "status", "3", "done") == 0
    capsys.readouterr()
    run_cli(settings_file, "list", "--json")
    rows = json.loads(capsys.readouterr().out)
    assert {row["id"]: row["status"] for row in rows}[3] == "done"


def test_cli_status_rejects_unknown_requirement(settings_file, capsys):
    assert run_cli(settings_file, "status", "999", "done") == 1
    assert "unknown requirement" in capsys.readouterr().err


def test_cli_notes(settings_file, capsys):
    run_cli(settings_file, "notes", "2", "frame first")
    capsys.readouterr()
    run_cli(settings_file, "notes", "2")
    assert capsys.readouterr().out.strip() == "frame first"


def test_cli_group_and_ungroup(settings_file, capsys):
    assert run_cli(settings_file, "group", "Escapes", "27", "25") == 0
    group_id = capsys.readouterr().out.strip()
    run_cli(settings_file, "list")
    out = capsys.readouterr().out
    assert f"- Escapes <{group_id}>" in out
    assert run_cli(settings_file, "group", "Again", "25") == 1
    assert run_cli(settings_file, "ungroup", group_id) == 0
    assert run_cli(settings_file, "ungroup", group_id) == 1


def test_cli_export_and_import(settings_file, tmp_path, capsys):
    run_cli(settings_file, "status", "1", "done")
    run_cli(settings_file, "notes", "1", "breakfall")
    snapshot = tmp_path / "out" / "snapshot.json"
    assert run_cli(settings_file, "export", "-o", str(snapshot)) == 0
    data = json.loads(snapshot.read_text(encoding="utf-8"))
    assert data["userState"]["1"]["status"] == "done"

    assert run_cli(settings_file, "import", str(snapshot)) == 0
    capsys.readouterr()
    run_cli(settings_file, "notes", "1")
    assert capsys.readouterr().out.strip() == "breakfall"
    run_cli(settings_file, "list", "--json")
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["status"] == "todo"


def test_cli_import_rejects_invalid_file(settings_file, tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    assert run_cli(settings_file, "import", str(bad)) == 1
    assert "invalid snapshot" in capsys.readouterr().err


def test_console_script_entry_point_resolves_to_main():
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    with pyproject.open("rb") as fh:
        scripts = tomllib.load(fh)["project"]["scripts"]
    module_name, _, attr = scripts["examtrack"].partition(":")
    target = getattr(importlib.import_module(module_name), attr)
    assert target is main
    assert callable(target)

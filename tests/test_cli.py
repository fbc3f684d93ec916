"""Tests for the vaultpack command line."""

import json
import zipfile

import pytest
from typer.testing import CliRunner

from vaultpack.cli import app

runner = CliRunner()


@pytest.fixture
def vault_dir(make_vault, tmp_path, monkeypatch):
    for name in ("VAULTPACK_VAULT", "VAULTPACK_LINK_DEPTH", "VAULTPACK_IGNORE_FOLDERS", "VAULTPACK_IGNORE_TAGS", "VAULTPACK_ZIP_OUTPUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    vault = make_vault(
        {
            "Root.md": "# Root\n## Intro\n[[A]]\n## Refs\n[[Private]]\n",
            "A.md": "[[B]]\n",
            "B.md": "leaf\n",
            "Private.md": "---\ntags: [private]\n---\n",
        },
    )
    return vault.root


def _ledger_events(vault_dir):
    lines = (vault_dir / ".vaultpack" / "ledger.jsonl").read_text().strip().split("\n")
    return [json.loads(line) for line in lines]


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "vaultpack v" in result.stdout


def test_init_is_idempotent(vault_dir):
    result = runner.invoke(app, ["init", "--vault", str(vault_dir)])
    assert result.exit_code == 0
    config_file = vault_dir / ".vaultpack" / "config.toml"
    assert config_file.exists()

    config_file.write_text("# edited\n")
    result = runner.invoke(app, ["init", "--vault", str(vault_dir)])
    assert result.exit_code == 0
    assert config_file.read_text() == "# edited\n"


def test_export_writes_files_and_ledger(vault_dir, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["export", "Root", "--vault", str(vault_dir), "--out", str(out), "--depth", "2", "-T", "private"],
    )
    assert result.exit_code == 0, result.stdout
    assert sorted(p.name for p in out.iterdir()) == ["A.md", "B.md", "Root.md"]

    events = _ledger_events(vault_dir)
    assert [e["event_type"] for e in events] == ["EXPORT_PLANNED", "FILE_FILTERED", "EXPORT_WRITTEN"]
    assert events[1]["payload"] == {"path": "Private.md", "reason": "Tag matches: #private"}
    assert all(e["root_path"] == "Root.md" for e in events)


def test_export_zip_with_headers(vault_dir, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["export", "Root.md", "-v", str(vault_dir), "-o", str(out), "-d", "2", "--zip", "--header-hierarchy"],
    )
    assert result.exit_code == 0, result.stdout
    with zipfile.ZipFile(out / "export.zip") as zf:
        assert sorted(zf.namelist()) == [
            "Intro/A.md",
            "Intro/B.md",
            "Refs/Private.md",
            "Root.md",
        ]


def test_export_dry_run_writes_nothing(vault_dir, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(app, ["export", "Root", "--vault", str(vault_dir), "--out", str(out), "--dry-run"])
    assert result.exit_code == 0
    assert "DRY RUN" in result.stdout
    assert not out.exists()
    assert not (vault_dir / ".vaultpack" / "ledger.jsonl").exists()


def test_export_conflicting_placement(vault_dir, tmp_path):
    result = runner.invoke(
        app,
        ["export", "Root", "--vault", str(vault_dir), "--out", str(tmp_path / "o"), "--keep-folders", "--header-hierarchy"],
    )
    assert result.exit_code == 1


def test_unknown_note(vault_dir):
    result = runner.invoke(app, ["tree", "Nope", "--vault", str(vault_dir)])
    assert result.exit_code == 1
    assert "Note not found" in result.stdout


def test_tree_shows_filtered_reason(vault_dir):
    result = runner.invoke(app, ["tree", "Root", "--vault", str(vault_dir), "-T", "#private"])
    assert result.exit_code == 0
    assert "A.md" in result.stdout
    assert "Tag matches: #private" in result.stdout


def test_backlinks(vault_dir):
    result = runner.invoke(app, ["backlinks", "B", "--vault", str(vault_dir)])
    assert result.exit_code == 0
    assert result.stdout.strip() == "A.md"


def test_ledger_tail_empty(vault_dir):
    result = runner.invoke(app, ["ledger", "tail", "--vault", str(vault_dir)])
    assert result.exit_code == 0
    assert "No events in ledger" in result.stdout


def test_ledger_tail_last_run_after_two_exports(vault_dir, tmp_path):
    for note in ("Root", "A"):
        result = runner.invoke(app, ["export", note, "--vault", str(vault_dir), "--out", str(tmp_path / note)])
        assert result.exit_code == 0, result.stdout

    events = _ledger_events(vault_dir)
    last_run = events[-1]["run_id"]
    assert events[0]["run_id"] != last_run

    result = runner.invoke(app, ["ledger", "tail", "--last-run", "--vault", str(vault_dir)])
    assert result.exit_code == 0
    assert "Last 2 Ledger Event(s)" in result.stdout
    assert last_run[:8] in result.stdout

"""Pytest fixtures for vaultpack tests."""

from pathlib import Path

import pytest

from vaultpack.vault.store import FilesystemVault


def write_vault(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` (vault path -> content) under ``root``."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def temp_vault(tmp_path):
    """Create an empty vault (a folder with an .obsidian marker).

    Args:
        tmp_path: pytest's built-in temporary directory fixture

    Returns:
        Path to temporary vault root
    """
    vault_root = tmp_path / "test_vault"
    (vault_root / ".obsidian").mkdir(parents=True)
    return vault_root


@pytest.fixture
def make_vault(temp_vault):
    """Return a builder that fills the temporary vault and opens it."""

    def _make(files: dict[str, str | bytes]) -> FilesystemVault:
        write_vault(temp_vault, files)
        return FilesystemVault(temp_vault)

    return _make

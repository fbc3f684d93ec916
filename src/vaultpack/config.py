"""Configuration management for vaultpack."""

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import VaultNotFoundError

CONFIG_DIR_NAME = ".vaultpack"
CONFIG_FILE_NAME = "config.toml"
VAULT_MARKER = ".obsidian"


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            # No repo found, return original directory
            return start_dir

        current_dir = parent_dir


def _load_config_data(config_file: Path) -> Optional[dict]:
    """Load a config.toml; a missing or malformed file counts as no config."""
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError):
        return None


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .vaultpack/config.toml if it exists."""
    return _load_config_data(repo_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME)


def _nested_get(data: Optional[dict[str, Any]], path: list[str]) -> Any:
    cur: Any = data or {}
    for key in path:
        if not isinstance(cur, dict) or key not in cur:
            return None
        cur = cur[key]
    return cur


def _has_vault_markers(vault_path: Path) -> bool:
    """Check if a directory looks like a note vault."""
    return (vault_path / VAULT_MARKER).is_dir()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _split_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if str(v).strip()]


def resolve_vault_root(cli_vault_path: Optional[str] = None) -> Path:
    """Resolve vault root path with the following precedence:

    1. CLI --vault option (if provided)
    2. repo-local .vaultpack/config.toml ``vault_root`` (walk upward from CWD)
    3. VAULTPACK_VAULT environment variable
    4. Auto-discovery by walking up from cwd looking for an .obsidian folder

    Raises:
        VaultNotFoundError: If no existing vault directory can be found
    """
    if cli_vault_path:
        vault_path = Path(cli_vault_path).expanduser().resolve()
        if not vault_path.is_dir():
            raise VaultNotFoundError(f"Specified vault path does not exist: {vault_path}")
        return vault_path

    repo_root = _find_repo_root(Path.cwd())
    repo_vault = _nested_get(_load_repo_config_data(repo_root), ["vault_root"])
    if isinstance(repo_vault, str) and repo_vault.strip():
        vault_path = Path(repo_vault).expanduser()
        if not vault_path.is_absolute():
            vault_path = repo_root / vault_path
        vault_path = vault_path.resolve()
        if not vault_path.is_dir():
            raise VaultNotFoundError(f"Vault path from {CONFIG_DIR_NAME}/{CONFIG_FILE_NAME} does not exist: {vault_path}")
        return vault_path

    env_vault = os.environ.get("VAULTPACK_VAULT")
    if env_vault:
        vault_path = Path(env_vault).expanduser().resolve()
        if not vault_path.is_dir():
            raise VaultNotFoundError(f"VAULTPACK_VAULT path does not exist: {vault_path}")
        return vault_path

    current_dir = Path.cwd()
    while True:
        if _has_vault_markers(current_dir):
            return current_dir
        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            break
        current_dir = parent_dir

    raise VaultNotFoundError(
        "Vault not found. Searched for:\n"
        f"  - {CONFIG_DIR_NAME}/{CONFIG_FILE_NAME} in repo at {repo_root}\n"
        "  - VAULTPACK_VAULT environment variable\n"
        f"  - A {VAULT_MARKER} folder upward from {Path.cwd()}\n"
        "Try one of:\n"
        "  • vaultpack --vault \"/path/to/vault\" <command>\n"
        "  • export VAULTPACK_VAULT=\"/path/to/vault\"\n"
        "  • cd into the vault directory"
    )


class ExportSettings(BaseModel):
    """Defaults for an export run."""

    link_depth: int = Field(default=1, ge=0)
    zip_output: bool = Field(default=False)
    keep_folder_structure: bool = Field(default=False)
    use_header_hierarchy: bool = Field(default=False)
    include_source_name: bool = Field(default=False)
    ignore_folders: list[str] = Field(default_factory=list)
    ignore_tags: list[str] = Field(default_factory=list)

    @field_validator("ignore_folders", mode="before")
    @classmethod
    def _clean_folders(cls, value: Any) -> list[str]:
        return [f for f in (v.strip("/").strip() for v in _split_list(value)) if f]

    @field_validator("ignore_tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> list[str]:
        return [t if t.startswith("#") else f"#{t}" for t in _split_list(value)]

    @model_validator(mode="after")
    def _exclusive_placement(self) -> "ExportSettings":
        if self.keep_folder_structure and self.use_header_hierarchy:
            raise ValueError("keep_folder_structure and use_header_hierarchy cannot both be enabled")
        return self

    @classmethod
    def from_sources(cls, repo_config: Optional[dict] = None) -> "ExportSettings":
        """Defaults <- [export] table of a config file <- VAULTPACK_* env vars."""
        section = _nested_get(repo_config, ["export"])
        data: dict[str, Any] = dict(section) if isinstance(section, dict) else {}

        if os.environ.get("VAULTPACK_LINK_DEPTH"):
            data["link_depth"] = int(os.environ["VAULTPACK_LINK_DEPTH"])
        if os.environ.get("VAULTPACK_IGNORE_FOLDERS") is not None:
            data["ignore_folders"] = os.environ["VAULTPACK_IGNORE_FOLDERS"]
        if os.environ.get("VAULTPACK_IGNORE_TAGS") is not None:
            data["ignore_tags"] = os.environ["VAULTPACK_IGNORE_TAGS"]
        data["zip_output"] = _env_bool("VAULTPACK_ZIP_OUTPUT", bool(data.get("zip_output", False)))

        return cls(**data)


class VaultpackConfig(BaseModel):
    """Configuration for a vault and its export defaults."""

    vault_path: Path
    export: ExportSettings = Field(default_factory=ExportSettings)

    model_config = {"frozen": False}

    @property
    def config_file(self) -> Path:
        return self.vault_path / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    @property
    def ledger_file(self) -> Path:
        return self.vault_path / CONFIG_DIR_NAME / "ledger.jsonl"

    @classmethod
    def from_env(cls, cli_vault_path: Optional[str] = None) -> "VaultpackConfig":
        """Resolve the vault and load export defaults.

        Export defaults come from the vault's own .vaultpack/config.toml, then
        the repo-local one, then VAULTPACK_* environment variables.
        """
        vault_path = resolve_vault_root(cli_vault_path)
        data = _load_config_data(vault_path / CONFIG_DIR_NAME / CONFIG_FILE_NAME)
        if data is None:
            data = _load_repo_config_data(_find_repo_root(Path.cwd()))
        return cls(vault_path=vault_path, export=ExportSettings.from_sources(data))

    def to_toml_str(self) -> str:
        """Generate the TOML written by `vaultpack init`."""

        def _toml_list(items: list[str]) -> str:
            return "[" + ", ".join(f'"{i}"' for i in items) + "]"

        def _toml_bool(value: bool) -> str:
            return "true" if value else "false"

        e = self.export
        return f"""# vaultpack configuration

[export]
# Number of link hops followed from the exported note
link_depth = {e.link_depth}
zip_output = {_toml_bool(e.zip_output)}
# Placement: keep vault folders, or group by the note's headings (not both)
keep_folder_structure = {_toml_bool(e.keep_folder_structure)}
use_header_hierarchy = {_toml_bool(e.use_header_hierarchy)}
include_source_name = {_toml_bool(e.include_source_name)}
ignore_folders = {_toml_list(e.ignore_folders)}
ignore_tags = {_toml_list(e.ignore_tags)}
"""

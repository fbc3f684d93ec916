"""Write the files chosen by a traversal to a folder or a zip archive."""

from __future__ import annotations

import logging
import posixpath
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import ExportPathError
from ..vault.models import VaultFile
from ..vault.store import FilesystemVault, sort_files
from .headers import HeaderMap, compute_export_paths
from .traversal import TraversalResult

logger = logging.getLogger(__name__)

DEFAULT_ZIP_NAME = "export.zip"


@dataclass(frozen=True)
class PlannedFile:
    file: VaultFile
    dest: str


@dataclass
class ExportSummary:
    target: Path
    files_written: int = 0
    bytes_written: int = 0
    destinations: list[str] = field(default_factory=list)
    archive: Optional[Path] = None


def plan_export(
    result: TraversalResult,
    *,
    keep_folder_structure: bool = False,
    use_header_hierarchy: bool = False,
    header_map: Optional[HeaderMap] = None,
    include_source_name: bool = False,
    selected: Optional[Iterable[str]] = None,
) -> list[PlannedFile]:
    """Decide where each included file goes.

    ``selected`` narrows the export to a subset of the included paths.
    Filtered files are never planned.
    """
    if keep_folder_structure and use_header_hierarchy:
        raise ValueError("keep_folder_structure and use_header_hierarchy are mutually exclusive")

    files = result.included_files()
    if selected is not None:
        wanted = set(selected)
        files = [f for f in files if f.path in wanted]

    planned: list[PlannedFile] = []
    taken: dict[str, str] = {}
    for file in sort_files(files):
        if use_header_hierarchy:
            dests = compute_export_paths(
                file, header_map or {}, include_source_name, result.root.basename
            )
        elif keep_folder_structure:
            dests = [file.path]
        else:
            dests = [file.name]

        for dest in dests:
            owner = taken.get(dest)
            if owner is not None:
                if owner != file.path:
                    logger.warning("Skipping %s: %s is already exported to %s", file.path, owner, dest)
                continue
            taken[dest] = file.path
            planned.append(PlannedFile(file=file, dest=dest))
    return planned


def _safe_dest(dest: str) -> str:
    norm = posixpath.normpath(dest)
    if norm.startswith("/") or norm == ".." or norm.startswith("../"):
        raise ExportPathError(f"Export destination escapes the target folder: {dest}")
    return norm


def validate_destinations(planned: list[PlannedFile]) -> list[str]:
    """Normalized destinations of ``planned``; raises ExportPathError if any escapes."""
    return [_safe_dest(item.dest) for item in planned]


def write_export(
    planned: list[PlannedFile],
    vault: FilesystemVault,
    target_dir: Path,
    *,
    create_zip: bool = False,
    zip_name: str = DEFAULT_ZIP_NAME,
) -> ExportSummary:
    """Copy the planned files' bytes into ``target_dir`` or a zip inside it.

    Every destination is checked before anything is written, so an
    ``ExportPathError`` leaves no partial export behind.
    """
    dests = validate_destinations(planned)
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    summary = ExportSummary(target=target_dir)

    if create_zip:
        archive = target_dir / zip_name
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item, dest in zip(planned, dests):
                data = vault.read_bytes(item.file)
                zf.writestr(dest, data)
                summary.files_written += 1
                summary.bytes_written += len(data)
                summary.destinations.append(dest)
        summary.archive = archive
        logger.info("Wrote %d files to %s", summary.files_written, archive)
        return summary

    for item, dest in zip(planned, dests):
        out_path = target_dir / dest
        out_path.parent.mkdir(parents=True, exist_ok=True)
        data = vault.read_bytes(item.file)
        out_path.write_bytes(data)
        summary.files_written += 1
        summary.bytes_written += len(data)
        summary.destinations.append(dest)

    logger.info("Wrote %d files to %s", summary.files_written, target_dir)
    return summary

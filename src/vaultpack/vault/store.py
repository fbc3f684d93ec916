from __future__ import annotations

import fnmatch
import logging
import posixpath
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .models import FileMetadata, VaultFile
from .parser import parse_note_text

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_GLOBS = [".obsidian/**", ".git/**", ".trash/**", ".vaultpack/**"]


class VaultStore(Protocol):
    """What the export engine needs from a note store."""

    def read_text(self, file: VaultFile) -> str: ...

    def resolve_link(self, target: str, context_path: str) -> Optional[VaultFile]: ...

    def get_metadata(self, file: VaultFile) -> Optional[FileMetadata]: ...


def sort_files(files: Iterable[VaultFile]) -> list[VaultFile]:
    """Markdown files first, then by file name."""
    return sorted(files, key=lambda f: (not f.is_markdown, f.name.lower(), f.path))


def _is_excluded(rel_posix: str, exclude_globs: list[str]) -> bool:
    for pat in exclude_globs:
        if fnmatch.fnmatchcase(rel_posix, pat):
            return True
    return False


class FilesystemVault:
    """A vault backed by a plain directory on disk.

    The directory is scanned once; files added afterwards are not seen until a
    new instance is created.
    """

    def __init__(self, root: Path, exclude_globs: Optional[list[str]] = None):
        self.root = Path(root).expanduser().resolve()
        self.exclude_globs = list(DEFAULT_EXCLUDE_GLOBS if exclude_globs is None else exclude_globs)
        self._files: dict[str, VaultFile] = {}
        self._by_name: dict[str, list[VaultFile]] = {}
        self._metadata: dict[str, Optional[FileMetadata]] = {}
        self._extensions: set[str] = set()
        self._scan()

    def _scan(self) -> None:
        for p in self.root.rglob("*"):
            if not p.is_file():
                continue
            rel_posix = p.relative_to(self.root).as_posix()
            if _is_excluded(rel_posix, self.exclude_globs):
                continue
            vf = VaultFile(rel_posix)
            self._files[rel_posix] = vf
            if vf.extension:
                self._extensions.add(vf.extension)
            self._by_name.setdefault(vf.name.lower(), []).append(vf)
            if vf.is_markdown:
                self._by_name.setdefault(vf.basename.lower(), []).append(vf)
        logger.debug("Scanned vault %s: %d files", self.root, len(self._files))

    def files(self) -> list[VaultFile]:
        return sorted(self._files.values())

    def get_file(self, path: str) -> Optional[VaultFile]:
        return self._files.get(path.strip().lstrip("/"))

    def __contains__(self, path: str) -> bool:
        return self.get_file(path) is not None

    def abs_path(self, file: VaultFile) -> Path:
        return self.root / file.path

    def read_text(self, file: VaultFile) -> str:
        return self.abs_path(file).read_text(encoding="utf-8")

    def read_bytes(self, file: VaultFile) -> bytes:
        return self.abs_path(file).read_bytes()

    def get_metadata(self, file: VaultFile) -> Optional[FileMetadata]:
        if not file.is_markdown:
            return None
        if file.path not in self._metadata:
            self._metadata[file.path] = parse_note_text(self.read_text(file)).to_metadata()
        return self._metadata[file.path]

    def resolve_link(self, target: str, context_path: str) -> Optional[VaultFile]:
        """Resolve a link target the way the note app does for ``[[target]]``.

        Exact vault path first, then relative to the linking file's folder,
        then (for targets without a known extension) both again with ``.md``,
        and finally a case-insensitive lookup by file name.
        """
        linkpath = target.strip().lstrip("/")
        if not linkpath:
            return None
        linkpath = posixpath.normpath(linkpath)

        context_dir = posixpath.dirname(context_path)
        candidates = [linkpath]
        if context_dir:
            candidates.append(posixpath.normpath(posixpath.join(context_dir, linkpath)))
        if posixpath.splitext(linkpath)[1].lower()[1:] not in self._extensions:
            candidates.extend([c + ".md" for c in list(candidates)])

        for cand in candidates:
            found = self._files.get(cand)
            if found is not None:
                return found

        # Name lookup only applies to the last segment of the target.
        matches = self._by_name.get(posixpath.basename(linkpath).lower(), [])
        if "/" in linkpath:
            # Folder parts of the target must match whole path segments.
            suffixes = (linkpath.lower(), linkpath.lower() + ".md")
            matches = [
                f for f in matches
                if any(f.path.lower() == s or f.path.lower().endswith("/" + s) for s in suffixes)
            ]
        if not matches:
            return None
        return min(matches, key=lambda f: (f.parent != context_dir, len(f.path), f.path))


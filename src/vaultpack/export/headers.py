"""Placement of exported files by the heading structure of the root note.

Every link in the root note sits under some chain of headings (outer to
inner). That chain, the file's *header path*, becomes the folder the linked
file is exported into. Files reached only through other files inherit the
header paths of the file that linked to them.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from ..vault.models import Heading, VaultFile
from ..vault.store import VaultStore
from .links import extract_links

logger = logging.getLogger(__name__)

HeaderPath = list[str]
HeaderMap = dict[str, list[HeaderPath]]

MAX_SEGMENT_LEN = 100

_LEADING_HASHES_RE = re.compile(r"^#+\s*")
_INVALID_CHARS_RE = re.compile(r'[/\\:*?"<>|]')
_SPACE_RUN_RE = re.compile(r"[\s_]+")


def _normalize_for_comparison(text: str) -> str:
    text = text.lower().strip()
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def header_path_at(position: int, headings: Iterable[Heading], source_name: str) -> HeaderPath:
    """Headings enclosing ``position``, outermost first.

    A level-1 heading equal to the note's own name (ignoring case and
    punctuation) is left out.
    """
    current: dict[int, str] = {}
    for heading in headings:
        if heading.offset >= position:
            continue
        current[heading.level] = heading.text
        for deeper in range(heading.level + 1, 7):
            current.pop(deeper, None)

    if not current:
        return []

    start_level = 1
    h1 = current.get(1)
    if h1 is not None and _normalize_for_comparison(h1) == _normalize_for_comparison(source_name):
        start_level = 2

    return [current[level] for level in range(start_level, 7) if level in current]


def build_header_map(
    store: VaultStore,
    root: VaultFile,
    candidates: Iterable[VaultFile],
    parent_map: dict[str, set[str]],
    depth_map: dict[str, int],
) -> HeaderMap:
    """Map each candidate file to the distinct header paths it is placed under.

    Files linked from the root get the header path at each link occurrence.
    The rest inherit, in ascending depth order, every header path of each
    parent; a parent without header paths contributes an empty path.
    """
    header_map: HeaderMap = {}

    metadata = store.get_metadata(root)
    headings = sorted(metadata.headings, key=lambda h: h.offset) if metadata else []

    for occurrence in extract_links(store.read_text(root)):
        linked = store.resolve_link(occurrence.target, root.path)
        if linked is None:
            continue
        path = header_path_at(occurrence.position, headings, root.basename)
        paths = header_map.setdefault(linked.path, [])
        if path not in paths:
            paths.append(path)

    ordered = sorted(candidates, key=lambda f: depth_map.get(f.path, 0))
    for file in ordered:
        if file.path in header_map:
            continue
        parents = parent_map.get(file.path)
        if not parents:
            continue

        inherited: list[HeaderPath] = []
        for parent in sorted(parents):
            parent_paths = header_map.get(parent) or [[]]
            for path in parent_paths:
                if path not in inherited:
                    inherited.append(list(path))
        if inherited:
            header_map[file.path] = inherited

    logger.debug("Header map for %s covers %d files", root.path, len(header_map))
    return header_map


def sanitize_header_path(header_path: Iterable[str]) -> str:
    """Turn a header path into a relative folder path safe on any filesystem."""
    segments: list[str] = []
    for header in header_path:
        clean = _LEADING_HASHES_RE.sub("", header.strip()).strip()
        clean = _INVALID_CHARS_RE.sub("_", clean)
        clean = _SPACE_RUN_RE.sub(" ", clean).strip()
        if len(clean) > MAX_SEGMENT_LEN:
            clean = clean[:MAX_SEGMENT_LEN].strip()
        # Empty and dot-only segments are not usable folder names.
        segments.append(clean if clean.strip(".") else "Untitled")
    return "/".join(segments)


def compute_export_paths(
    file: VaultFile,
    header_map: HeaderMap,
    use_source_prefix: bool = False,
    source_name: Optional[str] = None,
) -> list[str]:
    """Export-relative destinations of ``file``: one per header path.

    A file without header paths goes to the export root.
    """
    prefix = source_name if use_source_prefix and source_name else ""
    header_paths = header_map.get(file.path) or [[]]

    destinations: list[str] = []
    for header_path in header_paths:
        parts = [p for p in (prefix, sanitize_header_path(header_path), file.name) if p]
        dest = "/".join(parts)
        if dest not in destinations:
            destinations.append(dest)
    return destinations

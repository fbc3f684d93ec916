"""Outgoing-reference extraction for notes and canvas documents.

Two reference forms are recognized anywhere in the text:

- bracketed links ``[[target]]`` / ``![[target]]``, where ``target`` may carry
  an alias after ``|`` and an anchor after ``#``;
- inline links ``[text](target)`` / ``![text](target)``, where ``target`` may be
  wrapped in ``<...>`` and may be percent-encoded.

Inline links with a URI scheme (``https://``, ``mailto:``...) point outside the
vault and are skipped.
"""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import unquote

from ..vault.models import LinkOccurrence, VaultFile
from ..vault.store import FilesystemVault, sort_files

logger = logging.getLogger(__name__)

WIKILINK_RE = re.compile(r"!?\[\[([^\]]+?)\]\]")
MDLINK_RE = re.compile(r"!?\[([^\]]*)\]\(<?([^>)]+)>?\)")
EXTERNAL_RE = re.compile(r"^([a-z][a-z0-9+.-]*://|mailto:)", re.IGNORECASE)


def _clean_wikilink(inner: str) -> str:
    return inner.split("|", 1)[0].split("#", 1)[0].strip()


def _clean_mdlink(raw: str) -> str | None:
    path = raw.strip()
    if EXTERNAL_RE.match(path):
        return None
    return unquote(path).split("#", 1)[0].strip()


def extract_links(content: str) -> list[LinkOccurrence]:
    """Every link occurrence in ``content``, sorted by source position."""
    found: list[LinkOccurrence] = []

    for m in WIKILINK_RE.finditer(content or ""):
        target = _clean_wikilink(m.group(1))
        if target:
            found.append(LinkOccurrence(target=target, position=m.start()))

    for m in MDLINK_RE.finditer(content or ""):
        target = _clean_mdlink(m.group(2))
        if target:
            found.append(LinkOccurrence(target=target, position=m.start()))

    found.sort(key=lambda o: o.position)
    return found


def extract_linked_targets(content: str) -> set[str]:
    """Distinct link targets of ``content``."""
    return {o.target for o in extract_links(content)}


def extract_canvas_links(content: str) -> list[str]:
    """Targets referenced by a canvas document.

    ``file`` nodes contribute their ``file`` field; ``text`` nodes contribute
    the links found in their text, each target once in node order. Anything
    that is not a JSON object with a ``nodes`` list yields nothing.
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Failed to parse canvas content: %s", e)
        return []

    nodes = data.get("nodes") if isinstance(data, dict) else None
    if not isinstance(nodes, list):
        return []

    targets: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        kind = node.get("type")
        if kind == "file" and isinstance(node.get("file"), str) and node["file"]:
            targets.append(node["file"])
        elif kind == "text" and isinstance(node.get("text"), str):
            targets.extend(o.target for o in extract_links(node["text"]))
    return list(dict.fromkeys(targets))


def linked_targets_for(file: VaultFile, content: str) -> list[str]:
    """Distinct link targets of a file in order of appearance.

    The parser is chosen by format; attachments have no links.
    """
    if file.is_markdown:
        return list(dict.fromkeys(o.target for o in extract_links(content)))
    if file.is_canvas:
        return extract_canvas_links(content)
    return []


def find_backlinks(vault: FilesystemVault, file: VaultFile) -> list[VaultFile]:
    """Notes and canvases with at least one link resolving to ``file``."""
    sources: list[VaultFile] = []
    for src in vault.files():
        if src == file or not (src.is_markdown or src.is_canvas):
            continue
        for target in linked_targets_for(src, vault.read_text(src)):
            if vault.resolve_link(target, src.path) == file:
                sources.append(src)
                break
    return sort_files(sources)

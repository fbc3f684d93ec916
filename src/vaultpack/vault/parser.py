from __future__ import annotations

import re
from typing import Optional, Union

from .models import Heading, ParsedNote


_FRONTMATTER_DELIM = "---"
_CODE_FENCE = "```"

_KEY_RE = re.compile(r"^([A-Za-z0-9_-]+)\s*:\s*(.*)$")
_LIST_ITEM_RE = re.compile(r"^\s*-\s*(.+?)\s*$")
_HEADING_RE = re.compile(r"^[ \t]{0,3}(#{1,6})[ \t]+(.*)$")
_INLINE_TAG_RE = re.compile(r"(^|[\s\(\[\{<\"':;.,!?])#([A-Za-z0-9_/-]+)")


def _unquote(value: str) -> str:
    return value.strip().strip('"').strip("'").strip()


def _parse_frontmatter(text: str) -> tuple[Optional[Union[str, list[str]]], int]:
    """Return the raw ``tags`` value and the offset where the note body starts."""
    if not (text.startswith(_FRONTMATTER_DELIM + "\n") or text.startswith(_FRONTMATTER_DELIM + "\r\n")):
        return None, 0

    offset = text.find("\n") + 1
    end = None
    while offset < len(text):
        next_nl = text.find("\n", offset)
        line_end = len(text) if next_nl == -1 else next_nl
        if text[offset:line_end].rstrip("\r") == _FRONTMATTER_DELIM:
            end = line_end + 1 if next_nl != -1 else len(text)
            break
        offset = line_end + 1

    if end is None:
        return None, 0

    fm_lines = text[len(_FRONTMATTER_DELIM) : end].lstrip("\r\n").splitlines()

    tags: Optional[Union[str, list[str]]] = None
    i = 0
    while i < len(fm_lines):
        line = fm_lines[i].strip()
        i += 1
        if not line or line.startswith("#"):
            continue

        m = _KEY_RE.match(line)
        if not m or m.group(1) != "tags":
            continue
        value = m.group(2).strip()

        if value.startswith("[") and value.endswith("]"):
            inner = value[1:-1].strip()
            tags = [t for t in (_unquote(p) for p in inner.split(",")) if t] if inner else []
            continue

        if value:
            tags = _unquote(value) or None
            continue

        # YAML block list
        items: list[str] = []
        while i < len(fm_lines):
            item_line = fm_lines[i]
            if _KEY_RE.match(item_line.strip()) and not item_line.lstrip().startswith("-"):
                break
            m_item = _LIST_ITEM_RE.match(item_line)
            if m_item:
                item = _unquote(m_item.group(1))
                if item:
                    items.append(item)
            i += 1
        tags = items

    return tags, end


def _iter_lines(text: str, start: int):
    offset = start
    while True:
        nl = text.find("\n", offset)
        if nl == -1:
            yield offset, text[offset:]
            break
        yield offset, text[offset:nl].rstrip("\r")
        offset = nl + 1


def _outside_inline_code_segments(line: str) -> list[tuple[int, int]]:
    segments: list[tuple[int, int]] = []
    in_code = False
    seg_start = 0
    for idx, ch in enumerate(line):
        if ch != "`":
            continue
        if in_code:
            seg_start = idx + 1
            in_code = False
        else:
            if seg_start < idx:
                segments.append((seg_start, idx))
            in_code = True
    if not in_code and seg_start < len(line):
        segments.append((seg_start, len(line)))
    return segments


def parse_note_text(text: str) -> ParsedNote:
    """Extract frontmatter tags, inline tags and the heading outline of a note.

    Heading offsets are character offsets into ``text`` (frontmatter included),
    so they line up with link positions found by the link extractor.
    """
    fm_tags, content_start = _parse_frontmatter(text)

    headings: list[Heading] = []
    inline_tags: set[str] = set()
    in_fence = False

    for line_start, line in _iter_lines(text, content_start):
        if line.lstrip(" \t").startswith(_CODE_FENCE):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        m = _HEADING_RE.match(line)
        if m:
            heading_text = re.sub(r"\s+#+\s*$", "", m.group(2).strip()).strip()
            headings.append(
                Heading(
                    level=len(m.group(1)),
                    text=heading_text,
                    offset=line_start + (len(line) - len(line.lstrip(" \t"))),
                )
            )

        for seg_start, seg_end in _outside_inline_code_segments(line):
            for match in _INLINE_TAG_RE.finditer(line[seg_start:seg_end]):
                name = match.group(2)
                if name and not name.isdigit():
                    inline_tags.add("#" + name)

    return ParsedNote(
        frontmatter_tags=fm_tags,
        inline_tags=sorted(inline_tags),
        headings=headings,
    )

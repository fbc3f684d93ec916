from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True, order=True)
class VaultFile:
    """A file inside the vault, identified by its vault-relative POSIX path."""

    path: str

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def basename(self) -> str:
        stem, ext = posixpath.splitext(self.name)
        return stem if ext else self.name

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.name)[1][1:].lower()

    @property
    def parent(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def is_markdown(self) -> bool:
        return self.extension == "md"

    @property
    def is_canvas(self) -> bool:
        return self.extension == "canvas"


class TagSource(str, Enum):
    FRONTMATTER = "frontmatter"
    INLINE = "inline"


@dataclass(frozen=True)
class Tag:
    name: str
    source: TagSource


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    offset: int


@dataclass(frozen=True)
class LinkOccurrence:
    target: str
    position: int


@dataclass(frozen=True)
class FileMetadata:
    # Raw frontmatter value: a scalar string or a list, as written.
    frontmatter_tags: Optional[Union[str, list[str]]] = None
    inline_tags: list[str] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)

    @property
    def tags(self) -> list[Tag]:
        out: list[Tag] = []
        raw = self.frontmatter_tags
        if isinstance(raw, str):
            raw = [raw]
        for name in raw or []:
            out.append(Tag(name=str(name), source=TagSource.FRONTMATTER))
        for name in self.inline_tags:
            out.append(Tag(name=name, source=TagSource.INLINE))
        return out


@dataclass(frozen=True)
class ParsedNote:
    frontmatter_tags: Optional[Union[str, list[str]]]
    inline_tags: list[str]
    headings: list[Heading]

    def to_metadata(self) -> FileMetadata:
        return FileMetadata(
            frontmatter_tags=self.frontmatter_tags,
            inline_tags=list(self.inline_tags),
            headings=list(self.headings),
        )

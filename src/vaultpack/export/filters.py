from __future__ import annotations

from typing import Optional, Union

from ..vault.models import FileMetadata, VaultFile


def normalize_tags(tags: Optional[Union[str, list]]) -> list[str]:
    """Coerce a frontmatter ``tags`` value (scalar or list) to ``#tag`` strings."""
    if not tags:
        return []
    if isinstance(tags, str):
        items = [tags]
    elif isinstance(tags, (list, tuple)):
        items = [str(t) for t in tags]
    else:
        return []
    return [t if t.startswith("#") else f"#{t}" for t in items]


def matches_ignore(tag: str, ignore_tags: list[str]) -> bool:
    """True if ``tag`` matches one of the patterns.

    A pattern ending in ``/*`` matches its prefix and everything nested under
    it: ``#personal/*`` matches ``#personal`` and ``#personal/journal``.
    """
    for pattern in ignore_tags:
        if pattern.endswith("/*"):
            prefix = pattern[:-2]
            if tag == prefix or tag.startswith(prefix + "/"):
                return True
        elif tag == pattern:
            return True
    return False


def file_tags(metadata: Optional[FileMetadata]) -> list[str]:
    """Frontmatter and inline tags of a file, deduplicated in first-seen order."""
    if metadata is None:
        return []
    tags = normalize_tags(metadata.frontmatter_tags) + list(metadata.inline_tags)
    return list(dict.fromkeys(tags))


def is_path_ignored(path: str, ignore_folders: list[str]) -> Optional[str]:
    for folder in ignore_folders:
        if path == folder or path.startswith(folder + "/"):
            return f"Folder path matches: {folder}"
    return None


def should_exclude(
    file: VaultFile,
    metadata: Optional[FileMetadata],
    ignore_folders: list[str],
    ignore_tags: list[str],
) -> Optional[str]:
    """Return the reason ``file`` is excluded from export, or None to keep it.

    Folder rules are checked before tag rules.
    """
    reason = is_path_ignored(file.path, ignore_folders)
    if reason:
        return reason

    for tag in file_tags(metadata):
        if matches_ignore(tag, ignore_tags):
            pattern = next((p for p in ignore_tags if matches_ignore(tag, [p])), None)
            return f"Tag matches: {pattern or tag}"
    return None

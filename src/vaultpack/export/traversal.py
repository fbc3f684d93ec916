from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..vault.models import VaultFile
from ..vault.store import VaultStore
from .filters import should_exclude
from .links import linked_targets_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilteredFile:
    file: VaultFile
    reason: str


@dataclass
class TraversalResult:
    """Outcome of one traversal run.

    All maps are keyed by vault path. ``included`` and ``filtered`` keep
    first-discovery order and never share a key.
    """

    root: VaultFile
    max_depth: int
    included: dict[str, VaultFile] = field(default_factory=dict)
    filtered: dict[str, FilteredFile] = field(default_factory=dict)
    parent_map: dict[str, set[str]] = field(default_factory=dict)
    depth_map: dict[str, int] = field(default_factory=dict)
    children_map: dict[str, set[str]] = field(default_factory=dict)

    def included_files(self) -> list[VaultFile]:
        return list(self.included.values())

    def lookup(self, path: str) -> Optional[VaultFile]:
        if path in self.included:
            return self.included[path]
        if path in self.filtered:
            return self.filtered[path].file
        return None


@dataclass
class _TraversalState:
    store: VaultStore
    max_depth: int
    ignore_folders: list[str]
    ignore_tags: list[str]
    result: TraversalResult
    visited: set[str] = field(default_factory=set)


def _visit(state: _TraversalState, file: VaultFile, depth: int, parent: Optional[VaultFile]) -> list[VaultFile]:
    """Process one file and return the files it links to, in link order."""
    if file.path in state.visited or depth > state.max_depth:
        return []

    result = state.result
    state.visited.add(file.path)
    result.depth_map[file.path] = depth
    if parent is not None:
        result.children_map.setdefault(parent.path, set()).add(file.path)
        result.parent_map.setdefault(file.path, set()).add(parent.path)

    reason = should_exclude(
        file,
        state.store.get_metadata(file),
        state.ignore_folders,
        state.ignore_tags,
    )
    if reason:
        logger.debug("Filtered %s at depth %d: %s", file.path, depth, reason)
        result.filtered[file.path] = FilteredFile(file=file, reason=reason)
        return []

    result.included[file.path] = file

    if not (file.is_markdown or file.is_canvas):
        return []

    linked_files: list[VaultFile] = []
    for target in linked_targets_for(file, state.store.read_text(file)):
        linked = state.store.resolve_link(target, file.path)
        if linked is None:
            logger.debug("Unresolved link %r in %s", target, file.path)
            continue
        linked_files.append(linked)
    return linked_files


def traverse(
    store: VaultStore,
    root: VaultFile,
    max_depth: int,
    ignore_folders: Optional[list[str]] = None,
    ignore_tags: Optional[list[str]] = None,
) -> TraversalResult:
    """Collect ``root`` and every file reachable from it within ``max_depth`` hops.

    Depth-first; each file is processed once, at the depth and under the
    parent through which it was first reached. Filtered files are recorded
    with their reason and not followed. Each call starts from empty state.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")

    state = _TraversalState(
        store=store,
        max_depth=max_depth,
        ignore_folders=list(ignore_folders or []),
        ignore_tags=list(ignore_tags or []),
        result=TraversalResult(root=root, max_depth=max_depth),
    )
    # Children are pushed reversed so they pop in link order.
    stack: list[tuple[VaultFile, int, Optional[VaultFile]]] = [(root, 0, None)]
    while stack:
        file, depth, parent = stack.pop()
        children = _visit(state, file, depth, parent)
        stack.extend((child, depth + 1, file) for child in reversed(children))

    logger.debug(
        "Traversal from %s (depth %d): %d included, %d filtered",
        root.path,
        max_depth,
        len(state.result.included),
        len(state.result.filtered),
    )
    return state.result

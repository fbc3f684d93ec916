from __future__ import annotations

from typing import Optional

from rich.markup import escape
from rich.tree import Tree

from ..vault.store import sort_files
from .traversal import TraversalResult


def _label(result: TraversalResult, path: str) -> str:
    filtered = result.filtered.get(path)
    if filtered is not None:
        return f"[dim strike]{escape(path)}[/dim strike] [yellow]({escape(filtered.reason)})[/yellow]"
    return escape(path)


def build_tree(result: TraversalResult) -> Tree:
    """Render the children map as a tree rooted at the traversal root.

    Each file appears once, under the parent that discovered it.
    """
    seen: set[str] = set()

    def add(node: Optional[Tree], path: str) -> Tree:
        seen.add(path)
        label = _label(result, path)
        branch = Tree(label) if node is None else node.add(label)
        children = [result.lookup(p) for p in result.children_map.get(path, set())]
        for child in sort_files(c for c in children if c is not None):
            if child.path not in seen:
                add(branch, child.path)
        return branch

    return add(None, result.root.path)

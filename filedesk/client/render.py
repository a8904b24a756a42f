"""Pure projection of tree state into a render tree.

``render_tree`` is the only place that decides what the sidebar shows.  It
reads nothing but its arguments (root node, folder cache, expanded set,
descriptions, selection), so the expanded set stays the single source of
truth for "is this folder open".

Folder children are projected from the cache whenever it holds an entry,
also for collapsed folders (they are rendered but hidden).  A path is
*materialized* when it appears anywhere in the render tree.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Set
from dataclasses import dataclass

from filedesk.client.models import EntryType, SelectedItem, TreeNode
from filedesk.paths import ROOT, normalize


@dataclass(frozen=True)
class RenderedNode:
    name: str
    path: str
    type: EntryType
    level: int
    has_children: bool = False
    expanded: bool = False
    selected: bool = False
    description: str = ""
    children: tuple[RenderedNode, ...] = ()


def _project(
    node: TreeNode,
    level: int,
    cache: Mapping[str, tuple[TreeNode, ...]],
    expanded: Set[str],
    descriptions: Mapping[str, str],
    selected_path: str | None,
) -> RenderedNode:
    path = normalize(node.path)
    description = descriptions.get(path, "")
    is_selected = path == selected_path

    if not node.is_folder:
        return RenderedNode(
            name=node.name,
            path=path,
            type="file",
            level=level,
            selected=is_selected,
            description=description,
        )

    listing = cache.get(path)
    if listing is None and node.children:
        listing = node.children
    children = tuple(
        _project(child, level + 1, cache, expanded, descriptions, selected_path)
        for child in (listing or ())
    )
    return RenderedNode(
        name=node.name,
        path=path,
        type="folder",
        level=level,
        has_children=bool(node.has_children) or bool(children),
        expanded=path == ROOT or path in expanded,
        selected=is_selected,
        description=description,
        children=children,
    )


def render_tree(
    root: TreeNode,
    cache: Mapping[str, tuple[TreeNode, ...]],
    expanded: Set[str],
    descriptions: Mapping[str, str],
    selected: SelectedItem | None = None,
) -> RenderedNode:
    """Project the current state rooted at *root* into a render tree."""
    selected_path = normalize(selected.path) if selected else None
    return _project(root, 0, cache, expanded, descriptions, selected_path)


def walk(node: RenderedNode) -> Iterator[RenderedNode]:
    """Yield *node* and every rendered descendant, depth first."""
    yield node
    for child in node.children:
        yield from walk(child)


def materialized_paths(node: RenderedNode | None) -> dict[str, RenderedNode]:
    """Map every rendered path to its node."""
    if node is None:
        return {}
    return {item.path: item for item in walk(node)}


def format_tree(node: RenderedNode, indent: str = "  ") -> str:
    """Text outline of the visible part of the tree (collapsed subtrees hidden)."""
    lines: list[str] = []

    def _emit(item: RenderedNode) -> None:
        if item.type == "folder":
            marker = "▾" if item.expanded else "▸"
        else:
            marker = " "
        label = f"{indent * item.level}{marker} {item.name or ROOT}"
        if item.selected:
            label += " *"
        if item.description:
            label += f"  — {item.description}"
        lines.append(label)
        if item.type == "folder" and item.expanded:
            for child in item.children:
                _emit(child)

    _emit(node)
    return "\n".join(lines)

"""Lazily-populated cache of directory listings plus tree UI state.

The store owns four pieces of state, all keyed by canonical path:

* ``cache``:     folder path → tuple of its immediate children.  A key that
  is present means "known and current as of the last fetch"; an absent key
  means "unknown, must fetch".
* ``expanded``:  folders the user has opened.  Independent of the cache.
* ``selected``:  the highlighted entry, or ``None``.
* ``rendered``:  the last projection made by :func:`render_tree`.

The server has no push channel, so every mutation must :meth:`invalidate`
the affected subtree before it is read again.

Fetches are coalesced per path: while a folder is being fetched, further
``get_children`` calls for it await the same request.  Invalidating a path
while its fetch is in flight detaches that fetch: it still answers the
callers already waiting on it, but its result is not cached.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace

from filedesk.client.models import EntryType, SelectedItem, TreeNode
from filedesk.client.remote import NetworkFailure, RemoteFileService
from filedesk.client.render import RenderedNode, materialized_paths, render_tree
from filedesk.paths import (
    ROOT,
    ancestors,
    basename,
    depth,
    is_descendant,
    normalize,
    parent,
    rewrite,
)

logger = logging.getLogger(__name__)


def _rename_node(node: TreeNode, old: str, new: str) -> TreeNode:
    if not is_descendant(old, node.path):
        return node
    name = basename(new) if node.path == old else node.name
    return replace(node, name=name, path=rewrite(node.path, old, new))


class TreeStore:
    """Folder cache, expanded set and selection for one tree view."""

    def __init__(
        self,
        remote: RemoteFileService,
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self._remote = remote
        self.descriptions: Mapping[str, str] = descriptions if descriptions is not None else {}
        self.cache: dict[str, tuple[TreeNode, ...]] = {}
        self.expanded: set[str] = set()
        self.selected: SelectedItem | None = None
        self.root: TreeNode | None = None
        self.rendered: RenderedNode | None = None
        self._materialized: dict[str, RenderedNode] = {}
        self._pending: dict[str, asyncio.Task[TreeNode]] = {}

    # ── fetching ─────────────────────────────────────────────────────────

    async def _fetch(self, key: str) -> TreeNode:
        me = asyncio.current_task()
        try:
            node = await self._remote.fetch_level(key)
            # detached by invalidate() while in flight
            if self._pending.get(key) is me:
                self.cache[key] = tuple(node.children or ())
                self._refresh_hint(key, bool(node.children))
            else:
                logger.debug("Discarding stale listing for %s", key)
            return node
        finally:
            if self._pending.get(key) is me:
                del self._pending[key]

    def _refresh_hint(self, key: str, has_children: bool) -> None:
        """Align *key*'s ``has_children`` in its parent's cached listing."""
        parent_key = parent(key)
        listing = self.cache.get(parent_key) if parent_key else None
        if not listing:
            return
        self.cache[parent_key] = tuple(
            replace(child, has_children=has_children)
            if child.path == key and child.is_folder and child.has_children != has_children
            else child
            for child in listing
        )

    async def _fetch_node(self, key: str) -> TreeNode:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(key))
            self._pending[key] = task
        return await asyncio.shield(task)

    async def get_children(self, folder_path: str) -> tuple[TreeNode, ...]:
        """Return the children of *folder_path*, fetching one level if needed."""
        key = normalize(folder_path)
        if key in self.cache:
            return self.cache[key]
        node = await self._fetch_node(key)
        return self.cache.get(key, tuple(node.children or ()))

    def cached(self, folder_path: str) -> tuple[TreeNode, ...] | None:
        """Cached children of *folder_path* without fetching (``None`` if unknown)."""
        return self.cache.get(normalize(folder_path))

    async def load_root(self) -> TreeNode:
        """Fetch the root level and make it the node the tree renders from."""
        node = await self._fetch_node(ROOT)
        self.root = node
        return node

    def invalidate(self, path: str) -> None:
        """Forget *path* and every cached folder underneath it."""
        key = normalize(path)
        if key == ROOT:
            self.cache.clear()
            self._pending.clear()
            return
        for cached_key in [k for k in self.cache if is_descendant(key, k)]:
            del self.cache[cached_key]
        for pending_key in [k for k in self._pending if is_descendant(key, k)]:
            del self._pending[pending_key]

    # ── expanded set / selection ─────────────────────────────────────────

    def set_expanded(self, path: str, expanded: bool) -> None:
        key = normalize(path)
        if expanded:
            self.expanded.add(key)
        else:
            self.expanded.discard(key)

    def is_expanded(self, path: str) -> bool:
        key = normalize(path)
        return key == ROOT or key in self.expanded

    async def toggle(self, path: str) -> bool:
        """Expand or collapse *path*; returns the new expanded state.

        Expanding an uncached folder fetches it even when the server hinted
        it was empty: the hint may be stale.
        """
        key = normalize(path)
        if key in self.expanded:
            self.expanded.discard(key)
            self.render()
            return False
        self.expanded.add(key)
        if key not in self.cache:
            try:
                await self.get_children(key)
            except NetworkFailure as exc:
                logger.error("Could not load folder %s: %s", key, exc)
        self.render()
        return True

    def select(self, path: str | None, entry_type: EntryType | None = None) -> None:
        if path is None:
            self.selected = None
        else:
            key = normalize(path)
            if entry_type is None:
                node = self._materialized.get(key)
                entry_type = node.type if node else "folder" if key == ROOT else "file"
            self.selected = SelectedItem(key, entry_type)
        self.render()

    def clear_selection(self) -> None:
        self.select(None)

    @property
    def current_folder(self) -> str:
        """Folder that create/upload target: selected folder or selected file's parent."""
        if self.selected is None:
            return ROOT
        if self.selected.type == "folder":
            return self.selected.path
        return parent(self.selected.path) or ROOT

    def snapshot(self) -> tuple[set[str], SelectedItem | None]:
        return set(self.expanded), self.selected

    # ── rendering ────────────────────────────────────────────────────────

    def render(self) -> RenderedNode | None:
        if self.root is None:
            self.rendered = None
        else:
            self.rendered = render_tree(
                self.root, self.cache, self.expanded, self.descriptions, self.selected
            )
        self._materialized = materialized_paths(self.rendered)
        return self.rendered

    def is_materialized(self, path: str) -> bool:
        return normalize(path) in self._materialized

    def rendered_node(self, path: str) -> RenderedNode | None:
        return self._materialized.get(normalize(path))

    def _listed(self, path: str) -> bool | None:
        """Whether *path*'s parent listing contains it as a folder (None if unknown)."""
        listing = self.cache.get(parent(path) or ROOT)
        if listing is None:
            return None
        return any(child.path == path and child.is_folder for child in listing)

    # ── reconciliation ───────────────────────────────────────────────────

    async def _reexpand(self, paths: Iterable[str]) -> None:
        """Re-open *paths* outermost first, fetching uncached folders.

        A folder's node only exists in the render tree once its parent's
        children are rendered, hence the depth ordering.
        """
        for path in sorted(paths, key=lambda p: (depth(p), p)):
            if path == ROOT:
                continue
            node = self._materialized.get(path)
            if node is None or node.type != "folder":
                if self._listed(path) is False:
                    logger.debug("Dropping expanded folder that no longer exists: %s", path)
                    self.expanded.discard(path)
                continue
            if path in self.cache or not node.has_children:
                continue
            try:
                await self.get_children(path)
            except NetworkFailure as exc:
                logger.error("Could not reload folder %s: %s", path, exc)
                continue
            self.render()

    async def _restore_selection(self, previous: SelectedItem | None) -> None:
        if previous is None:
            self.selected = None
            return
        path = normalize(previous.path)
        if path not in self._materialized:
            for ancestor in ancestors(path):
                node = self._materialized.get(ancestor)
                if node is None or node.type != "folder":
                    break
                self.expanded.add(ancestor)
                if ancestor not in self.cache:
                    try:
                        await self.get_children(ancestor)
                    except NetworkFailure as exc:
                        logger.error("Could not reload folder %s: %s", ancestor, exc)
                        break
                self.render()
                if path in self._materialized:
                    break
        node = self._materialized.get(path)
        if node is None:
            logger.debug("Previously selected %s no longer exists", path)
            self.selected = None
        else:
            self.selected = SelectedItem(path, node.type)

    async def reconcile_after_full_reload(
        self,
        previous_expanded: Iterable[str],
        previous_selection: SelectedItem | None,
    ) -> None:
        """Replay expanded folders and selection after the root was reloaded."""
        self.expanded = {normalize(p) for p in previous_expanded}
        self.render()
        await self._reexpand(set(self.expanded))
        await self._restore_selection(previous_selection)
        self.render()

    async def restore_expanded_children(self, parent_path: str) -> None:
        """Re-open expanded folders below *parent_path* after it was reloaded."""
        key = normalize(parent_path)
        below = {p for p in self.expanded if p != key and is_descendant(key, p)}
        self.render()
        await self._reexpand(below)
        self.render()

    def forget(self, path: str) -> None:
        """Drop all state for a deleted *path* and everything under it."""
        key = normalize(path)
        self.invalidate(key)
        self.expanded = {p for p in self.expanded if not is_descendant(key, p)}
        if self.selected is not None and is_descendant(key, self.selected.path):
            self.selected = None

    # ── rename ───────────────────────────────────────────────────────────

    def rewrite_paths(self, old: str, new: str) -> None:
        """Relabel every stored path at or under *old* to live under *new*."""
        old = normalize(old)
        new = normalize(new)
        self.expanded = {rewrite(p, old, new) for p in self.expanded}
        self.cache = {
            rewrite(key, old, new): tuple(_rename_node(n, old, new) for n in listing)
            for key, listing in self.cache.items()
        }
        for pending_key in [k for k in self._pending if is_descendant(old, k)]:
            del self._pending[pending_key]
        if self.selected is not None:
            self.selected = replace(self.selected, path=rewrite(self.selected.path, old, new))
        self.render()

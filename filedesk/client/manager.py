"""File-manager façade: user actions on top of the tree store and tabs.

Every mutation follows the same shape:

1. one remote call (nothing local changes if it fails),
2. local bookkeeping (tabs, selection, path rewrites),
3. invalidation of the parent folder of the affected path,
4. a targeted reload of that parent plus its expanded descendants, or a
   full tree + descriptions reload when the parent is not rendered.

Remote failures are logged and re-raised as
:class:`~filedesk.client.remote.NetworkFailure`; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from filedesk.client.models import DownloadedFile, EntryType, OpenFile, UploadItem
from filedesk.client.remote import NetworkFailure, RemoteFileService
from filedesk.client.render import RenderedNode, format_tree
from filedesk.client.tabs import TabManager
from filedesk.client.tree_store import TreeStore
from filedesk.paths import ROOT, basename, is_descendant, normalize, parent, rewrite

logger = logging.getLogger(__name__)


class FileManager:
    """Client-side state and operations of one file-manager window."""

    def __init__(self, remote: RemoteFileService) -> None:
        self.remote = remote
        # shared with the tree store, which renders descriptions as tooltips
        self.descriptions: dict[str, str] = {}
        self.tree = TreeStore(remote, self.descriptions)
        self.tabs = TabManager(remote)

    async def start(self) -> RenderedNode | None:
        """Initial load: root level, descriptions, no open tabs."""
        await self.refresh_tree_and_descriptions()
        return self.tree.rendered

    def outline(self) -> str:
        """Text outline of the visible tree."""
        if self.tree.rendered is None:
            return ""
        return format_tree(self.tree.rendered)

    # ── loading ──────────────────────────────────────────────────────────

    async def load_descriptions(self) -> None:
        try:
            fetched = await self.remote.get_descriptions()
        except NetworkFailure as exc:
            logger.error("Could not load descriptions: %s", exc)
            return
        self.descriptions.clear()
        self.descriptions.update({normalize(k): v for k, v in fetched.items() if v})

    async def refresh_tree_and_descriptions(self) -> None:
        """Reload the whole tree, keeping expanded folders and the selection."""
        previous_expanded, previous_selection = self.tree.snapshot()
        self.tree.invalidate(ROOT)
        try:
            await asyncio.gather(self.tree.load_root(), self.load_descriptions())
        except NetworkFailure as exc:
            logger.error("Could not load tree: %s", exc)
            raise
        await self.tree.reconcile_after_full_reload(previous_expanded, previous_selection)

    async def _reload_parent(self, folder: str) -> None:
        """Targeted reload of *folder* after a mutation inside it.

        Runs after the server accepted the mutation, so a failed reload is
        logged and leaves the folder uncached instead of failing the call.
        """
        key = normalize(folder)
        was_rendered = self.tree.is_materialized(key)
        self.tree.invalidate(key)
        try:
            if not was_rendered:
                await self.refresh_tree_and_descriptions()
            elif self.tree.is_expanded(key):
                await self.tree.get_children(key)
                await self.tree.restore_expanded_children(key)
        except NetworkFailure as exc:
            logger.error("Could not reload folder %s: %s", key, exc)
        # collapsed: the next expand fetches it
        self.tree.render()

    # ── navigation ───────────────────────────────────────────────────────

    async def toggle_folder(self, path: str) -> bool:
        return await self.tree.toggle(path)

    def select(self, path: str | None, entry_type: EntryType | None = None) -> None:
        self.tree.select(path, entry_type)

    async def open_file(self, path: str) -> OpenFile:
        key = normalize(path)
        node = self.tree.rendered_node(key)
        try:
            tab = await self.tabs.open(key, node.name if node else None)
        except NetworkFailure as exc:
            logger.error("Could not open %s: %s", key, exc)
            raise
        self.tree.select(key, "file")
        return tab

    def switch_tab(self, path: str) -> bool:
        return self.tabs.activate(path)

    def close_tab(self, path: str) -> bool:
        return self.tabs.close(path)

    # ── mutations ────────────────────────────────────────────────────────

    async def create_folder(self, parent_path: str | None, name: str) -> str:
        """Create *name* inside *parent_path* (``None``: the current folder)."""
        name = name.strip()
        if not name:
            raise ValueError("Folder name must not be empty.")
        target = normalize(parent_path if parent_path is not None else self.tree.current_folder)
        try:
            path = await self.remote.create_folder(target, name)
        except NetworkFailure as exc:
            logger.error("Could not create folder %s in %s: %s", name, target, exc)
            raise
        await self._reload_parent(target)
        return path

    async def upload_files(
        self, target_path: str | None, files: Iterable[UploadItem]
    ) -> list[str]:
        """Upload *files* one by one into *target_path* (``None``: current folder).

        A failed upload is logged and the remaining files are still sent.
        """
        target = normalize(target_path if target_path is not None else self.tree.current_folder)
        uploaded: list[str] = []
        for item in files:
            try:
                uploaded.append(await self.remote.upload_file(target, item))
            except NetworkFailure as exc:
                logger.error("Could not upload %s to %s: %s", item.name, target, exc)
        await self._reload_parent(target)
        return uploaded

    async def delete_item(self, path: str | None = None) -> None:
        """Delete *path* (default: the selection), closing tabs under it."""
        if path is None:
            if self.tree.selected is None:
                raise ValueError("Nothing selected.")
            path = self.tree.selected.path
        key = normalize(path)
        if key == ROOT:
            raise ValueError("The root folder cannot be deleted.")
        try:
            await self.remote.delete_entry(key)
        except NetworkFailure as exc:
            logger.error("Could not delete %s: %s", key, exc)
            raise
        self.tabs.close_under(key)
        for gone in [k for k in self.descriptions if is_descendant(key, k)]:
            del self.descriptions[gone]
        self.tree.forget(key)
        await self._reload_parent(parent(key) or ROOT)

    async def rename_item(self, old_path: str | None, new_name: str) -> str:
        """Rename *old_path* (``None``: the selection) to a sibling *new_name*."""
        if old_path is None:
            if self.tree.selected is None:
                raise ValueError("Nothing selected.")
            old_path = self.tree.selected.path
        old = normalize(old_path)
        if old == ROOT:
            raise ValueError("The root folder cannot be renamed.")
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("New name must not be empty.")
        try:
            new = await self.remote.rename_path(old, new_name)
        except NetworkFailure as exc:
            logger.error("Could not rename %s to %s: %s", old, new_name, exc)
            raise
        if new != old:
            renamed = {rewrite(k, old, new): v for k, v in self.descriptions.items()}
            self.descriptions.clear()
            self.descriptions.update(renamed)
            self.tabs.rewrite_paths(old, new)
            self.tree.rewrite_paths(old, new)
        await self._reload_parent(parent(old) or ROOT)
        return new

    async def save_description(self, path: str | None, text: str) -> None:
        """Store *text* for *path* (``None``: the active tab); empty text clears it."""
        if path is None:
            path = self.tabs.active_tab
        if path is None:
            raise ValueError("No file is open.")
        key = normalize(path)
        try:
            await self.remote.set_description(key, text)
        except NetworkFailure as exc:
            logger.error("Could not save description for %s: %s", key, exc)
            raise
        if text:
            self.descriptions[key] = text
        else:
            self.descriptions.pop(key, None)
        self.tabs.set_description(key, text)
        # descriptions aren't cached listings; re-rendering refreshes tooltips
        self.tree.render()

    async def download(self, path: str | None = None) -> DownloadedFile:
        """Fetch the bytes of *path* (default: the active tab)."""
        if path is None:
            path = self.tabs.active_tab
        if path is None:
            raise ValueError("No file is open.")
        key = normalize(path)
        try:
            return await self.remote.download_file(key)
        except NetworkFailure as exc:
            logger.error("Could not download %s: %s", basename(key), exc)
            raise

"""Open-file tabs: content, description and the active tab.

Tabs are kept in creation order.  Opening a path that already has a tab
just activates it (no refetch).  Closing the active tab activates the most
recently created remaining tab, or leaves no active tab at all (the empty
state) when none remain.
"""

from __future__ import annotations

import asyncio
import logging

from filedesk.client.models import OpenFile
from filedesk.client.remote import RemoteFileService
from filedesk.paths import basename, is_descendant, normalize, rewrite

logger = logging.getLogger(__name__)


class TabManager:
    def __init__(self, remote: RemoteFileService) -> None:
        self._remote = remote
        self.open_files: dict[str, OpenFile] = {}
        self.active_tab: str | None = None

    def __contains__(self, path: str) -> bool:
        return normalize(path) in self.open_files

    @property
    def active(self) -> OpenFile | None:
        if self.active_tab is None:
            return None
        return self.open_files.get(self.active_tab)

    @property
    def is_empty(self) -> bool:
        return not self.open_files

    async def open(self, path: str, name: str | None = None) -> OpenFile:
        """Open *path* in a tab (fetching content + description) and activate it."""
        key = normalize(path)
        if key in self.open_files:
            self.activate(key)
            return self.open_files[key]

        content, description = await asyncio.gather(
            self._remote.read_file_content(key),
            self._remote.get_description(key),
        )
        # another open() for the same path may have finished meanwhile
        tab = self.open_files.setdefault(
            key,
            OpenFile(path=key, name=name or basename(key), content=content, description=description),
        )
        self.activate(key)
        return tab

    def activate(self, path: str) -> bool:
        key = normalize(path)
        if key not in self.open_files:
            return False
        self.active_tab = key
        return True

    def close(self, path: str) -> bool:
        key = normalize(path)
        if self.open_files.pop(key, None) is None:
            return False
        if self.active_tab == key:
            self.active_tab = next(reversed(self.open_files), None)
        return True

    def close_under(self, path: str) -> list[str]:
        """Close every tab at or below *path*; returns the closed paths."""
        closed = [p for p in self.open_files if is_descendant(path, p)]
        for p in closed:
            self.close(p)
        if closed:
            logger.debug("Closed %d tab(s) under %s", len(closed), normalize(path))
        return closed

    def set_description(self, path: str, text: str) -> None:
        tab = self.open_files.get(normalize(path))
        if tab is not None:
            tab.description = text

    def rewrite_paths(self, old: str, new: str) -> None:
        """Relabel tabs after ``old`` was renamed to ``new``, keeping tab order.

        Only the tab for ``old`` itself takes the new display name.
        """
        old = normalize(old)
        new = normalize(new)
        relabelled: dict[str, OpenFile] = {}
        for path, tab in self.open_files.items():
            new_path = rewrite(path, old, new)
            if new_path != path:
                tab.path = new_path
                if path == old:
                    tab.name = basename(new)
            relabelled[new_path] = tab
        self.open_files = relabelled
        if self.active_tab is not None:
            self.active_tab = rewrite(self.active_tab, old, new)

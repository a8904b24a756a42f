"""One-level directory listing for the tree sidebar.

The client never receives more than one level per request: the node for
the requested path plus, for folders, its immediate children.  Children of
children are summarised by a ``hasChildren`` hint only.

Node shape
----------
    {"name": "docs", "path": "/docs", "type": "folder",
     "hasChildren": True, "children": [...]}

Files carry neither ``hasChildren`` nor ``children``; an empty folder has
no ``children`` key.

Ordering
--------
Within the listed folder: sub-folders first (sorted), then files (sorted).
Both lists are sorted case-sensitively by name (matches typical filesystem
behaviour on Linux).  Symlinks and other special entries are skipped.
"""

import logging
from pathlib import Path

from filedesk import config
from filedesk.pathguard import resolve_entry, to_client_path

logger = logging.getLogger(__name__)


def _has_entries(directory: Path) -> bool:
    """Return True if *directory* contains at least one entry."""
    try:
        return any(True for _ in directory.iterdir())
    except OSError as exc:
        logger.warning("Cannot list %s: %s", directory, exc)
        return False


def _child_node(entry: Path, path: str) -> dict:
    if entry.is_dir():
        return {
            "name": entry.name,
            "path": path,
            "type": "folder",
            "hasChildren": _has_entries(entry),
        }
    return {"name": entry.name, "path": path, "type": "file"}


def list_children(directory: Path, prefix: str) -> list[dict]:
    """Return the child nodes of *directory*, folders first.

    ``prefix`` is the canonical client path of *directory*.
    """
    dirs: list[Path] = []
    files: list[Path] = []

    for entry in directory.iterdir():
        if entry.is_symlink():
            continue
        if entry.is_dir():
            dirs.append(entry)
        elif entry.is_file():
            files.append(entry)
        # sockets / fifos: skipped

    dirs.sort(key=lambda p: p.name)
    files.sort(key=lambda p: p.name)

    base = prefix.rstrip("/")
    return [_child_node(entry, f"{base}/{entry.name}") for entry in dirs + files]


def fetch_level(raw_path: str | None) -> dict:
    """Return the node for *raw_path* with one level of children.

    The root node is named after the upload directory so the sidebar has a
    stable label.
    """
    resolved = resolve_entry(raw_path)
    path = to_client_path(resolved)
    name = resolved.name if path != "/" else config.get().upload_dir.name

    if not resolved.is_dir():
        return {"name": name, "path": path, "type": "file"}

    children = list_children(resolved, path)
    node = {"name": name, "path": path, "type": "folder", "hasChildren": bool(children)}
    if children:
        node["children"] = children
    return node

"""Client-side datatypes for tree nodes, selection and open files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from filedesk.paths import normalize

EntryType = Literal["file", "folder"]


@dataclass(frozen=True)
class TreeNode:
    """One entry as returned by the directory service.

    ``children`` is only populated for the level that was actually requested;
    ``has_children`` is a server hint and may be stale.
    """

    name: str
    path: str
    type: EntryType
    has_children: bool | None = None
    children: tuple[TreeNode, ...] | None = None

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TreeNode:
        """Build a node from the wire format, re-normalizing every path."""
        children = payload.get("children")
        return cls(
            name=payload.get("name", ""),
            path=normalize(payload.get("path")),
            type="folder" if payload.get("type") == "folder" else "file",
            has_children=payload.get("hasChildren"),
            children=(
                tuple(cls.from_payload(child) for child in children)
                if children is not None
                else None
            ),
        )


@dataclass(frozen=True)
class SelectedItem:
    path: str
    type: EntryType


@dataclass
class OpenFile:
    """A file shown in a tab."""

    path: str
    name: str
    content: str
    description: str = ""


@dataclass(frozen=True)
class DownloadedFile:
    name: str
    data: bytes
    media_type: str = "application/octet-stream"


@dataclass
class UploadItem:
    """A file queued for upload: its name and raw bytes."""

    name: str
    data: bytes
    media_type: str = "application/octet-stream"

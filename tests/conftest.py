"""Shared fixtures for the client-core tests."""

import asyncio

import pytest

from filedesk.client.models import TreeNode
from filedesk.client.remote import NetworkFailure
from filedesk.paths import basename, join, normalize


class FakeRemote:
    """In-memory directory service that records every call.

    ``fs`` maps a folder path to its child names; names ending in ``/`` are
    folders.  ``gates`` holds events a fetch waits on before answering, and
    ``failing`` lists paths whose fetch raises NetworkFailure.
    """

    def __init__(self, fs: dict[str, list[str]]) -> None:
        self.fs = fs
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.failing: set[str] = set()
        self.contents: dict[str, str] = {}
        self.descriptions: dict[str, str] = {}
        self.content_calls: list[str] = []

    def _child(self, folder: str, name: str) -> dict:
        if name.endswith("/"):
            path = join(folder, name.rstrip("/"))
            return {
                "name": basename(path),
                "path": path,
                "type": "folder",
                "hasChildren": bool(self.fs.get(path)),
            }
        return {"name": name, "path": join(folder, name), "type": "file"}

    async def fetch_level(self, path: str) -> TreeNode:
        path = normalize(path)
        self.calls.append(path)
        gate = self.gates.get(path)
        if gate is not None:
            await gate.wait()
        if path in self.failing or path not in self.fs:
            raise NetworkFailure(f"GET /api/tree?path={path} → 404", status_code=404)
        children = [self._child(path, name) for name in self.fs[path]]
        payload = {
            "name": basename(path),
            "path": path,
            "type": "folder",
            "hasChildren": bool(children),
        }
        if children:
            payload["children"] = children
        return TreeNode.from_payload(payload)

    async def read_file_content(self, path: str) -> str:
        self.content_calls.append(path)
        if path in self.failing:
            raise NetworkFailure(f"GET /api/file-content?path={path} → 500", status_code=500)
        return self.contents.get(path, f"content of {path}")

    async def get_description(self, path: str) -> str:
        return self.descriptions.get(path, "")


@pytest.fixture()
def fake_remote() -> FakeRemote:
    return FakeRemote(
        {
            "/": ["a/", "x/", "top.txt"],
            "/a": ["b/", "bc/", "a.txt"],
            "/a/b": ["deep.txt"],
            "/a/bc": [],
            "/x": ["y.txt"],
        }
    )

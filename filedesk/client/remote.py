"""Async HTTP client for the FileDesk server API.

Every call is one request through a shared :class:`httpx.AsyncClient`.
Non-2xx responses and transport errors (including timeouts) are raised as
:class:`NetworkFailure`; nothing is retried.

Examples
--------
::

    async with RemoteFileService("http://localhost:3000") as remote:
        root = await remote.fetch_level("/")
        await remote.create_folder("/", "docs")

Tests inject an in-process transport instead of a real socket::

    transport = httpx.ASGITransport(app=app)
    remote = RemoteFileService("http://testserver", transport=transport)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from filedesk.client.models import DownloadedFile, TreeNode, UploadItem
from filedesk.paths import basename, join, normalize, parent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class NetworkFailure(Exception):
    """A remote call failed: non-success status or transport error."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class RemoteFileService:
    """Directory, file and description endpoints of the server.

    Parameters
    ----------
    base_url : str
        Server origin, e.g. ``http://localhost:3000``.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (used for in-process testing).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RemoteFileService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {"base_url": self._base_url, "timeout": self._timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── plumbing ─────────────────────────────────────────────────────────

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s %s", method, url, kwargs.get("params") or "")
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"{method} {url} failed: {exc}") from exc
        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            detail = body.get("detail", body) if isinstance(body, dict) else body
            raise NetworkFailure(
                f"{method} {url} → {response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    async def _json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._request(method, url, **kwargs)
        try:
            return response.json()
        except ValueError:
            return {}

    # ── directory service ────────────────────────────────────────────────

    async def fetch_level(self, path: str) -> TreeNode:
        """Fetch *path* and, for folders, its immediate children."""
        payload = await self._json("GET", "/api/tree", params={"path": normalize(path)})
        return TreeNode.from_payload(payload)

    async def create_folder(self, parent_path: str, name: str) -> str:
        payload = await self._json(
            "POST", "/api/folder", json={"path": normalize(parent_path), "name": name}
        )
        return normalize(payload.get("path"))

    async def delete_entry(self, path: str) -> None:
        await self._json("DELETE", "/api/item", params={"path": normalize(path)})

    async def rename_path(self, old_path: str, new_name: str) -> str:
        payload = await self._json(
            "PUT", "/api/rename", json={"oldPath": normalize(old_path), "newName": new_name}
        )
        if payload.get("newPath"):
            return normalize(payload["newPath"])
        return join(parent(old_path) or "/", new_name)

    async def upload_file(self, target_path: str, item: UploadItem) -> str:
        payload = await self._json(
            "POST",
            "/api/upload",
            data={"path": normalize(target_path)},
            files={"file": (item.name, item.data, item.media_type)},
        )
        return normalize(payload.get("path"))

    async def read_file_content(self, path: str) -> str:
        payload = await self._json("GET", "/api/file-content", params={"path": normalize(path)})
        return payload.get("content", "")

    async def download_file(self, path: str) -> DownloadedFile:
        response = await self._request("GET", "/api/download", params={"path": normalize(path)})
        return DownloadedFile(
            name=basename(path),
            data=response.content,
            media_type=response.headers.get("content-type", "application/octet-stream"),
        )

    # ── description store ────────────────────────────────────────────────

    async def get_description(self, path: str) -> str:
        payload = await self._json("GET", "/api/description", params={"path": normalize(path)})
        return payload.get("description") or ""

    async def get_descriptions(self) -> dict[str, str]:
        payload = await self._json("GET", "/api/description")
        return dict(payload.get("description") or {})

    async def set_description(self, path: str, text: str) -> None:
        await self._json(
            "POST", "/api/description", json={"path": normalize(path), "description": text}
        )

"""Upload-root path-guard — validates and sandboxes every file path.

All filesystem access **must** go through this module.
Never call ``open()`` on user-supplied paths directly.

Public helpers
--------------
resolve_entry(raw)        → Path  – existing file or folder inside the root.
resolve_file(raw)         → Path  – existing regular file.
resolve_folder(raw)       → Path  – existing directory (``/`` is the root).
resolve_new(folder, name) → Path  – not-yet-existing child of a folder.
validate_name(name)       → str   – a single, safe path segment.

Client paths are slash-rooted (``/docs/readme.txt``) and are canonicalised
with :func:`filedesk.paths.normalize` before any check runs.

Raised exceptions map directly to HTTP status codes so FastAPI can
return them as-is.

PathError    (400)  – malformed input (null byte, ``..``, bad name, …).
SandboxError (403)  – path escapes the upload root.
HTTPException(404)  – entry does not exist.
HTTPException(409)  – target name already taken.
"""

from pathlib import Path

from fastapi import HTTPException

from filedesk import config
from filedesk.paths import normalize, segments


# ── custom exception helpers ─────────────────────────────────────────────────


class PathError(HTTPException):
    """400 – the path itself is syntactically invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class SandboxError(HTTPException):
    """403 – well-formed path that escapes the upload root."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=403, detail=detail)


# ── core validation ──────────────────────────────────────────────────────────


def _root() -> Path:
    return config.get().upload_dir.resolve()


def _validate_and_resolve(raw: str | None) -> Path:
    """Validate *raw* and return its resolved absolute path inside the root.

    Checks (in order)
    -----------------
    1. No null bytes.
    2. No backslashes (rules out Windows-style path tricks).
    3. No ``..`` segments anywhere.
    4. The fully-resolved path (symlinks followed) must remain inside the
       upload root.  ``Path.resolve()`` follows every symlink before we
       compare, so this single check catches symlink escapes too.
    """
    root = _root()
    raw = raw or ""

    # 1 – null bytes
    if "\x00" in raw:
        raise PathError("Path must not contain null bytes.")

    # 2 – backslashes
    if "\\" in raw:
        raise PathError("Path must not contain backslashes.")

    # 3 – no ".." anywhere
    parts = segments(raw)
    if ".." in parts:
        raise PathError("Path must not contain '..' segments.")

    # 4 – resolve (follows symlinks) and sandbox-check
    resolved: Path = root.joinpath(*parts).resolve()
    try:
        resolved.relative_to(root)
    except ValueError as exc:
        raise SandboxError("Path resolves outside the upload root.") from exc

    return resolved


# ── public API ───────────────────────────────────────────────────────────────


def validate_name(name: str | None) -> str:
    """Return *name* stripped, or raise PathError if it is not one segment."""
    name = (name or "").strip()
    if not name:
        raise PathError("Name must not be empty.")
    if "\x00" in name:
        raise PathError("Name must not contain null bytes.")
    if "/" in name or "\\" in name:
        raise PathError("Name must not contain path separators.")
    if name in (".", ".."):
        raise PathError(f"'{name}' is not a valid name.")
    return name


def to_client_path(resolved: Path) -> str:
    """Map an absolute path inside the root back to its canonical client path."""
    # the root itself is Path("."), whose parts are empty
    return normalize("/".join(resolved.relative_to(_root()).parts))


def resolve_entry(raw: str | None) -> Path:
    """Validate *raw* and return the absolute path of an existing entry.

    Raises
    ------
    PathError (400)        – malformed input.
    SandboxError (403)     – escapes the upload root.
    HTTPException (404)    – entry does not exist.
    """
    path = _validate_and_resolve(raw)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"Not found: {normalize(raw)}")
    return path


def resolve_file(raw: str | None) -> Path:
    """Like :func:`resolve_entry` but the entry must be a regular file."""
    path = _validate_and_resolve(raw)
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {normalize(raw)}")
    return path


def resolve_folder(raw: str | None) -> Path:
    """Like :func:`resolve_entry` but the entry must be a directory."""
    path = _validate_and_resolve(raw)
    if not path.is_dir():
        raise HTTPException(status_code=404, detail=f"Folder not found: {normalize(raw)}")
    return path


def resolve_new(folder: str | None, name: str | None, *, overwrite: bool = False) -> Path:
    """Return the absolute path for a new entry *name* inside *folder*.

    The folder must exist.  Unless *overwrite* is set, an existing entry with
    the same name raises 409.
    """
    parent_dir = resolve_folder(folder)
    name = validate_name(name)
    target = parent_dir / name
    # the parent is already sandboxed; re-check in case *name* is a symlink
    if target.is_symlink() or target.exists():
        if not overwrite:
            raise HTTPException(
                status_code=409,
                detail=f"An entry named '{name}' already exists in {normalize(folder)}",
            )
        target = _validate_and_resolve(to_client_path(parent_dir) + "/" + name)
    return target

"""Filesystem mutations and reads behind the file-manager API.

Public API
----------
create_folder(parent, name)  -> str    canonical path of the new folder
delete_entry(path)           -> None   recursive for folders
rename_entry(old_path, name) -> str    canonical path after the rename
save_upload(folder, name, f) -> str    canonical path of the written file
read_content(path)           -> str    whole-file UTF-8 text

Every path goes through :mod:`filedesk.pathguard`.  Descriptions follow the
entries they describe: a rename re-keys them, a delete prunes them.

Binary files
------------
``read_content`` decodes strictly as UTF-8.  Files that are not valid UTF-8
are rejected with 415 instead of being shown as mojibake; the client offers
them for download instead.
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from fastapi import HTTPException

from filedesk import descriptions
from filedesk.pathguard import (
    PathError,
    resolve_entry,
    resolve_file,
    resolve_new,
    to_client_path,
    validate_name,
)
from filedesk.paths import ROOT, normalize

logger = logging.getLogger(__name__)

_COPY_CHUNK = 1024 * 1024


def create_folder(parent: str | None, name: str) -> str:
    """Create folder *name* inside *parent* and return its canonical path.

    Raises
    ------
    HTTPException (404)  – parent folder does not exist.
    HTTPException (409)  – an entry with that name already exists.
    """
    target = resolve_new(parent, name)
    target.mkdir()
    path = to_client_path(target)
    logger.info("Created folder %s", path)
    return path


def delete_entry(raw_path: str) -> None:
    """Delete a file, or a folder with everything inside it."""
    if normalize(raw_path) == ROOT:
        raise PathError("The root folder cannot be deleted.")
    resolved = resolve_entry(raw_path)
    path = to_client_path(resolved)
    if resolved.is_dir():
        shutil.rmtree(resolved)
    else:
        resolved.unlink()
    pruned = descriptions.prune(path)
    logger.info("Deleted %s (%d description(s) dropped)", path, pruned)


def rename_entry(old_path: str, new_name: str) -> str:
    """Rename *old_path* to a sibling called *new_name*.

    Returns the new canonical path.  Renaming to the current name is a no-op.
    """
    if normalize(old_path) == ROOT:
        raise PathError("The root folder cannot be renamed.")
    source = resolve_entry(old_path)
    source_path = to_client_path(source)
    new_name = validate_name(new_name)
    if new_name == source.name:
        return source_path

    target = resolve_new(to_client_path(source.parent), new_name)
    source.rename(target)
    new_path = to_client_path(target)
    moved = descriptions.move(source_path, new_path)
    logger.info("Renamed %s -> %s (%d description(s) moved)", source_path, new_path, moved)
    return new_path


def save_upload(folder: str | None, filename: str | None, stream: BinaryIO) -> str:
    """Write *stream* as *filename* inside *folder*, replacing any old file.

    Only the last component of *filename* is used, so client-side directory
    parts in the multipart header are ignored.
    """
    name = Path((filename or "").replace("\\", "/")).name
    target = resolve_new(folder, name, overwrite=True)
    if target.is_dir():
        raise HTTPException(
            status_code=409, detail=f"A folder named '{target.name}' already exists."
        )
    with target.open("wb") as out:
        shutil.copyfileobj(stream, out, _COPY_CHUNK)
    path = to_client_path(target)
    logger.info("Uploaded %s", path)
    return path


def read_content(raw_path: str) -> str:
    """Return the text of *raw_path*.

    Raises
    ------
    HTTPException (404)  – file not found.
    HTTPException (415)  – file is not valid UTF-8 text.
    """
    resolved = resolve_file(raw_path)
    try:
        return resolved.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        logger.info("Refusing to preview binary file %s", resolved)
        raise HTTPException(
            status_code=415, detail="File is not UTF-8 text; download it instead."
        ) from exc

"""Path → description store backed by a single JSON file.

The whole file is read on every access and rewritten in full on every
change.  There is no locking: concurrent writers can lose updates (last
writer wins).  Keys are canonical client paths (``/docs/readme.txt``).

A missing file reads as an empty map.  An unreadable or malformed file is
logged and also reads as empty, so the next write replaces it.
"""

import json
import logging
from pathlib import Path

from filedesk import config
from filedesk.paths import is_descendant, normalize, rewrite

logger = logging.getLogger(__name__)


def _file() -> Path:
    return config.get().descriptions_file


def load_all() -> dict[str, str]:
    """Return the full path → description map."""
    path = _file()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable descriptions file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Descriptions file %s is not a JSON object, ignoring", path)
        return {}
    return {str(k): str(v) for k, v in data.items() if v}


def _save_all(descriptions: dict[str, str]) -> None:
    _file().write_text(
        json.dumps(descriptions, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def get(raw_path: str) -> str:
    """Return the description for *raw_path*, ``""`` when there is none."""
    return load_all().get(normalize(raw_path), "")


def save(raw_path: str, text: str | None) -> None:
    """Store *text* for *raw_path*; empty or missing text deletes the entry."""
    key = normalize(raw_path)
    descriptions = load_all()
    if text:
        descriptions[key] = text
    elif key in descriptions:
        del descriptions[key]
    else:
        return
    _save_all(descriptions)


def move(old_path: str, new_path: str) -> int:
    """Re-key descriptions of *old_path* and its descendants after a rename.

    Returns the number of entries moved.
    """
    descriptions = load_all()
    moved = {
        rewrite(key, old_path, new_path): text
        for key, text in descriptions.items()
        if is_descendant(old_path, key)
    }
    if not moved:
        return 0
    kept = {
        key: text
        for key, text in descriptions.items()
        if not is_descendant(old_path, key)
    }
    kept.update(moved)
    _save_all(kept)
    return len(moved)


def prune(raw_path: str) -> int:
    """Drop descriptions of *raw_path* and its descendants after a delete."""
    descriptions = load_all()
    kept = {
        key: text
        for key, text in descriptions.items()
        if not is_descendant(raw_path, key)
    }
    removed = len(descriptions) - len(kept)
    if removed:
        _save_all(kept)
    return removed

"""Runtime settings for the FileDesk server, validated once at startup.

``load()`` is called by the app lifespan (and by ``python -m filedesk``); it
reads the environment, creates the storage directories and exits the process
when anything is wrong.  Everything else calls ``get()``::

    from filedesk import config

    upload_root = config.get().upload_dir
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

# FILES_DIR, PORT etc. may also come from a .env file in the working directory
from dotenv import load_dotenv

load_dotenv()

DEFAULT_FILES_DIR = "./files"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ── public data class ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    """Where files live and how the server listens."""

    files_dir: Path  # writable dir holding uploads/ and descriptions.json
    upload_dir: Path  # managed root exposed as "/"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def descriptions_file(self) -> Path:
        return self.files_dir / "descriptions.json"

    @classmethod
    def for_files_dir(cls, files_dir: Path, **kwargs) -> "Settings":
        """Build Settings rooted at *files_dir* (used by tests and tooling)."""
        return cls(files_dir=files_dir, upload_dir=files_dir / "uploads", **kwargs)


# ── module-level singleton ───────────────────────────────────────────────────

_settings: Settings | None = None


def _ensure_dir(path: Path, label: str, errors: list[str]) -> Path | None:
    """Create *path* if missing; append a message to *errors* on failure."""
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
            print(f"  ℹ  Created {label}: {path}")
        except OSError as exc:
            errors.append(f"{label}={path} does not exist and could not be created: {exc}")
            return None
    if not path.is_dir():
        errors.append(f"{label}={path} exists but is not a directory.")
        return None
    return path


def load() -> Settings:
    """Build Settings from the environment and cache them.

    * Creates FILES_DIR and its ``uploads/`` sub-directory when missing.
    * Prints a clear summary on success; prints errors and calls sys.exit(1) on
      failure; the server never starts with a bad config.
    * Later calls return the cached instance unchanged.
    """
    global _settings
    if _settings is not None:
        return _settings

    errors: list[str] = []

    # ── FILES_DIR ────────────────────────────────────────────────────────
    files_raw = os.environ.get("FILES_DIR", "").strip() or DEFAULT_FILES_DIR
    files_path = _ensure_dir(Path(files_raw), "FILES_DIR", errors)
    upload_path: Path | None = None
    if files_path is not None:
        upload_path = _ensure_dir(files_path / "uploads", "UPLOAD_DIR", errors)

    # ── HOST / PORT ──────────────────────────────────────────────────────
    host = os.environ.get("HOST", "").strip() or DEFAULT_HOST
    port = DEFAULT_PORT
    port_raw = os.environ.get("PORT", "").strip()
    if port_raw:
        try:
            port = int(port_raw)
        except ValueError:
            errors.append(f"PORT={port_raw} is not an integer.")
        else:
            if not 1 <= port <= 65535:
                errors.append(f"PORT={port_raw} is outside 1-65535.")

    # ── LOG_LEVEL ────────────────────────────────────────────────────────
    log_level = os.environ.get("LOG_LEVEL", "").strip().upper() or "INFO"
    if log_level not in _LOG_LEVELS:
        errors.append(f"LOG_LEVEL={log_level} is not one of {', '.join(_LOG_LEVELS)}.")

    # ── Abort on any error ───────────────────────────────────────────────
    if errors:
        print("\n❌  FileDesk — configuration error\n", file=sys.stderr)
        for e in errors:
            print(f"     • {e}", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)

    # no errors, so both directories resolved
    assert files_path is not None and upload_path is not None

    _settings = Settings(
        files_dir=files_path.resolve(),
        upload_dir=upload_path.resolve(),
        host=host,
        port=port,
        log_level=log_level,
    )

    print("✅  FileDesk — config loaded")
    print(f"     FILES_DIR  = {_settings.files_dir}")
    print(f"     UPLOAD_DIR = {_settings.upload_dir}")
    print(f"     LISTEN     = {_settings.host}:{_settings.port}")
    return _settings


def get() -> Settings:
    """Return the already-loaded Settings.  Raises if load() hasn't run."""
    if _settings is None:
        raise RuntimeError("Config not initialised — call config.load() at startup.")
    return _settings

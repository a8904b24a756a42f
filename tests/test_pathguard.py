"""Tests for filedesk.pathguard — path validation and upload-root sandboxing."""

import pytest
from pathlib import Path

from fastapi import HTTPException

from filedesk.config import Settings
from filedesk.pathguard import (
    PathError,
    SandboxError,
    resolve_entry,
    resolve_file,
    resolve_folder,
    resolve_new,
    to_client_path,
    validate_name,
)


# ── fixture ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Scaffold a small upload root and wire config.get() to point at it."""
    settings = Settings.for_files_dir(tmp_path / "files")
    uploads = settings.upload_dir
    uploads.mkdir(parents=True)

    # directories
    (uploads / "docs" / "sub").mkdir(parents=True)
    (uploads / "empty").mkdir()

    # files
    (uploads / "docs" / "readme.txt").write_text("hello\n")
    (uploads / "docs" / "sub" / "notes.txt").write_text("notes\n")
    (tmp_path / "files" / "descriptions.json").write_text("{}")
    (tmp_path / "outside.txt").write_text("outside\n")

    # symlink that stays inside the root  → allowed
    (uploads / "good-link.txt").symlink_to(uploads / "docs" / "readme.txt")
    # symlink that escapes the root       → blocked
    (uploads / "evil-link.txt").symlink_to(tmp_path / "outside.txt")

    monkeypatch.setattr("filedesk.config.get", lambda: settings)
    return uploads


# ════════════════════════════════════════════════════════════════════════════════
# resolve_entry / resolve_file / resolve_folder
# ════════════════════════════════════════════════════════════════════════════════


class TestResolve:
    # ── happy path ───────────────────────────────────────────────────────

    def test_root(self, root: Path):
        assert resolve_folder("/") == root.resolve()
        assert resolve_folder("") == root.resolve()

    def test_slash_rooted_file(self, root: Path):
        assert resolve_file("/docs/readme.txt") == (root / "docs" / "readme.txt").resolve()

    def test_unrooted_and_sloppy_paths_normalised(self, root: Path):
        assert resolve_file("docs//sub/notes.txt/").name == "notes.txt"

    def test_entry_may_be_folder(self, root: Path):
        assert resolve_entry("/docs/sub").is_dir()

    def test_symlink_inside_root_allowed(self, root: Path):
        assert resolve_file("/good-link.txt").name == "readme.txt"

    def test_client_path_roundtrip(self, root: Path):
        resolved = resolve_file("/docs/sub/notes.txt")
        assert to_client_path(resolved) == "/docs/sub/notes.txt"
        assert to_client_path(resolve_folder("/")) == "/"

    # ── 400 – malformed ──────────────────────────────────────────────────

    def test_null_byte(self, root: Path):
        with pytest.raises(PathError) as exc_info:
            resolve_entry("/docs/read\x00me.txt")
        assert exc_info.value.status_code == 400

    def test_backslash(self, root: Path):
        with pytest.raises(PathError):
            resolve_entry("docs\\readme.txt")

    def test_dotdot(self, root: Path):
        with pytest.raises(PathError):
            resolve_entry("/docs/../../outside.txt")

    # ── 403 – sandbox ────────────────────────────────────────────────────

    def test_symlink_escape(self, root: Path):
        with pytest.raises(SandboxError) as exc_info:
            resolve_file("/evil-link.txt")
        assert exc_info.value.status_code == 403

    # ── 404 – missing / wrong kind ───────────────────────────────────────

    def test_missing_entry(self, root: Path):
        with pytest.raises(HTTPException) as exc_info:
            resolve_entry("/nope")
        assert exc_info.value.status_code == 404

    def test_folder_is_not_a_file(self, root: Path):
        with pytest.raises(HTTPException) as exc_info:
            resolve_file("/docs")
        assert exc_info.value.status_code == 404

    def test_file_is_not_a_folder(self, root: Path):
        with pytest.raises(HTTPException) as exc_info:
            resolve_folder("/docs/readme.txt")
        assert exc_info.value.status_code == 404


# ════════════════════════════════════════════════════════════════════════════════
# resolve_new / validate_name
# ════════════════════════════════════════════════════════════════════════════════


class TestResolveNew:
    def test_new_child(self, root: Path):
        target = resolve_new("/docs", "fresh")
        assert target == (root / "docs" / "fresh").resolve()
        assert not target.exists()

    def test_collision_is_409(self, root: Path):
        with pytest.raises(HTTPException) as exc_info:
            resolve_new("/docs", "readme.txt")
        assert exc_info.value.status_code == 409

    def test_overwrite_allowed_when_requested(self, root: Path):
        target = resolve_new("/docs", "readme.txt", overwrite=True)
        assert target.name == "readme.txt"

    def test_overwrite_through_escaping_symlink_blocked(self, root: Path):
        with pytest.raises(SandboxError):
            resolve_new("/", "evil-link.txt", overwrite=True)

    def test_missing_parent_is_404(self, root: Path):
        with pytest.raises(HTTPException) as exc_info:
            resolve_new("/ghost", "x")
        assert exc_info.value.status_code == 404


class TestValidateName:
    def test_strips_whitespace(self):
        assert validate_name("  report.pdf ") == "report.pdf"

    @pytest.mark.parametrize("bad", ["", "   ", ".", "..", "a/b", "a\\b", "x\x00y", None])
    def test_rejects(self, bad):
        with pytest.raises(PathError):
            validate_name(bad)

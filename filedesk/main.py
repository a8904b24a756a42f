"""FileDesk — FastAPI backend."""

import logging
import mimetypes
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, Form, Query, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from filedesk import config, descriptions, files
from filedesk.pathguard import resolve_file
from filedesk.paths import normalize
from filedesk.tree import fetch_level

logger = logging.getLogger(__name__)


# ── Lifespan (startup / shutdown) ────────────────────────────────────────────


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup ── load + validate config (sys.exit on error)
    settings = config.load()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    yield


# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(title="FileDesk", lifespan=lifespan)


# ── Request bodies ───────────────────────────────────────────────────────────


class CreateFolderRequest(BaseModel):
    path: str = "/"
    name: str


class RenameRequest(BaseModel):
    oldPath: str
    newName: str


class DescriptionRequest(BaseModel):
    path: str
    description: str | None = None


# ── API routes ───────────────────────────────────────────────────────────────


@app.get("/api/healthz")
async def healthz() -> dict:
    """Liveness / health check."""
    return {"status": "ok"}


@app.get("/api/tree")
def api_tree(path: str = Query(default="/")) -> dict:
    """Return one level of the tree rooted at *path*."""
    return fetch_level(path)


@app.post("/api/folder")
def api_create_folder(body: CreateFolderRequest) -> dict:
    """Create a folder inside ``body.path``."""
    path = files.create_folder(body.path, body.name)
    return {"success": True, "path": path}


@app.delete("/api/item")
def api_delete_item(path: str = Query(...)) -> dict:
    """Delete a file or a folder (recursively)."""
    files.delete_entry(path)
    return {"success": True}


@app.put("/api/rename")
def api_rename(body: RenameRequest) -> dict:
    """Rename an entry in place; its descriptions move with it."""
    new_path = files.rename_entry(body.oldPath, body.newName)
    return {"success": True, "newPath": new_path}


@app.post("/api/upload")
def api_upload(path: str = Form(default="/"), file: UploadFile = File(...)) -> dict:
    """Store one uploaded file in the folder *path*."""
    stored = files.save_upload(path, file.filename, file.file)
    return {"success": True, "path": stored}


@app.get("/api/download")
def api_download(path: str = Query(...)) -> FileResponse:
    """Serve a file as an attachment with auto-detected Content-Type."""
    resolved = resolve_file(path)
    media_type = mimetypes.guess_type(str(resolved))[0] or "application/octet-stream"
    return FileResponse(str(resolved), media_type=media_type, filename=resolved.name)


@app.get("/api/file-content")
def api_file_content(path: str = Query(...)) -> dict:
    """Return a text file's content for preview."""
    return {"content": files.read_content(path)}


@app.get("/api/description")
def api_get_description(path: str | None = None) -> dict:
    """One description when *path* is given, otherwise the whole map."""
    if path is None:
        return {"description": descriptions.load_all()}
    return {"description": descriptions.get(path)}


@app.post("/api/description")
def api_set_description(body: DescriptionRequest) -> dict:
    """Upsert a description; an empty one deletes the entry."""
    descriptions.save(body.path, body.description)
    logger.info("Description %s for %s", "saved" if body.description else "cleared",
                normalize(body.path))
    return {"success": True}


# ── Static files + SPA fallback ──────────────────────────────────────────────
# Browser client build output: <project-root>/public/

PROJECT_ROOT = Path(__file__).resolve().parent.parent
STATIC_DIR = PROJECT_ROOT / "public"
INDEX_HTML = STATIC_DIR / "index.html"

if (STATIC_DIR / "assets").is_dir():
    app.mount(
        "/assets",
        StaticFiles(directory=str(STATIC_DIR / "assets")),
        name="assets",
    )


@app.get("/{full_path:path}")
async def spa_fallback() -> FileResponse:
    if INDEX_HTML.exists():
        return FileResponse(str(INDEX_HTML))
    return JSONResponse(
        {"error": "Browser client not installed. Put it under public/."},
        status_code=503,
    )

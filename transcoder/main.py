# transcoder/main.py
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, configure_logging, ensure_dirs
from .pipeline import process_upload
from .publisher import PinataStore

# ------------ Config / Env ------------
settings = Settings.from_env()
configure_logging(settings.log_level)
ensure_dirs(settings)

logger = logging.getLogger(__name__)

CHUNK_BYTES = 1024 * 1024

# ------------ App ------------
app = FastAPI(title="ladder-transcoder")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin] if settings.cors_origin != "*" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rendition folders live under the output root and stay there after the response.
app.mount("/videos", StaticFiles(directory=str(settings.output_dir)), name="videos")


def get_store() -> PinataStore:
    return PinataStore.from_settings(settings)


# ------------ API ------------
@app.post("/upload")
async def upload(video: Optional[UploadFile] = File(None)):
    if video is None or not video.filename:
        return JSONResponse({"error": "No file uploaded"}, status_code=400)

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(video.filename).suffix.lower()[:8]
    temp_path = settings.upload_dir / f"{uuid.uuid4()}{suffix}"

    max_bytes = settings.max_upload_bytes
    written = 0
    too_large = False
    with temp_path.open("wb") as f:
        while True:
            chunk = await video.read(CHUNK_BYTES)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                too_large = True
                break
            f.write(chunk)
    if too_large:
        temp_path.unlink(missing_ok=True)
        return JSONResponse(
            {"error": f"File exceeds {settings.max_upload_gb:g}GB limit"}, status_code=400
        )

    try:
        ctx = await process_upload(temp_path, settings, store=get_store())
    except Exception as e:
        logger.error("processing failed: %s", e)
        return JSONResponse({"error": "Processing failed", "details": str(e)}, status_code=500)

    return JSONResponse({"message": "Processing complete", "files": ctx.response_files()})


# ------------ Health ------------
@app.get("/healthz")
def healthz():
    return {"ok": True}

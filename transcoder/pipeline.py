# transcoder/pipeline.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .config import Settings
from .coordinator import run_all
from .encoder import ProgressCallback, log_progress
from .ladder import select_ladder
from .models import RequestContext
from .probe import probe_source
from .publisher import PinataStore, publish_all

logger = logging.getLogger(__name__)


def cleanup_upload(path: Path) -> bool:
    try:
        if path.exists():
            path.unlink()
            logger.info("deleted original file: %s", path)
        return True
    except OSError as e:
        logger.warning("error deleting %s: %s", path, e)
        return False


async def process_upload(
    upload_path: Path,
    settings: Settings,
    store=None,
    on_progress: Optional[ProgressCallback] = log_progress,
) -> RequestContext:
    """Probe, select the ladder, encode it, then pin every rendition.

    Any stage error propagates as a ``PipelineError``. The uploaded file is
    removed afterwards in every case; rendition files stay under the
    per-request folder.
    """
    ctx = RequestContext.create(Path(upload_path), settings.output_dir)
    if store is None:
        store = PinataStore.from_settings(settings)
    try:
        logger.info("received file: %s", ctx.upload_path)
        ctx.profile = await asyncio.to_thread(probe_source, ctx.upload_path, settings.ffprobe)
        logger.info("detected resolution: %dp", ctx.profile.height)

        ladder = select_ladder(settings.renditions, ctx.profile.height)
        logger.info("available resolutions: %s", [spec.name for spec in ladder])

        files = await run_all(
            ctx.upload_path,
            ctx.output_dir,
            ladder,
            settings,
            token=ctx.token,
            duration_sec=ctx.profile.duration_sec,
            on_progress=on_progress,
            jobs=ctx.jobs,
        )
        ctx.published = await publish_all(files, store)
        logger.info("all videos uploaded to IPFS: %s", ctx.response_files())
        return ctx
    finally:
        cleanup_upload(ctx.upload_path)

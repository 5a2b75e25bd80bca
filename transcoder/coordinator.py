# transcoder/coordinator.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from . import encoder
from .config import Settings
from .models import EncodeFailed, EncodeJob, JobStatus, RenditionSpec, new_request_token

logger = logging.getLogger(__name__)

# Strong references for siblings left running after a failure.
_background: Set[asyncio.Task] = set()


def plan_jobs(
    input_path: Path, output_dir: Path, ladder: Sequence[RenditionSpec], token: str
) -> List[EncodeJob]:
    names = [spec.name for spec in ladder]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate rendition names in ladder: {names}")
    return [
        EncodeJob(
            spec=spec,
            input_path=Path(input_path),
            output_path=Path(output_dir) / encoder.output_name(spec, token),
        )
        for spec in ladder
    ]


async def _abandon(tasks: List[asyncio.Task], cancel: bool) -> None:
    pending = [t for t in tasks if not t.done()]
    for t in tasks:
        if t.done() and not t.cancelled():
            t.exception()
    if not pending:
        return
    if cancel:
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info("cancelled %d in-flight encode(s)", len(pending))
    else:
        for t in pending:
            _background.add(t)
            t.add_done_callback(_background.discard)
        logger.info("left %d encode(s) running; their results are discarded", len(pending))


async def run_all(
    input_path: Path,
    output_dir: Path,
    ladder: Sequence[RenditionSpec],
    settings: Settings,
    token: Optional[str] = None,
    duration_sec: float = 0.0,
    on_progress: Optional[encoder.ProgressCallback] = encoder.log_progress,
    jobs: Optional[List[EncodeJob]] = None,
) -> List[Tuple[str, Path]]:
    """Encode every ladder entry concurrently; all or nothing.

    Returns ``(file name, path)`` pairs in completion order. The first failed
    job raises ``EncodeFailed``; siblings are cancelled or left running
    according to ``settings.cancel_on_failure``. Jobs created here are
    appended to ``jobs`` when the caller passes a list.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    planned = plan_jobs(input_path, output_dir, ladder, token or new_request_token())
    if jobs is not None:
        jobs.extend(planned)
    if not planned:
        return []

    limit = settings.max_concurrent_encodes
    sem = asyncio.Semaphore(limit) if limit > 0 else None

    async def _one(job: EncodeJob) -> EncodeJob:
        if sem is None:
            return await encoder.encode_rendition(job, settings, duration_sec, on_progress)
        async with sem:
            return await encoder.encode_rendition(job, settings, duration_sec, on_progress)

    tasks = [asyncio.ensure_future(_one(job)) for job in planned]
    files: List[Tuple[str, Path]] = []
    try:
        for next_done in asyncio.as_completed(tasks):
            job = await next_done
            if job.status != JobStatus.SUCCEEDED:
                raise EncodeFailed(job.spec.name, job.error or "encode failed")
            files.append((job.file_name, job.output_path))
    except BaseException:
        await _abandon(tasks, settings.cancel_on_failure)
        raise
    return files

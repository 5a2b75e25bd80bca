# transcoder/encoder.py
from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, List, Optional, Tuple

from .config import Settings
from .models import EncodeJob, JobStatus, RenditionSpec

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[EncodeJob, float], None]

_OUT_TIME_MS = re.compile(r"out_time_ms=(\d+)")


def output_name(spec: RenditionSpec, token: str) -> str:
    return f"video_{spec.name}_{token}.mp4"


def build_command(job: EncodeJob, settings: Settings) -> List[str]:
    spec = job.spec
    return [
        settings.ffmpeg,
        "-y",
        "-i",
        str(job.input_path),
        "-vf",
        f"scale={spec.width}:{spec.height}",
        "-b:v",
        spec.bitrate,
        "-c:v",
        settings.video_codec,
        "-preset",
        settings.video_preset,
        "-c:a",
        settings.audio_codec,
        "-b:a",
        settings.audio_bitrate,
        "-progress",
        "pipe:1",
        "-nostats",
        "-loglevel",
        "error",
        str(job.output_path),
    ]


def percent_from_out_time_ms(line: str, duration_sec: float) -> Optional[float]:
    # ffmpeg reports out_time_ms in microseconds.
    m = _OUT_TIME_MS.match(line.strip())
    if m and duration_sec > 0:
        return min(99.0, (int(m.group(1)) / 1_000_000.0) / duration_sec * 100.0)
    return None


def log_progress(job: EncodeJob, percent: float) -> None:
    logger.info("%s progress: %.2f%%", job.spec.name, percent)


def _notify(on_progress: Optional[ProgressCallback], job: EncodeJob, percent: float) -> None:
    job.progress = percent
    if on_progress is None:
        return
    try:
        on_progress(job, percent)
    except Exception:
        logger.exception("progress observer failed for %s", job.spec.name)


async def _run_and_stream(
    cmd: List[str],
    job: EncodeJob,
    duration_sec: float,
    on_progress: Optional[ProgressCallback],
) -> Tuple[int, str]:
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stderr_task = asyncio.ensure_future(proc.stderr.read())
    try:
        last_emit = 0.0
        while True:
            line = await proc.stdout.readline()
            if not line:
                break
            txt = line.decode("utf-8", "ignore")
            if "out_time_ms=" in txt:
                pct = percent_from_out_time_ms(txt, duration_sec)
                if pct is not None and pct - last_emit >= 1.0:
                    _notify(on_progress, job, pct)
                    last_emit = pct
        stderr = await stderr_task
        return await proc.wait(), stderr.decode("utf-8", "ignore").strip()
    except asyncio.CancelledError:
        stderr_task.cancel()
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        raise


def _fail(job: EncodeJob, message: str) -> EncodeJob:
    job.status = JobStatus.FAILED
    job.error = message
    logger.error("ffmpeg error in %s: %s", job.spec.name, message)
    return job


async def encode_rendition(
    job: EncodeJob,
    settings: Settings,
    duration_sec: float = 0.0,
    on_progress: Optional[ProgressCallback] = log_progress,
) -> EncodeJob:
    """Encode one rendition and record the terminal state on ``job``.

    Encoder failures (non-zero exit, missing binary, empty output, deadline)
    end in ``JobStatus.FAILED`` rather than an exception. Cancellation kills
    the ffmpeg process and propagates.
    """
    job.status = JobStatus.RUNNING
    logger.info("encoding %s (%s @ %s) -> %s", job.spec.name, job.spec.size, job.spec.bitrate, job.output_path.name)
    run = _run_and_stream(build_command(job, settings), job, duration_sec, on_progress)
    try:
        if settings.encode_timeout_sec > 0:
            rc, stderr = await asyncio.wait_for(run, timeout=settings.encode_timeout_sec)
        else:
            rc, stderr = await run
    except asyncio.TimeoutError:
        return _fail(job, f"timed out after {settings.encode_timeout_sec:g}s")
    except OSError as e:
        return _fail(job, f"ffmpeg unavailable: {e}")
    except asyncio.CancelledError:
        job.status = JobStatus.FAILED
        job.error = "cancelled"
        raise

    if rc != 0:
        return _fail(job, stderr.splitlines()[-1] if stderr else f"ffmpeg exited with {rc}")
    if not job.output_path.exists() or job.output_path.stat().st_size <= 0:
        return _fail(job, "output missing")

    job.status = JobStatus.SUCCEEDED
    _notify(on_progress, job, 100.0)
    logger.info("transcoded: %s", job.spec.name)
    return job

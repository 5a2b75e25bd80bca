# transcoder/probe.py
from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import List

from .models import ProbeFailed, SourceProfile

logger = logging.getLogger(__name__)

NO_RESOLUTION = "no video stream / no resolution"


def _run(cmd: List[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )


def probe_source(path: Path, ffprobe: str = "ffprobe") -> SourceProfile:
    """Inspect ``path`` once and return the first video stream's geometry.

    Raises ``ProbeFailed`` when ffprobe cannot run, exits non-zero, returns
    unreadable output, or reports no video stream with a height.
    """
    if not Path(path).exists():
        raise ProbeFailed(f"input not found: {path}")
    try:
        proc = _run(
            [ffprobe, "-v", "error", "-show_streams", "-show_format", "-of", "json", str(path)]
        )
    except OSError as e:
        raise ProbeFailed(f"ffprobe unavailable: {e}") from e
    if proc.returncode != 0:
        raise ProbeFailed((proc.stderr or "").strip() or f"ffprobe exited with {proc.returncode}")

    try:
        metadata = json.loads(proc.stdout or "{}")
    except ValueError as e:
        raise ProbeFailed(f"unreadable ffprobe output: {e}") from e

    stream = next(
        (s for s in metadata.get("streams") or [] if s.get("codec_type") == "video"), None
    )
    if stream is None:
        raise ProbeFailed(NO_RESOLUTION)
    try:
        height = int(stream.get("height") or 0)
        width = int(stream.get("width") or 0)
    except (TypeError, ValueError):
        height = width = 0
    if height <= 0:
        raise ProbeFailed(NO_RESOLUTION)

    duration = 0.0
    try:
        duration = float((metadata.get("format") or {}).get("duration") or 0.0)
    except (TypeError, ValueError):
        pass

    logger.debug("probe %s: streams=%d", path, len(metadata.get("streams") or []))
    return SourceProfile(height=height, width=width, duration_sec=max(duration, 0.0))

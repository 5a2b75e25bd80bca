import os
import stat
import sys
import tempfile
import textwrap
from pathlib import Path

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# transcoder.main reads these at import time
_ROOT = Path(tempfile.mkdtemp(prefix="transcoder-tests-"))
os.environ.setdefault("UPLOAD_DIR", str(_ROOT / "uploads"))
os.environ.setdefault("OUTPUT_DIR", str(_ROOT / "output"))
os.environ.setdefault("PINATA_API_KEY", "")
os.environ.setdefault("PINATA_SECRET_API_KEY", "")

from transcoder.config import Settings  # noqa: E402


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + textwrap.dedent(body))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def settings(tmp_path):
    return Settings(upload_dir=tmp_path / "uploads", output_dir=tmp_path / "output")


@pytest.fixture
def upload_file(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir(parents=True, exist_ok=True)
    p = d / "source.mp4"
    p.write_bytes(b"not really a video")
    return p


@pytest.fixture
def fake_ffmpeg(tmp_path):
    # The output path is the last argument; emits two progress blocks.
    return write_script(
        tmp_path / "ffmpeg",
        """
        for last; do :; done
        echo "out_time_ms=5000000"
        echo "progress=continue"
        echo "out_time_ms=10000000"
        echo "progress=end"
        printf 'encoded' > "$last"
        exit 0
        """,
    )


@pytest.fixture
def failing_ffmpeg(tmp_path):
    return write_script(
        tmp_path / "ffmpeg-fail",
        """
        echo "Invalid data found when processing input" >&2
        exit 1
        """,
    )


class FakeStore:
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []

    def pin_file(self, path):
        self.calls.append(Path(path).name)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError("401 Client Error: Unauthorized")
        return f"Qm{len(self.calls):044d}"


@pytest.fixture
def fake_store():
    return FakeStore()

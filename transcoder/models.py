# transcoder/models.py
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class JobStatus:
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ------------ Errors ------------
class PipelineError(Exception):
    """Any stage failure; the HTTP layer reports all of them the same way."""


class ProbeFailed(PipelineError):
    pass


class EncodeFailed(PipelineError):
    def __init__(self, rendition: str, message: str):
        super().__init__(f"{rendition}: {message}")
        self.rendition = rendition
        self.message = message


class PublishFailed(PipelineError):
    def __init__(self, rendition: str, message: str):
        super().__init__(f"{rendition}: {message}")
        self.rendition = rendition
        self.message = message


# ------------ Records ------------
@dataclass(frozen=True)
class RenditionSpec:
    name: str
    frame_size: Tuple[int, int]
    bitrate: str

    @property
    def width(self) -> int:
        return self.frame_size[0]

    @property
    def height(self) -> int:
        return self.frame_size[1]

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class SourceProfile:
    height: int
    width: int = 0
    duration_sec: float = 0.0


@dataclass
class EncodeJob:
    spec: RenditionSpec
    input_path: Path
    output_path: Path
    status: str = JobStatus.PENDING
    progress: float = 0.0
    error: Optional[str] = None

    @property
    def file_name(self) -> str:
        return self.output_path.name


@dataclass(frozen=True)
class PublishResult:
    rendition_name: str
    content_id: str


def new_request_token() -> str:
    # millisecond timestamp + random suffix
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@dataclass
class RequestContext:
    upload_path: Path
    output_dir: Path
    token: str
    profile: Optional[SourceProfile] = None
    jobs: List[EncodeJob] = field(default_factory=list)
    published: Dict[str, PublishResult] = field(default_factory=dict)

    @classmethod
    def create(cls, upload_path: Path, output_root: Path) -> "RequestContext":
        token = new_request_token()
        return cls(upload_path=Path(upload_path), output_dir=Path(output_root) / token, token=token)

    def response_files(self) -> Dict[str, Dict[str, str]]:
        return {name: {"videoCID": r.content_id} for name, r in self.published.items()}

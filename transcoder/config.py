# transcoder/config.py
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

from .models import RenditionSpec

load_dotenv()

# ------------ Rendition catalog ------------
# Ordered highest first; the ladder keeps this order.
RENDITIONS: Tuple[RenditionSpec, ...] = (
    RenditionSpec(name="1080p", frame_size=(1920, 1080), bitrate="5000k"),
    RenditionSpec(name="720p", frame_size=(1280, 720), bitrate="2500k"),
    RenditionSpec(name="480p", frame_size=(854, 480), bitrate="1000k"),
    RenditionSpec(name="360p", frame_size=(640, 360), bitrate="600k"),
)

PINATA_PIN_FILE_URL = "https://api.pinata.cloud/pinning/pinFileToIPFS"


def _env_flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    port: int = 3001
    upload_dir: Path = Path("uploads")
    output_dir: Path = Path("output")

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    renditions: Tuple[RenditionSpec, ...] = RENDITIONS

    # Encoding policy, not request-configurable
    video_codec: str = "libx264"
    video_preset: str = "veryfast"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"

    encode_timeout_sec: float = 0.0  # 0 disables the per-job deadline
    max_concurrent_encodes: int = 0  # 0 launches the whole ladder at once
    cancel_on_failure: bool = True

    pinata_api_key: str = ""
    pinata_secret_api_key: str = ""
    pinata_url: str = PINATA_PIN_FILE_URL
    pinata_timeout_sec: float = 300.0

    max_upload_gb: float = 2.0
    cors_origin: str = "*"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            port=_env_int("PORT", 3001),
            upload_dir=Path(os.getenv("UPLOAD_DIR", "uploads")).resolve(),
            output_dir=Path(os.getenv("OUTPUT_DIR", "output")).resolve(),
            ffmpeg=os.getenv("FFMPEG_PATH", "ffmpeg"),
            ffprobe=os.getenv("FFPROBE_PATH", "ffprobe"),
            encode_timeout_sec=_env_float("ENCODE_TIMEOUT_SEC", 0.0),
            max_concurrent_encodes=_env_int("MAX_CONCURRENT_ENCODES", 0),
            cancel_on_failure=_env_flag("CANCEL_ON_FAILURE", "1"),
            pinata_api_key=os.getenv("PINATA_API_KEY", ""),
            pinata_secret_api_key=os.getenv("PINATA_SECRET_API_KEY", ""),
            pinata_url=os.getenv("PINATA_URL", PINATA_PIN_FILE_URL),
            pinata_timeout_sec=_env_float("PINATA_TIMEOUT_SEC", 300.0),
            max_upload_gb=_env_float("MAX_UPLOAD_GB", 2.0),
            cors_origin=os.getenv("CORS_ORIGIN", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_gb * 1024 * 1024 * 1024)


def ensure_dirs(settings: Settings) -> None:
    for p in (settings.upload_dir, settings.output_dir):
        p.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

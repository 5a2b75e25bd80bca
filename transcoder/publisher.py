# transcoder/publisher.py
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Sequence, Tuple

import requests

from .config import PINATA_PIN_FILE_URL, Settings
from .models import PublishFailed, PublishResult

logger = logging.getLogger(__name__)


class PinataStore:
    """Content-addressed store backed by Pinata's pinFileToIPFS endpoint."""

    def __init__(
        self,
        api_key: str,
        secret_api_key: str,
        url: str = PINATA_PIN_FILE_URL,
        timeout: float = 300.0,
    ):
        self.api_key = api_key
        self.secret_api_key = secret_api_key
        self.url = url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PinataStore":
        return cls(
            api_key=settings.pinata_api_key,
            secret_api_key=settings.pinata_secret_api_key,
            url=settings.pinata_url,
            timeout=settings.pinata_timeout_sec,
        )

    def pin_file(self, path: Path) -> str:
        if not self.api_key or not self.secret_api_key:
            raise RuntimeError("Pinata credentials are not configured")
        path = Path(path)
        with path.open("rb") as fh:
            r = requests.post(
                self.url,
                files={"file": (path.name, fh)},
                data={"pinataMetadata": json.dumps({"name": path.name})},
                headers={
                    "pinata_api_key": self.api_key,
                    "pinata_secret_api_key": self.secret_api_key,
                },
                timeout=self.timeout,
            )
        r.raise_for_status()
        try:
            cid = (r.json() or {}).get("IpfsHash")
        except ValueError:
            cid = None
        if not cid:
            raise RuntimeError(f"Pinata response missing IpfsHash: {r.text[:200]}")
        logger.debug("pinata response for %s: %s", path.name, r.text[:200])
        return cid


async def publish_all(files: Sequence[Tuple[str, Path]], store) -> Dict[str, PublishResult]:
    """Pin each file in order, one call at a time.

    The first failure raises ``PublishFailed``; pins that already succeeded
    are neither returned nor undone.
    """
    published: Dict[str, PublishResult] = {}
    for name, path in files:
        logger.info("uploading %s to IPFS", name)
        try:
            cid = await asyncio.to_thread(store.pin_file, path)
        except Exception as e:
            logger.error("error uploading %s: %s", name, e)
            raise PublishFailed(name, str(e)) from e
        published[name] = PublishResult(rendition_name=name, content_id=cid)
    return published

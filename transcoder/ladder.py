# transcoder/ladder.py
from __future__ import annotations

from typing import Iterable, List

from .models import RenditionSpec


def select_ladder(catalog: Iterable[RenditionSpec], source_height: int) -> List[RenditionSpec]:
    """Renditions no taller than the source, in catalog order.

    Never upscales. An empty list is a valid answer for sources shorter than
    every catalog entry.
    """
    return [spec for spec in catalog if spec.height <= source_height]

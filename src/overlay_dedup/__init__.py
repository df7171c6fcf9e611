from __future__ import annotations

from .dedup import Deduplicator
from .dedupconfig import DedupConfig

__all__ = [
    "Deduplicator",
    "DedupConfig",
]

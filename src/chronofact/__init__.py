"""chronofact — temporal fact store with reference and indexed query paths.

Layout:
    ledger.py      # Append-only dated attribute patches per entity
    resolver.py    # Snapshot fold shared by both query paths
    reference.py   # Authoritative linear-scan queries
    index.py       # Per-date inverted index cache, explicit invalidation
    indexed.py     # Fast queries over the cached index
    store.py       # TemporalStore: set / query / query_fast / invalidate_index
    export.py      # JSONL patch log, markdown entity files
"""

from chronofact.errors import ChronofactError, ValidationError
from chronofact.store import TemporalStore

__all__ = ["ChronofactError", "TemporalStore", "ValidationError"]

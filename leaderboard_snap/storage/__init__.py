# leaderboard_snap/storage/__init__.py
"""
Storage Package
Baseline snapshot file and DuckDB run history
"""

from .snapshot_store import SnapshotStore, SnapshotStoreError
from .history_store import HistoryStore

__all__ = [
    "SnapshotStore",
    "SnapshotStoreError",
    "HistoryStore",
]

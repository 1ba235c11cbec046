# leaderboard_snap/models/__init__.py
"""
Models Package
Pydantic data model for leaderboard snapshots
"""

from .leaderboard_schema import (
    CapturedResponse,
    DiffRecord,
    InvariantViolation,
    LeaderboardRecord,
    NoDataCaptured,
    PageSnapshot,
    PersistedSnapshot,
    PipelineResult,
    Top20Result,
    assert_ranked,
)

__all__ = [
    "CapturedResponse",
    "DiffRecord",
    "InvariantViolation",
    "LeaderboardRecord",
    "NoDataCaptured",
    "PageSnapshot",
    "PersistedSnapshot",
    "PipelineResult",
    "Top20Result",
    "assert_ranked",
]

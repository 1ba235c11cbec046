# leaderboard_snap/probers/__init__.py
"""
Probers Package
Browser capture of the live leaderboard page
"""

from .leaderboard_probe import LeaderboardProbe, capture_snapshot, save_debug_artifacts

__all__ = [
    "LeaderboardProbe",
    "capture_snapshot",
    "save_debug_artifacts",
]

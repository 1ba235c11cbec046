# leaderboard_snap/utils/__init__.py
"""
Utilities Package
Logging and configuration helpers
"""

from .logger import get_logger
from .settings import Settings, load_settings

__all__ = [
    "get_logger",
    "Settings",
    "load_settings",
]

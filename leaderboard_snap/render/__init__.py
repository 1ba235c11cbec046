# leaderboard_snap/render/__init__.py
"""
Render Package
HTML card and PNG screenshot of the Top 20
"""

from .card_renderer import build_card_html, render_card, render_png

__all__ = [
    "build_card_html",
    "render_card",
    "render_png",
]

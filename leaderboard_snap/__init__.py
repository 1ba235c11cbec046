"""
leaderboard_snap - daily Top 20 leaderboard snapshot

Captures a leaderboard page, extracts the top 20 traders through a chain of
fallback strategies (API payload, table, ARIA grid, page text, OCR text),
diffs against yesterday's snapshot and renders a shareable card.
"""

__version__ = "0.3.0"

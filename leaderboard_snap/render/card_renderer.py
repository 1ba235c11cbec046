"""
Card Renderer - the shareable Top 20 image

build_card_html() is pure (result + diffs in, HTML string out) so the layout
can be tested without a browser; render_png() paints it with Playwright and
takes a full-page screenshot.
"""

import asyncio
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import List, Optional, Sequence

from playwright.async_api import async_playwright

from leaderboard_snap.models.leaderboard_schema import DiffRecord, LeaderboardRecord, Top20Result
from leaderboard_snap.processors.patterns import format_usd
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}

CARD_CSS = """
  :root{--bg:#0c1117;--panel:#0f1621;--row:#0d131c;--text:#dbe4ee;--muted:#95a1b3;--accent:#22d3ee;--up:#34d399;--down:#f87171}
  *{box-sizing:border-box}
  body{margin:0;background:var(--bg);color:var(--text);font-family:ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial}
  .wrap{width:1040px;margin:26px auto;padding:20px 24px;background:var(--panel);border-radius:14px;box-shadow:0 6px 24px rgba(0,0,0,.35)}
  h1{font-size:28px;margin:0 0 8px}
  .sub{color:var(--muted);font-size:13px;margin-bottom:18px}
  .total{font-size:18px;margin-bottom:14px}
  .total b{color:var(--accent)}
  .total .note{color:var(--muted);font-size:13px}
  table{width:100%;border-collapse:separate;border-spacing:0 8px;font-size:14px}
  thead th{color:#9fb1c6;font-weight:600;text-align:left;padding:8px 14px}
  tbody tr{background:var(--row)}
  tbody td{padding:12px 14px;white-space:nowrap;overflow:hidden;text-overflow:ellipsis}
  .rank{width:150px;color:#cbd7e6}
  .addr{max-width:360px;font-family:ui-monospace,Menlo,Consolas,monospace}
  .level{width:90px;text-align:right;color:#cbd7e6}
  .faf{width:110px;text-align:right;color:#cbd7e6}
  .vol{width:160px;text-align:right;font-weight:700}
  .delta{width:150px;text-align:right;font-size:12px;color:var(--muted)}
  .up{color:var(--up)}
  .down{color:var(--down)}
  .new{color:var(--accent);font-weight:700}
"""


def medal(rank: int) -> str:
    return MEDALS.get(rank, "")


def rank_marker(rank: int) -> str:
    return "< %02d >" % rank


def format_delta_usd(delta: Optional[float]) -> str:
    if delta is None:
        return "–"
    if delta > 0:
        return "+" + format_usd(delta)
    if delta < 0:
        return "-" + format_usd(-delta)
    return "±$0"


def _delta_class(delta) -> str:
    if delta is None or delta == 0:
        return ""
    return "up" if delta > 0 else "down"


def _rank_move(delta_rank: Optional[int]) -> str:
    # delta_rank = today - yesterday, so a negative value is a climb
    if not delta_rank:
        return "="
    if delta_rank < 0:
        return f'<span class="up">▲{-delta_rank}</span>'
    return f'<span class="down">▼{delta_rank}</span>'


def _delta_cell(record: LeaderboardRecord) -> str:
    if not isinstance(record, DiffRecord):
        return ""
    if record.is_new:
        return '<span class="new">NEW</span>'
    volume = f'<span class="{_delta_class(record.delta_volume)}">{escape(format_delta_usd(record.delta_volume))}</span>'
    return f"{volume} {_rank_move(record.delta_rank)}"


def _row_html(record: LeaderboardRecord) -> str:
    volume = record.volume_raw or format_usd(record.volume_numeric)
    return (
        "<tr>"
        f'<td class="rank">{medal(record.rank)} <span>{escape(rank_marker(record.rank))}</span></td>'
        f'<td class="addr">{escape(record.address)}</td>'
        f'<td class="level">{escape(record.level)}</td>'
        f'<td class="faf">{escape(record.staked)}</td>'
        f'<td class="vol">{escape(volume)}</td>'
        f'<td class="delta">{_delta_cell(record)}</td>'
        "</tr>"
    )


def build_card_html(result: Top20Result,
                    diffs: Optional[Sequence[DiffRecord]] = None,
                    total_delta: Optional[float] = None,
                    site_name: str = "FlashTrade",
                    captured_at: Optional[datetime] = None) -> str:
    """
    Dark-theme leaderboard card.

    Rows come from diffs when given (so deltas can be shown), otherwise from
    the result. Without a located total volume the sum of the visible records
    is shown and labelled as such.
    """
    rows: List[LeaderboardRecord] = list(diffs) if diffs else list(result.records)
    ts = (captured_at or result.captured_at or datetime.now(timezone.utc)).astimezone(timezone.utc)

    if result.total_volume is not None:
        total_html = f"Total Volume Traded (Today): <b>{escape(format_usd(result.total_volume))}</b>"
    else:
        top_sum = sum(r.volume_numeric for r in result.records)
        total_html = (f"Total Volume Traded (Today): <b>{escape(format_usd(top_sum))}</b> "
                      f'<span class="note">(sum of top {len(result.records)})</span>')
    delta_html = (f'<span class="{_delta_class(total_delta)}">{escape(format_delta_usd(total_delta))}</span>'
                  " vs Yesterday")

    rows_html = "\n      ".join(_row_html(r) for r in rows)
    return f"""<!doctype html>
<html>
<head><meta charset="utf-8">
<style>{CARD_CSS}</style></head>
<body>
  <div class="wrap">
    <h1>⚡ {escape(site_name)} Leaderboard — Top {len(rows)}</h1>
    <div class="sub">Snapshot (UTC): {ts:%Y-%m-%d %H:%M}</div>
    <div class="total">{total_html} ({delta_html})</div>
    <table>
      <thead><tr><th>Rank</th><th>Address</th><th>Level</th><th>FAF</th><th>Volume</th><th>vs Yesterday</th></tr></thead>
      <tbody>
      {rows_html}
      </tbody>
    </table>
  </div>
</body></html>"""


async def render_png(html: str, output_path, width: int = 1100, height: int = 1900) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True, args=["--no-sandbox", "--disable-dev-shm-usage"])
        try:
            page = await browser.new_page(viewport={"width": width, "height": height})
            await page.set_content(html, wait_until="load")
            await page.screenshot(path=str(output_path), full_page=True)
        finally:
            await browser.close()
    logger.info(f"Saved card: {output_path}")
    return output_path


def render_card(html: str, output_path, width: int = 1100, height: int = 1900) -> Path:
    return asyncio.run(render_png(html, output_path, width, height))

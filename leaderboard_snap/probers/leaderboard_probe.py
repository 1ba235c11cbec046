import asyncio
import re
import time
from pathlib import Path
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from leaderboard_snap.models.leaderboard_schema import CapturedResponse, PageSnapshot
from leaderboard_snap.utils.logger import get_logger
from leaderboard_snap.utils.settings import DEFAULT_URL_KEYWORDS, ProbeSettings

logger = get_logger(__name__)

NO_CACHE_HEADERS = {
    "cache-control": "no-cache, no-store, must-revalidate",
    "pragma": "no-cache",
    "expires": "0",
}

TABLE_ROWS_JS = """
(trs, maxRows) => trs.slice(0, maxRows).map(tr =>
    Array.from(tr.querySelectorAll('td'))
        .map(td => (td.innerText || td.textContent || '').replace(/\\s+/g, ' ').trim()))
"""

GRID_ROWS_JS = """
(rows, maxRows) => rows.map(row =>
    Array.from(row.querySelectorAll('[role="cell"],[role="gridcell"],[data-column],[class*="cell"]'))
        .map(c => (c.innerText || c.textContent || '').replace(/\\s+/g, ' ').trim())
).filter(cells => cells.length >= 3).slice(0, maxRows)
"""


def cache_busted(url: str) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}t={int(time.time() * 1000)}"


class LeaderboardProbe:
    """
    Headless Chromium capture of the leaderboard page.

    Sniffs relevant JSON responses, reloads with a cache-busting query until
    one arrives (or tries run out), nudges the scroll position so virtualised
    rows render, then reads every representation the extractors understand.
    The full-page screenshot of the last capture is kept for debug artifacts.
    """

    def __init__(self, settings: Optional[ProbeSettings] = None,
                 url_keywords: str = DEFAULT_URL_KEYWORDS,
                 table_max_rows: int = 40, grid_max_rows: int = 60):
        self.settings = settings or ProbeSettings()
        self.url_filter = re.compile(url_keywords, re.IGNORECASE)
        self.table_max_rows = table_max_rows
        self.grid_max_rows = grid_max_rows
        self.last_screenshot: Optional[bytes] = None

    async def _no_cache(self, route):
        headers = {**route.request.headers, **NO_CACHE_HEADERS}
        await route.continue_(headers=headers)

    async def _capture_json(self, response, storage: List[CapturedResponse]):
        content_type = response.headers.get("content-type", "")
        if "json" not in content_type.lower() or not self.url_filter.search(response.url):
            return
        try:
            body = await response.json()
        except (PlaywrightError, ValueError) as e:
            logger.debug(f"Unreadable JSON from {response.url}: {e}")
            return
        storage.append(CapturedResponse(
            url=response.url,
            body=body,
            status=response.status,
            content_type=content_type,
        ))
        logger.debug(f"Captured payload from {response.url}")

    async def _nudge(self, page):
        await page.wait_for_timeout(self.settings.settle_ms)
        await page.mouse.wheel(0, 1200)
        await page.wait_for_timeout(500)
        await page.mouse.wheel(0, -1200)
        await page.wait_for_timeout(500)

    async def capture(self, url: Optional[str] = None) -> PageSnapshot:
        url = url or self.settings.url
        responses: List[CapturedResponse] = []
        pending = []

        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            context = await browser.new_context(
                viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
                user_agent=self.settings.user_agent,
                locale=self.settings.locale,
            )
            await context.route("**/*", self._no_cache)
            page = await context.new_page()
            page.on("response", lambda res: pending.append(
                asyncio.create_task(self._capture_json(res, responses))))

            try:
                for attempt in range(1, self.settings.tries + 1):
                    target = cache_busted(url)
                    logger.info(f"Probing {target} (try {attempt}/{self.settings.tries})")
                    try:
                        await page.goto(target, timeout=self.settings.timeout_ms, wait_until="domcontentloaded")
                        await self._nudge(page)
                    except PlaywrightError as e:
                        logger.warning(f"Navigation failed on try {attempt}: {e}")
                        continue
                    try:
                        await page.wait_for_load_state("networkidle", timeout=self.settings.timeout_ms)
                    except PlaywrightError:
                        logger.debug("networkidle not reached, continuing")
                    if pending:
                        await asyncio.gather(*pending, return_exceptions=True)
                    if responses:
                        break

                snapshot = await self._collect(page, url, responses)
                try:
                    self.last_screenshot = await page.screenshot(full_page=True)
                except PlaywrightError as e:
                    logger.warning(f"Screenshot failed: {e}")
                    self.last_screenshot = None
            finally:
                await context.close()
                await browser.close()

        logger.info(f"Captured {len(snapshot.responses)} payloads, {len(snapshot.table_rows)} table rows, "
                    f"{len(snapshot.grid_rows)} grid rows, {len(snapshot.text or '')} chars of text")
        return snapshot

    async def _collect(self, page, url: str, responses: List[CapturedResponse]) -> PageSnapshot:
        table_rows = await self._eval_rows(page, "table tbody tr", TABLE_ROWS_JS, self.table_max_rows)
        grid_rows = await self._eval_rows(page, '[role="row"]', GRID_ROWS_JS, self.grid_max_rows)
        try:
            text = await page.evaluate("() => document.body ? document.body.innerText : ''")
            html = await page.content()
        except PlaywrightError as e:
            logger.warning(f"Could not read page content: {e}")
            text, html = None, None
        return PageSnapshot(
            url=url,
            responses=responses,
            table_rows=table_rows,
            grid_rows=grid_rows,
            html=html,
            text=text,
        )

    async def _eval_rows(self, page, selector: str, script: str, max_rows: int) -> List[List[str]]:
        try:
            return await page.eval_on_selector_all(selector, script, max_rows)
        except PlaywrightError as e:
            logger.debug(f"Row query {selector} failed: {e}")
            return []


def capture_snapshot(settings: Optional[ProbeSettings] = None, url: Optional[str] = None,
                     url_keywords: str = DEFAULT_URL_KEYWORDS,
                     table_max_rows: int = 40, grid_max_rows: int = 60):
    """Synchronous wrapper. Returns (PageSnapshot, screenshot bytes or None)."""
    probe = LeaderboardProbe(settings, url_keywords=url_keywords,
                             table_max_rows=table_max_rows, grid_max_rows=grid_max_rows)
    snapshot = asyncio.run(probe.capture(url))
    return snapshot, probe.last_screenshot


def save_debug_artifacts(snapshot: PageSnapshot, debug_dir, screenshot: Optional[bytes] = None) -> List[Path]:
    """Write page HTML, page text and the screenshot for post-mortem inspection."""
    out = Path(debug_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    if snapshot.html:
        path = out / "debug_page.html"
        path.write_text(snapshot.html, encoding="utf-8")
        written.append(path)
    text = snapshot.text or snapshot.ocr_text
    if text:
        path = out / "debug_page.txt"
        path.write_text(text, encoding="utf-8")
        written.append(path)
    if screenshot:
        path = out / "debug_page.png"
        path.write_bytes(screenshot)
        written.append(path)
    path = out / "debug_snapshot.json"
    snapshot.save(path)
    written.append(path)
    logger.info(f"Debug artifacts saved to {out}: {', '.join(p.name for p in written)}")
    return written

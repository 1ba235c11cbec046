"""
Table / ARIA grid extractors

Both read row containers as lists of whitespace-collapsed cell texts. The
browser collaborator normally supplies the rows already read from the live
DOM (PageSnapshot.table_rows / grid_rows); when it only saved the page HTML
the rows are parsed here with BeautifulSoup.
"""

from typing import List, Optional

from bs4 import BeautifulSoup

from leaderboard_snap.extractors.base import BaseExtractor, RawCandidateRow
from leaderboard_snap.models.leaderboard_schema import PageSnapshot
from leaderboard_snap.processors.patterns import collapse_ws
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)


class TableExtractor(BaseExtractor):
    """Rows of a semantic <table>."""

    name = "table"
    ROW_SELECTOR = "table tbody tr"
    CELL_SELECTOR = "td"

    def snapshot_rows(self, snapshot: PageSnapshot) -> List[List[str]]:
        return snapshot.table_rows

    @property
    def max_rows(self) -> int:
        return self.settings.table_max_rows

    def extract(self, snapshot: PageSnapshot) -> List[RawCandidateRow]:
        rows = self.snapshot_rows(snapshot) or self.rows_from_html(snapshot.html)
        qualifying = []
        for row in rows:
            cells = [collapse_ws(c) for c in row]
            if sum(1 for c in cells if c) >= self.settings.table_min_cells:
                qualifying.append(cells)

        if len(qualifying) < self.settings.table_min_rows:
            logger.info(f"{self.name}: {len(qualifying)} qualifying rows "
                        f"(need {self.settings.table_min_rows})")
            return []
        return qualifying[: self.max_rows]

    def rows_from_html(self, html: Optional[str]) -> List[List[str]]:
        if not html:
            return []
        soup = BeautifulSoup(html, "html.parser")
        rows = []
        for row in soup.select(self.ROW_SELECTOR):
            rows.append([cell.get_text(" ", strip=True) for cell in row.select(self.CELL_SELECTOR)])
        return rows


class AccessibilityGridExtractor(TableExtractor):
    """Rows of a div-based grid exposed through ARIA roles."""

    name = "aria_grid"
    ROW_SELECTOR = '[role="row"]'
    CELL_SELECTOR = '[role="cell"], [role="gridcell"], [data-column], [class*="cell"]'

    def snapshot_rows(self, snapshot: PageSnapshot) -> List[List[str]]:
        return snapshot.grid_rows

    @property
    def max_rows(self) -> int:
        return self.settings.grid_max_rows

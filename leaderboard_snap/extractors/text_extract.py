"""
Text Proximity Extractor - rows from the page's flattened visible text

Lowest-fidelity structural fallback. Every address-shaped line anchors a
row; the lines around it (a few before, several after, never crossing the
neighbouring rows) are searched for the volume, level and staked markers.
Rows without a currency amount are dropped.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from leaderboard_snap.extractors.base import BaseExtractor, RawCandidateRow
from leaderboard_snap.models.leaderboard_schema import PageSnapshot
from leaderboard_snap.processors.patterns import (
    LEVEL_RE,
    STAKED_RE,
    TOTAL_VOLUME_RE,
    is_address,
    is_currency,
)
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)


def _is_volume_line(line: str) -> bool:
    return is_currency(line) and not TOTAL_VOLUME_RE.search(line) and not STAKED_RE.search(line)


def _is_level_line(line: str) -> bool:
    return bool(LEVEL_RE.search(line))


def _is_staked_line(line: str) -> bool:
    return bool(STAKED_RE.search(line))


class TextProximityExtractor(BaseExtractor):

    name = "text"

    def source_text(self, snapshot: PageSnapshot) -> str:
        if snapshot.text:
            return snapshot.text
        if snapshot.html:
            return BeautifulSoup(snapshot.html, "html.parser").get_text("\n")
        return ""

    def prepare_lines(self, text: str) -> List[str]:
        # innerText renders table cells tab-separated on one line
        lines = [line.strip() for line in re.split(r"[\n\t]", text)]
        return [line for line in lines if line][: self.settings.text_max_lines]

    def extract(self, snapshot: PageSnapshot) -> List[RawCandidateRow]:
        text = self.source_text(snapshot)
        if not text:
            return []
        lines = self.prepare_lines(text)
        anchors = [i for i, line in enumerate(lines) if is_address(line)]

        rows = []
        consumed = -1
        for n, i in enumerate(anchors):
            prev_anchor = anchors[n - 1] if n else -1
            next_anchor = anchors[n + 1] if n + 1 < len(anchors) else len(lines)

            ahead = list(range(i + 1, min(next_anchor, i + 1 + self.settings.text_lookahead)))
            floor = max(prev_anchor, consumed, i - 1 - self.settings.text_lookbehind)
            behind = list(range(i - 1, floor, -1))
            window = ahead + behind

            volume_idx = self._find(lines, window, _is_volume_line)
            if volume_idx is None:
                logger.debug(f"{self.name}: no amount near {lines[i]}")
                continue
            used = {volume_idx}
            level_idx = self._find(lines, window, _is_level_line, used)
            if level_idx is not None:
                used.add(level_idx)
            staked_idx = self._find(lines, window, _is_staked_line, used)
            if staked_idx is not None:
                used.add(staked_idx)

            row = [lines[i]]
            row += [lines[j] for j in (level_idx, staked_idx) if j is not None]
            row.append(lines[volume_idx])
            rows.append(row)
            consumed = max(used | {i})

        logger.info(f"{self.name}: {len(rows)} rows from {len(anchors)} address lines")
        return rows

    def _find(self, lines: List[str], window: List[int], predicate, used=()) -> Optional[int]:
        for j in window:
            if j not in used and predicate(lines[j]):
                return j
        return None

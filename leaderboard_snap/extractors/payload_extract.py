"""
Payload Extractor - leaderboard rows from captured JSON responses

Highest-fidelity strategy: the page's own API usually returns the
leaderboard as a JSON array somewhere inside the response body. The array
is not at a fixed path, so every array in every relevant response is
scored by how many of its first elements look like trader records.

Key Features:
- URL keyword filter (unrelated API traffic is ignored outright)
- Recursive array discovery (depth-limited)
- Sampling-based scoring (address + plausibly large value)
- Total-volume lookup outside the record array
"""

import json
import re
from typing import Any, Iterator, List, Optional, Tuple

from leaderboard_snap.extractors.base import BaseExtractor, RawCandidateRow
from leaderboard_snap.models.leaderboard_schema import CapturedResponse, PageSnapshot
from leaderboard_snap.processors.patterns import (
    CURRENCY_RE,
    TOTAL_VOLUME_RE,
    find_address,
    is_number,
    parse_money,
)
from leaderboard_snap.processors.record_normalizer import (
    ADDRESS_KEYS,
    ADDRESS_RULES,
    flatten_row,
    norm_key,
    resolve,
)
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)

# Scalar keys carrying the page-wide total (normalized form)
TOTAL_VOLUME_KEYS = {
    "totalvolume", "totalvolumeusd", "totaltradedvolume", "tradedvolumetotal",
    "volumetotal", "epochvolume", "dailyvolume", "volume24h", "24hvolume",
}


def _decode_body(body: Any) -> Any:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="ignore")
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError:
            return None
    return body


class PayloadExtractor(BaseExtractor):
    """Pick the best-scoring record array out of the captured API responses."""

    name = "payload"

    def __init__(self, settings=None):
        super().__init__(settings)
        self.url_filter = re.compile(self.settings.url_keywords, re.IGNORECASE)

    def is_relevant(self, response: CapturedResponse) -> bool:
        return bool(self.url_filter.search(response.url or ""))

    def extract(self, snapshot: PageSnapshot) -> List[RawCandidateRow]:
        best: Optional[Tuple[int, str, list]] = None

        for response in snapshot.responses:
            if not self.is_relevant(response):
                logger.debug(f"Ignoring unrelated response: {response.url[:80]}")
                continue
            body = _decode_body(response.body)
            if body is None:
                continue

            for path, array in self.find_arrays(body):
                if len(array) < self.settings.payload_min_array_len:
                    continue
                score = self.score_array(array)
                logger.debug(f"Array {response.url[:60]}:{path or 'root'} "
                             f"len={len(array)} score={score}")
                if best is None or score > best[0]:
                    best = (score, f"{response.url}:{path or 'root'}", array)

        if best is None or best[0] < self.settings.payload_min_score:
            logger.info("Payload: no trader-like array in captured responses")
            return []

        logger.info(f"Payload: using {best[1][:100]} ({len(best[2])} items, score {best[0]})")
        return list(best[2])

    def find_arrays(self, data: Any, path: str = "", depth: int = 0) -> Iterator[Tuple[str, list]]:
        """Yield (path, list) for every array-valued subtree."""
        if depth > self.settings.payload_max_depth:
            return
        if isinstance(data, dict):
            for key, value in data.items():
                new_path = f"{path}.{key}" if path else str(key)
                yield from self.find_arrays(value, new_path, depth + 1)
        elif isinstance(data, list):
            yield path, data
            for i, item in enumerate(data):
                if isinstance(item, (dict, list)):
                    yield from self.find_arrays(item, f"{path}[{i}]", depth + 1)

    def score_array(self, array: list) -> int:
        sample = array[: self.settings.payload_sample_size]
        return sum(1 for item in sample if self.looks_like_trader(item))

    def looks_like_trader(self, item: Any) -> bool:
        """Address-shaped field AND a numeric value above the plausibility floor."""
        if not isinstance(item, (dict, list, tuple)):
            return False
        fields = flatten_row(item)
        address, addr_idx = resolve(fields, ADDRESS_RULES, set())
        if not address or not find_address(address):
            return False
        for i, (key, value) in enumerate(fields):
            if i == addr_idx:
                continue
            if key is not None and any(n in norm_key(key) for n in ADDRESS_KEYS):
                continue
            if is_number(value) or isinstance(value, str):
                if parse_money(value) > self.settings.payload_min_value:
                    return True
        return False


class TotalVolumeLocator:
    """
    Find the page-wide traded volume (not the sum of the visible rows).

    Order: snapshot hint -> scalar total key in a relevant payload (arrays
    are not entered, so per-trader totals never count) -> "Total Volume"
    line in the page text.
    """

    def __init__(self, settings=None):
        self.payloads = PayloadExtractor(settings)

    def locate(self, snapshot: PageSnapshot) -> Optional[float]:
        if snapshot.total_volume_hint is not None:
            return snapshot.total_volume_hint

        for response in snapshot.responses:
            if not self.payloads.is_relevant(response):
                continue
            total = self._from_payload(_decode_body(response.body))
            if total:
                return total

        return self._from_text(snapshot.text or "")

    def _from_payload(self, data: Any, depth: int = 0) -> Optional[float]:
        if not isinstance(data, dict) or depth > 6:
            return None
        for key, value in data.items():
            if norm_key(key) in TOTAL_VOLUME_KEYS and not isinstance(value, (dict, list)):
                total = parse_money(value)
                if total:
                    return total
        for value in data.values():
            if isinstance(value, dict):
                total = self._from_payload(value, depth + 1)
                if total:
                    return total
        return None

    def _from_text(self, text: str) -> Optional[float]:
        lines = [line.strip() for line in text.split("\n") if line.strip()]
        for i, line in enumerate(lines):
            if not TOTAL_VOLUME_RE.search(line):
                continue
            for candidate in lines[i:i + 3]:
                m = CURRENCY_RE.search(candidate)
                if m and not find_address(candidate):
                    total = parse_money(m.group(0))
                    if total:
                        return total
        return None

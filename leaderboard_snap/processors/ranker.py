from typing import Dict, Iterable, List, Optional

from leaderboard_snap.models.leaderboard_schema import LeaderboardRecord
from leaderboard_snap.processors.patterns import is_full_address, truncation_parts
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)

MAX_RECORDS = 20


def addresses_match(a: str, b: str) -> bool:
    """Same trader: identical, or one is the UI-truncated form of the other."""
    if a == b:
        return True
    parts_a = truncation_parts(a)
    parts_b = truncation_parts(b)
    if parts_a and parts_b:
        return False
    if parts_a and is_full_address(b):
        return b.startswith(parts_a[0]) and b.endswith(parts_a[1])
    if parts_b and is_full_address(a):
        return a.startswith(parts_b[0]) and a.endswith(parts_b[1])
    return False


def expand_address(address: str, known_full: Iterable[str]) -> str:
    """Replace a truncated address by the single full address it abbreviates."""
    parts = truncation_parts(address)
    if not parts:
        return address
    matches = {full for full in known_full
               if full.startswith(parts[0]) and full.endswith(parts[1])}
    if len(matches) == 1:
        return matches.pop()
    return address


class CandidateRanker:
    """
    Turns a strategy's normalized records into a ranked result.

    dedupe (first occurrence wins) -> stable sort by volume desc ->
    truncate to max_records -> rank = position + 1.
    """

    def __init__(self, max_records: int = MAX_RECORDS):
        self.max_records = max_records

    def dedupe(self, records: List[LeaderboardRecord]) -> List[LeaderboardRecord]:
        kept: List[LeaderboardRecord] = []
        by_address: Dict[str, int] = {}
        for record in records:
            if record.address in by_address:
                continue
            match_idx = self._find_equivalent(kept, record.address)
            if match_idx is None:
                by_address[record.address] = len(kept)
                kept.append(record)
                continue
            # Same trader seen again: keep the first row, but prefer the full address
            first = kept[match_idx]
            if is_full_address(record.address) and not is_full_address(first.address):
                kept[match_idx] = first.model_copy(update={"address": record.address})
                by_address[record.address] = match_idx
        if len(kept) < len(records):
            logger.debug(f"Dedupe: {len(records)} -> {len(kept)} records")
        return kept

    def select(self, records: List[LeaderboardRecord]) -> List[LeaderboardRecord]:
        """Steps 1-3: dedupe, stable sort, truncate (ranks not yet reassigned)."""
        unique = self.dedupe(records)
        ordered = sorted(unique, key=lambda r: -r.volume_numeric)
        return ordered[: self.max_records]

    def rank(self, records: List[LeaderboardRecord],
             known_full: Optional[Iterable[str]] = None) -> List[LeaderboardRecord]:
        if known_full:
            known_full = set(known_full)
            records = [
                r.model_copy(update={"address": expand_address(r.address, known_full)})
                for r in records
            ]
        selected = self.select(records)
        return [r.model_copy(update={"rank": i + 1}) for i, r in enumerate(selected)]

    def _find_equivalent(self, kept: List[LeaderboardRecord], address: str) -> Optional[int]:
        for i, record in enumerate(kept):
            if addresses_match(record.address, address):
                return i
        return None

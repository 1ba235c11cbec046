#!/usr/bin/env python3
"""
Sufficiency Gate - decides whether a strategy's output is good enough

A strategy is sufficient when its accepted record count (after dedupe and
truncation) reaches the threshold. When no strategy gets there, the best
attempt wins: most records, earlier priority on ties.
"""

from typing import List, Optional, Tuple

from leaderboard_snap.models.leaderboard_schema import LeaderboardRecord
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)

SUFFICIENCY_THRESHOLD = 10

Attempt = Tuple[str, List[LeaderboardRecord]]


class SufficiencyGate:

    def __init__(self, threshold: int = SUFFICIENCY_THRESHOLD):
        self.threshold = threshold

    def is_sufficient(self, records: List[LeaderboardRecord]) -> bool:
        return len(records) >= self.threshold

    def pick_best(self, attempts: List[Attempt]) -> Optional[Attempt]:
        """
        Pick the winning attempt from (strategy, records) pairs in priority order.

        Returns:
            The first sufficient attempt, else the largest non-empty one,
            else None.
        """
        best: Optional[Attempt] = None
        for name, records in attempts:
            if self.is_sufficient(records):
                return name, records
            if records and (best is None or len(records) > len(best[1])):
                best = (name, records)
        if best:
            logger.info(f"No strategy reached {self.threshold} records; "
                        f"best effort: {best[0]} ({len(best[1])})")
        return best

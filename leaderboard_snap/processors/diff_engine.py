from typing import List, Optional

from leaderboard_snap.models.leaderboard_schema import DiffRecord, LeaderboardRecord
from leaderboard_snap.processors.ranker import addresses_match


class DiffEngine:
    """
    Day-over-day deltas keyed by address.

    delta_rank < 0 means the trader moved up. Traders missing from yesterday
    get None deltas; traders that fell out of today's list are not reported.
    """

    def diff(self, today: List[LeaderboardRecord],
             yesterday: List[LeaderboardRecord]) -> List[DiffRecord]:
        by_address = {r.address: r for r in yesterday}
        out = []
        for record in today:
            prev = by_address.get(record.address) or self._equivalent(record.address, yesterday)
            base = record.model_dump(include=set(LeaderboardRecord.model_fields))
            if prev is None:
                out.append(DiffRecord(**base))
                continue
            out.append(DiffRecord(
                **base,
                delta_volume=record.volume_numeric - prev.volume_numeric,
                delta_rank=record.rank - prev.rank,
            ))
        return out

    def diff_total(self, today_total: Optional[float],
                   yesterday_total: Optional[float]) -> Optional[float]:
        if today_total is None or yesterday_total is None:
            return None
        return today_total - yesterday_total

    def _equivalent(self, address: str, yesterday: List[LeaderboardRecord]) -> Optional[LeaderboardRecord]:
        for prev in yesterday:
            if addresses_match(prev.address, address):
                return prev
        return None

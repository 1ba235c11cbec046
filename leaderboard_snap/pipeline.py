#!/usr/bin/env python3
"""
Extraction Pipeline - ordered attempt across extraction strategies

    START -> try strategy i -> sufficient? -> DONE
                            -> else next strategy
          -> all exhausted -> best effort, or NoDataCaptured

Each attempt: extract raw rows -> normalize -> dedupe/sort/truncate.
The first strategy whose accepted count reaches the sufficiency threshold
wins; otherwise the attempt with the most records (earliest on ties).
Speculative-parallel mode runs every strategy at once but selects with the
same priority rule, so both modes return the same result.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Sequence, Tuple

from leaderboard_snap.extractors import BaseExtractor, TotalVolumeLocator, default_extractors
from leaderboard_snap.models.leaderboard_schema import (
    DiffRecord,
    LeaderboardRecord,
    NoDataCaptured,
    PageSnapshot,
    PersistedSnapshot,
    PipelineResult,
    Top20Result,
    assert_ranked,
)
from leaderboard_snap.processors.diff_engine import DiffEngine
from leaderboard_snap.processors.patterns import is_full_address
from leaderboard_snap.processors.quality_gate import SufficiencyGate
from leaderboard_snap.processors.ranker import CandidateRanker
from leaderboard_snap.processors.record_normalizer import RecordNormalizer
from leaderboard_snap.utils.logger import get_logger
from leaderboard_snap.utils.settings import ExtractionSettings

logger = get_logger(__name__)


class StrategyAttempt(NamedTuple):
    name: str
    normalized: List[LeaderboardRecord]
    accepted: List[LeaderboardRecord]


class ExtractionPipeline:
    """
    Drives the extractors in priority order and returns a Top20Result or
    NoDataCaptured. Pure: the snapshot is only read.
    """

    def __init__(self, extractors: Optional[Sequence[BaseExtractor]] = None,
                 settings: Optional[ExtractionSettings] = None,
                 parallel: bool = False):
        self.settings = settings or ExtractionSettings()
        self.extractors = list(extractors) if extractors is not None else default_extractors(self.settings)
        self.parallel = parallel
        self.ranker = CandidateRanker(self.settings.max_records)
        self.gate = SufficiencyGate(self.settings.sufficiency_threshold)
        self.totals = TotalVolumeLocator(self.settings)
        self.differ = DiffEngine()

    def attempt(self, extractor: BaseExtractor, snapshot: PageSnapshot) -> StrategyAttempt:
        try:
            raw_rows = extractor.extract(snapshot)
        except Exception as e:
            # counts as an empty attempt
            logger.exception(f"Extractor {extractor.name} failed: {e}")
            raw_rows = []
        normalized = RecordNormalizer().normalize_all(raw_rows)
        accepted = self.ranker.select(normalized)
        logger.info(f"[{extractor.name}] raw={len(raw_rows)} "
                    f"normalized={len(normalized)} accepted={len(accepted)}")
        return StrategyAttempt(extractor.name, normalized, accepted)

    def run(self, snapshot: PageSnapshot) -> PipelineResult:
        attempts = self._parallel_attempts(snapshot) if self.parallel else self._sequential_attempts(snapshot)
        summary = {a.name: len(a.accepted) for a in attempts}

        chosen = self.gate.pick_best([(a.name, a.accepted) for a in attempts])
        if chosen is None:
            logger.warning("No data captured by any strategy")
            return NoDataCaptured(
                attempts=summary,
                raw_text=snapshot.text or snapshot.ocr_text,
                raw_html=snapshot.html,
            )

        name = chosen[0]
        winner = next(a for a in attempts if a.accepted is chosen[1])
        known_full = {r.address for a in attempts for r in a.normalized if is_full_address(r.address)}
        records = self.ranker.rank(winner.normalized, known_full=known_full)
        assert_ranked(records, self.settings.max_records)

        total = self.totals.locate(snapshot)
        logger.info(f"Selected strategy '{name}' with {len(records)} records"
                    + (f", total volume {total:,.0f}" if total else ""))
        return Top20Result(
            records=records,
            total_volume=total,
            strategy=name,
            attempts=summary,
        )

    def diff_against(self, result: Top20Result,
                     baseline: Optional[PersistedSnapshot]) -> Tuple[List[DiffRecord], Optional[float]]:
        """Per-record deltas and total-volume delta against yesterday's snapshot."""
        yesterday = baseline.records if baseline else []
        diffs = self.differ.diff(result.records, yesterday)
        total_delta = self.differ.diff_total(result.total_volume, baseline.total_volume if baseline else None)
        return diffs, total_delta

    def _sequential_attempts(self, snapshot: PageSnapshot) -> List[StrategyAttempt]:
        attempts = []
        for extractor in self.extractors:
            attempt = self.attempt(extractor, snapshot)
            attempts.append(attempt)
            if self.gate.is_sufficient(attempt.accepted):
                break
            logger.info(f"[{extractor.name}] insufficient, falling through")
        return attempts

    def _parallel_attempts(self, snapshot: PageSnapshot) -> List[StrategyAttempt]:
        if not self.extractors:
            return []
        with ThreadPoolExecutor(max_workers=len(self.extractors)) as pool:
            futures = [pool.submit(self.attempt, extractor, snapshot) for extractor in self.extractors]
            results = [f.result() for f in futures]
        # Cut at the first sufficient strategy so the outcome matches sequential mode
        attempts = []
        for attempt in results:
            attempts.append(attempt)
            if self.gate.is_sufficient(attempt.accepted):
                break
        return attempts

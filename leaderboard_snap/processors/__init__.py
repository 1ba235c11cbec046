# leaderboard_snap/processors/__init__.py
"""
Processors Package
Normalization, ranking, sufficiency gating and day-over-day diffs
"""

from .record_normalizer import RecordNormalizer
from .ranker import CandidateRanker, addresses_match, expand_address
from .quality_gate import SufficiencyGate
from .diff_engine import DiffEngine

__all__ = [
    "RecordNormalizer",
    "CandidateRanker",
    "addresses_match",
    "expand_address",
    "SufficiencyGate",
    "DiffEngine",
]

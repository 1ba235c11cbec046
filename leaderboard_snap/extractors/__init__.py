# leaderboard_snap/extractors/__init__.py
"""
Extractors Package
One strategy per page representation, highest fidelity first
"""

from .base import BaseExtractor, RawCandidateRow
from .payload_extract import PayloadExtractor, TotalVolumeLocator
from .table_extract import TableExtractor, AccessibilityGridExtractor
from .text_extract import TextProximityExtractor
from .ocr_extract import OCRExtractor


def default_extractors(settings=None):
    """Strategies in fixed priority order."""
    return [
        PayloadExtractor(settings),
        TableExtractor(settings),
        AccessibilityGridExtractor(settings),
        TextProximityExtractor(settings),
        OCRExtractor(settings),
    ]


__all__ = [
    "BaseExtractor",
    "RawCandidateRow",
    "PayloadExtractor",
    "TotalVolumeLocator",
    "TableExtractor",
    "AccessibilityGridExtractor",
    "TextProximityExtractor",
    "OCRExtractor",
    "default_extractors",
]

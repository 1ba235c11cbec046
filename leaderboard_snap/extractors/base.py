from abc import ABC, abstractmethod
from typing import Any, List, Optional

from leaderboard_snap.models.leaderboard_schema import PageSnapshot
from leaderboard_snap.utils.settings import ExtractionSettings

# One row as seen by an extractor: list of cell strings or a JSON object
RawCandidateRow = Any


class BaseExtractor(ABC):
    """
    One extraction strategy.

    extract() reads a single representation of the page and returns raw rows
    in on-page order. It must never raise on messy input; an unusable
    representation simply yields [].
    """

    name = "base"

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    @abstractmethod
    def extract(self, snapshot: PageSnapshot) -> List[RawCandidateRow]:
        raise NotImplementedError

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"

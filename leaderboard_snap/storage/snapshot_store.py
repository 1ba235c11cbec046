import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from leaderboard_snap.models.leaderboard_schema import (
    InvariantViolation,
    PersistedSnapshot,
    Top20Result,
    assert_ranked,
)
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)


class SnapshotStoreError(Exception):
    """Baseline file exists but cannot be used (strict mode only)."""


class SnapshotStore:
    """
    Yesterday's baseline as a single JSON file.

    Read once at run start, written once at run end, only for a non-empty
    result. Writes go through a temp file + os.replace so a crash never
    leaves a half-written baseline.
    """

    def __init__(self, path: Union[str, Path] = "data/leaderboard_state.json", strict: bool = False):
        self.path = Path(path)
        self.strict = strict

    def load(self) -> Optional[PersistedSnapshot]:
        if not self.path.exists():
            logger.info(f"No baseline at {self.path} (first run)")
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                snapshot = PersistedSnapshot.model_validate(json.load(f))
            assert_ranked(snapshot.records)
        except (OSError, ValueError, ValidationError, InvariantViolation) as e:
            if self.strict:
                raise SnapshotStoreError(f"Unusable baseline {self.path}: {e}") from e
            logger.warning(f"Ignoring unusable baseline {self.path}: {e}")
            return None
        logger.info(f"Loaded baseline with {len(snapshot.records)} records from {self.path}")
        return snapshot

    def save(self, result: Top20Result) -> Optional[Path]:
        if not result.records:
            logger.warning("Refusing to overwrite baseline with an empty result")
            return None

        snapshot = result.to_snapshot()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".snapshot-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"💾 Saved baseline ({len(snapshot.records)} records) → {self.path}")
        return self.path

#!/usr/bin/env python3
"""
Leaderboard Schema - Pydantic models for snapshot data

Rules:
- address: MUST be non-empty (rows without one never become records)
- volume_numeric: MUST be >= 0
- a Top20Result holds at most 20 records with unique addresses and dense
  ranks 1..N sorted by volume (checked by assert_ranked)
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvariantViolation(AssertionError):
    """A ranked result broke rank density, ordering or address uniqueness."""


class LeaderboardRecord(BaseModel):
    """Canonical, post-normalization leaderboard row."""

    rank: int = Field(ge=1)
    address: str
    level: str = ""
    staked: str = ""
    volume_raw: str = ""
    volume_numeric: float = Field(default=0.0, ge=0)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Address cannot be empty")
        return v


class DiffRecord(LeaderboardRecord):
    """Record plus deltas against yesterday's snapshot (None = new entrant)."""

    delta_volume: Optional[float] = None
    delta_rank: Optional[int] = None

    @property
    def is_new(self) -> bool:
        return self.delta_volume is None and self.delta_rank is None


class PersistedSnapshot(BaseModel):
    """Serialized Top20Result used as the next run's baseline."""

    records: List[LeaderboardRecord] = []
    total_volume: Optional[float] = None
    strategy: str = ""
    captured_at: datetime = Field(default_factory=_utcnow)


class Top20Result(BaseModel):
    records: List[LeaderboardRecord] = []
    total_volume: Optional[float] = None
    strategy: str = ""
    captured_at: datetime = Field(default_factory=_utcnow)
    attempts: Dict[str, int] = {}

    @property
    def ok(self) -> bool:
        return True

    def to_snapshot(self) -> PersistedSnapshot:
        return PersistedSnapshot(
            records=[LeaderboardRecord(**r.model_dump(include=set(LeaderboardRecord.model_fields)))
                     for r in self.records],
            total_volume=self.total_volume,
            strategy=self.strategy,
            captured_at=self.captured_at,
        )


class NoDataCaptured(BaseModel):
    """Explicit failure result: every strategy came back empty."""

    reason: str = "No rows captured (payload, table, grid, text and OCR all failed)"
    attempts: Dict[str, int] = {}
    raw_text: Optional[str] = None
    raw_html: Optional[str] = None
    captured_at: datetime = Field(default_factory=_utcnow)

    @property
    def ok(self) -> bool:
        return False


PipelineResult = Union[Top20Result, NoDataCaptured]


class CapturedResponse(BaseModel):
    """One structured network response captured by the browser driver."""

    url: str
    body: Any = None
    status: Optional[int] = None
    content_type: Optional[str] = None


class PageSnapshot(BaseModel):
    """
    Everything the browser collaborator could read from the page.

    Any field may be empty; each extractor reads only the representation it
    understands.
    """

    url: Optional[str] = None
    responses: List[CapturedResponse] = []
    table_rows: List[List[str]] = []
    grid_rows: List[List[str]] = []
    html: Optional[str] = None
    text: Optional[str] = None
    ocr_text: Optional[str] = None
    total_volume_hint: Optional[float] = None
    captured_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "PageSnapshot":
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))
        return path


def assert_ranked(records: List[LeaderboardRecord], max_records: int = 20) -> None:
    """
    Raise InvariantViolation unless records form a valid ranked result.

    Checks: N <= max_records, ranks exactly 1..N in order, unique addresses,
    non-increasing volume_numeric.
    """
    if len(records) > max_records:
        raise InvariantViolation(f"{len(records)} records exceed limit of {max_records}")

    seen = set()
    for i, record in enumerate(records):
        if record.rank != i + 1:
            raise InvariantViolation(f"Rank {record.rank} at position {i} (expected {i + 1})")
        if record.address in seen:
            raise InvariantViolation(f"Duplicate address: {record.address}")
        seen.add(record.address)
        if i and record.volume_numeric > records[i - 1].volume_numeric:
            raise InvariantViolation(
                f"Volume at rank {record.rank} exceeds rank {record.rank - 1}"
            )

#!/usr/bin/env python3
"""
Record Normalizer - raw candidate rows -> LeaderboardRecord

A raw row is either positional (list of cell strings, as read from a table,
ARIA grid or text neighbourhood) or keyed (a JSON object from an API
payload, keys unknown in advance). Both are flattened into (key, value)
fields, key=None for positional cells, and every output field is resolved
by walking an ordered list of FieldRules until one yields a value.

Resolution order per field:
1. exact key match (in key-priority order)
2. substring key match
3. value shape (address pattern, "LVL 6", "123 FAF staked", "$1,234")
"""

from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError

from leaderboard_snap.models.leaderboard_schema import LeaderboardRecord
from leaderboard_snap.processors.patterns import (
    FORMATTED_NUMBER_RE,
    LEVEL_RE,
    STAKED_RE,
    CURRENCY_RE,
    collapse_ws,
    find_address,
    format_level,
    format_usd,
    is_currency,
    is_number,
    numeric_portion,
    parse_money,
)
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)

# Key priority lists (normalized: lower-case, no "_", "-", " ")
ADDRESS_KEYS = ["address", "wallet", "owner", "account", "addr", "trader"]
LEVEL_KEYS = ["level", "lvl", "tier"]
STAKED_KEYS = ["faf", "staked", "stake", "deposited"]
VOLUME_KEYS = ["volume", "totalvolume", "tradedvolume", "vp", "points", "value", "amount", "pnl"]
RANK_KEYS = ["rank", "position", "index", "idx", "place"]

MAX_FLATTEN_DEPTH = 3

Field = Tuple[Optional[str], Any]


class FieldRule(NamedTuple):
    """matcher(key, value) selects a field, extractor(value) reads it (None = no usable value)."""

    name: str
    matcher: Callable[[Optional[str], Any], bool]
    extractor: Callable[[Any], Any]


def norm_key(key: Optional[str]) -> str:
    if key is None:
        return ""
    return str(key).lower().replace("_", "").replace("-", "").replace(" ", "")


# ---------------------------------------------------------------------------
# matchers
# ---------------------------------------------------------------------------

def key_is(name: str):
    return lambda k, v: k is not None and norm_key(k) == name


def key_contains(names: Sequence[str], exclude: Sequence[str] = ()):
    def _match(k, v):
        if k is None:
            return False
        nk = norm_key(k)
        if any(x in nk for x in exclude):
            return False
        return any(n in nk for n in names)
    return _match


def value_is(predicate: Callable[[Any], bool]):
    return lambda k, v: predicate(v)


def both(first, second):
    return lambda k, v: first(k, v) and second(k, v)


def _number_value(k, v) -> bool:
    return is_number(v)


def _text_value(k, v) -> bool:
    return isinstance(v, str)


# ---------------------------------------------------------------------------
# extractors
# ---------------------------------------------------------------------------

def _address_from_key(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return collapse_ws(value) or None


def _level_from_key(value: Any) -> Optional[str]:
    return format_level(value) or None


def _level_from_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    m = LEVEL_RE.search(value)
    return f"LVL {int(m.group(1))}" if m else None


def _staked_from_key(value: Any) -> Optional[str]:
    return numeric_portion(value) or None


def _staked_from_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    m = STAKED_RE.search(value)
    return m.group(1).replace(",", "") if m else None


def _volume_from_number(value: Any) -> Optional[Tuple[str, float]]:
    number = parse_money(value)
    return format_usd(number), number


def _volume_from_text(value: Any) -> Optional[Tuple[str, float]]:
    if not isinstance(value, str):
        return None
    s = collapse_ws(value)
    if not s:
        return None
    if is_currency(s):
        return s, parse_money(s)
    number = parse_money(s)
    if number > 0 or s.strip("$ ") in ("0", "0.0", "0.00"):
        return format_usd(number), number
    return None


def _volume_from_currency_cell(value: Any) -> Optional[Tuple[str, float]]:
    if not isinstance(value, str):
        return None
    m = CURRENCY_RE.search(value)
    if not m:
        return None
    raw = m.group(0).strip()
    return raw, parse_money(raw)


NON_VOLUME_KEYS = ADDRESS_KEYS + LEVEL_KEYS + STAKED_KEYS + RANK_KEYS

ADDRESS_RULES: List[FieldRule] = (
    [FieldRule(f"key={n}", key_is(n), _address_from_key) for n in ADDRESS_KEYS]
    + [
        FieldRule("key~address", both(key_contains(ADDRESS_KEYS), value_is(lambda v: bool(find_address(v)))),
                  find_address),
        FieldRule("value~address", value_is(lambda v: bool(find_address(v))), find_address),
    ]
)

LEVEL_RULES: List[FieldRule] = (
    [FieldRule(f"key={n}", key_is(n), _level_from_key) for n in LEVEL_KEYS]
    + [
        FieldRule("key~level", key_contains(LEVEL_KEYS), _level_from_key),
        FieldRule("value~LVL", value_is(lambda v: True), _level_from_text),
    ]
)

STAKED_RULES: List[FieldRule] = (
    [FieldRule(f"key={n}", key_is(n), _staked_from_key) for n in STAKED_KEYS]
    + [
        FieldRule("key~staked", key_contains(STAKED_KEYS), _staked_from_key),
        FieldRule("value~staked", value_is(lambda v: True), _staked_from_text),
    ]
)

# Exact keys before substring keys; within each tier a JSON number beats a
# formatted string.
VOLUME_RULES: List[FieldRule] = (
    [FieldRule(f"key={n}:number", both(key_is(n), _number_value), _volume_from_number) for n in VOLUME_KEYS]
    + [FieldRule(f"key={n}:text", both(key_is(n), _text_value), _volume_from_text) for n in VOLUME_KEYS]
    + [
        FieldRule("key~volume:number",
                  both(key_contains(VOLUME_KEYS, exclude=NON_VOLUME_KEYS), _number_value),
                  _volume_from_number),
        FieldRule("key~volume:text",
                  both(key_contains(VOLUME_KEYS, exclude=NON_VOLUME_KEYS), _text_value),
                  _volume_from_text),
        FieldRule("value~$", value_is(lambda v: True), _volume_from_currency_cell),
    ]
)


def resolve(fields: List[Field], rules: List[FieldRule], claimed: set) -> Tuple[Any, Optional[int]]:
    """Evaluate rules in order; return (value, field index) of the first hit."""
    for rule in rules:
        for i, (key, value) in enumerate(fields):
            if i in claimed or value is None:
                continue
            if not rule.matcher(key, value):
                continue
            extracted = rule.extractor(value)
            if extracted:
                return extracted, i
    return None, None


def flatten_row(raw: Any) -> List[Field]:
    """Turn a raw row into ordered (key, value) fields."""
    if raw is None:
        return []
    if isinstance(raw, dict):
        fields: List[Field] = []
        nested: List[Tuple[dict, int]] = []
        for key, value in raw.items():
            if isinstance(value, dict):
                nested.append((value, 1))
            elif isinstance(value, (list, tuple)):
                continue
            else:
                fields.append((str(key), collapse_ws(value) if isinstance(value, str) else value))
        # Nested objects ({"user": {"address": ...}}) after top-level keys
        while nested:
            obj, depth = nested.pop(0)
            for key, value in obj.items():
                if isinstance(value, dict):
                    if depth < MAX_FLATTEN_DEPTH:
                        nested.append((value, depth + 1))
                elif not isinstance(value, (list, tuple)):
                    fields.append((str(key), collapse_ws(value) if isinstance(value, str) else value))
        return fields
    if isinstance(raw, (list, tuple)):
        return [(None, collapse_ws(cell) if isinstance(cell, str) else cell) for cell in raw]
    return [(None, collapse_ws(raw))]


class RecordNormalizer:
    """
    Converts RawCandidateRows into LeaderboardRecords.

    Rejects (returns None) rows without an address and rows whose volume is
    both empty and zero. Level and staked default to "".
    """

    def __init__(self):
        self.rejected = 0

    def normalize(self, raw: Any, index: int) -> Optional[LeaderboardRecord]:
        fields = flatten_row(raw)
        if not fields:
            return self._reject(index, "empty row")

        claimed = set()
        address, addr_idx = resolve(fields, ADDRESS_RULES, claimed)
        if not address:
            return self._reject(index, "no address")
        claimed.add(addr_idx)

        level, level_idx = resolve(fields, LEVEL_RULES, claimed)
        if level_idx is not None:
            claimed.add(level_idx)

        staked, staked_idx = resolve(fields, STAKED_RULES, claimed)
        if staked_idx is not None:
            claimed.add(staked_idx)

        if not level or not staked:
            level, staked = self._canonical_columns(fields, addr_idx, level, staked, claimed)

        volume, _ = resolve(fields, VOLUME_RULES, claimed)
        if not volume:
            volume = self._lone_large_number(fields, claimed)
        volume_raw, volume_numeric = volume or ("", 0.0)

        if not volume_raw and volume_numeric == 0:
            return self._reject(index, f"no volume for {address}")

        try:
            return LeaderboardRecord(
                rank=max(index, 0) + 1,
                address=address,
                level=level or "",
                staked=staked or "",
                volume_raw=volume_raw,
                volume_numeric=volume_numeric,
            )
        except ValidationError as e:
            return self._reject(index, str(e))

    def normalize_all(self, rows: Sequence[Any]) -> List[LeaderboardRecord]:
        records = []
        for i, raw in enumerate(rows):
            try:
                record = self.normalize(raw, i)
            except Exception as e:
                record = self._reject(i, f"{type(e).__name__}: {e}")
            if record is not None:
                records.append(record)
        if len(records) < len(rows):
            logger.debug(f"Normalizer kept {len(records)}/{len(rows)} rows")
        return records

    def _canonical_columns(self, fields, addr_idx, level, staked, claimed):
        """
        Page layout [rank, address, level, staked, volume] with bare numbers:
        only trusted when column 3 is a short integer.
        """
        if addr_idx != 1 or len(fields) < 5 or any(k is not None for k, _ in fields):
            return level, staked
        level_cell = str(fields[2][1] or "").strip()
        if not level_cell.isdigit() or len(level_cell) > 3:
            return level, staked
        if not level and 2 not in claimed:
            level = f"LVL {int(level_cell)}"
            claimed.add(2)
        staked_cell = fields[3][1]
        if not staked and 3 not in claimed and not is_currency(staked_cell):
            staked = numeric_portion(staked_cell)
            if staked:
                claimed.add(3)
        return level, staked

    def _lone_large_number(self, fields: List[Field], claimed: set) -> Optional[Tuple[str, float]]:
        """Last resort: exactly one unclaimed large number in the row is the volume."""
        candidates = []
        for i, (key, value) in enumerate(fields):
            if i in claimed:
                continue
            if key is not None and any(n in norm_key(key) for n in RANK_KEYS):
                continue
            if isinstance(value, str) and FORMATTED_NUMBER_RE.match(value.strip()):
                candidates.append(parse_money(value))
            elif is_number(value) and value >= 1000:
                candidates.append(float(value))
        if len(candidates) != 1:
            return None
        return format_usd(candidates[0]), candidates[0]

    def _reject(self, index: int, reason: str) -> None:
        self.rejected += 1
        logger.debug(f"Row {index} dropped: {reason}")
        return None

"""
Pytest Configuration and Shared Fixtures
==========================================

Synthetic leaderboard data in every representation the extractors read.
"""

import os
import sys
from html import escape
from pathlib import Path

import pytest

os.environ.setdefault("LOG_LEVEL", "DEBUG")

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from leaderboard_snap.extractors.base import BaseExtractor
from leaderboard_snap.models.leaderboard_schema import CapturedResponse, LeaderboardRecord, PageSnapshot

BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def make_address(i: int) -> str:
    """Distinct, valid full-length base58 address for index i (< 58)."""
    return f"{BASE58[i]}{BASE58[(i * 7) % 58]}Wa9Ht" + "Qz7Rm4" * 4


def truncate(address: str) -> str:
    return f"{address[:4]}...{address[-4:]}"


def make_record(rank: int, address: str, volume: float, **kwargs) -> LeaderboardRecord:
    return LeaderboardRecord(
        rank=rank,
        address=address,
        volume_raw=kwargs.pop("volume_raw", f"${volume:,.0f}"),
        volume_numeric=volume,
        **kwargs,
    )


class StubExtractor(BaseExtractor):
    """Returns canned raw rows; raises when rows is an exception."""

    def __init__(self, name, rows, settings=None):
        super().__init__(settings)
        self.name = name
        self.rows = rows
        self.calls = 0

    def extract(self, snapshot):
        self.calls += 1
        if isinstance(self.rows, Exception):
            raise self.rows
        return list(self.rows)


# ============================================================================
# Raw rows
# ============================================================================

@pytest.fixture
def addresses():
    return [make_address(i) for i in range(30)]


@pytest.fixture
def payload_traders(addresses):
    return [
        {
            "rank": i + 1,
            "wallet": addresses[i],
            "level": 5,
            "fafStaked": "1,000 FAF",
            "volume": 1_000_000 - i * 10_000,
        }
        for i in range(25)
    ]


@pytest.fixture
def payload_snapshot(payload_traders):
    return PageSnapshot(
        url="https://www.flash.trade/leaderboard",
        responses=[
            CapturedResponse(
                url="https://cdn.flash.trade/static/config.json",
                body={"markets": [{"symbol": "SOL", "price": 150}] * 12},
            ),
            CapturedResponse(
                url="https://api.flash.trade/leaderboard/daily",
                body={"data": {"traders": payload_traders, "totalVolume": 987_654_321}},
                status=200,
                content_type="application/json",
            ),
        ],
    )


@pytest.fixture
def table_rows(addresses):
    return [
        ["< %02d >" % (i + 1), addresses[i], str(i % 7 + 1), "1,234,567", f"${2_000_000 - i * 50_000:,}"]
        for i in range(15)
    ]


@pytest.fixture
def table_html(table_rows):
    body = "".join(
        "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in row) + "</tr>"
        for row in table_rows
    )
    return (
        "<html><body><h1>Leaderboard</h1><table>"
        "<thead><tr><th>Rank</th><th>Address</th><th>Level</th><th>FAF</th><th>Volume</th></tr></thead>"
        f"<tbody>{body}</tbody></table></body></html>"
    )


@pytest.fixture
def leaderboard_text(addresses):
    """innerText of a div-based leaderboard: one field per line."""
    lines = ["Leaderboard", "Total Volume Traded", "$1,234,567,890", "Rank", "Address", "Volume"]
    for i in range(12):
        lines += [
            "< %02d >" % (i + 1),
            truncate(addresses[i]),
            f"LVL {i % 5 + 1}",
            f"{(i + 1) * 1000:,} FAF staked",
            f"${3_000_000 - i * 100_000:,}",
        ]
    return "\n".join(lines)


@pytest.fixture
def ranked_records(addresses):
    return [make_record(i + 1, addresses[i], 1_000_000 - i * 10_000) for i in range(20)]

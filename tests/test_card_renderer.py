"""
Tests for the card HTML (PNG rendering needs a browser and is not covered here).
"""

from datetime import datetime, timezone

import pytest

from leaderboard_snap.models.leaderboard_schema import DiffRecord, Top20Result
from leaderboard_snap.processors.diff_engine import DiffEngine
from leaderboard_snap.render.card_renderer import build_card_html, format_delta_usd, rank_marker

from conftest import make_record


@pytest.fixture
def result(ranked_records):
    return Top20Result(
        records=ranked_records,
        total_volume=123_456_789.0,
        strategy="payload",
        captured_at=datetime(2026, 10, 18, 12, 5, tzinfo=timezone.utc),
    )


class TestCardHtml:

    def test_header(self, result):
        html = build_card_html(result, site_name="FlashTrade")
        assert "FlashTrade Leaderboard — Top 20" in html
        assert "Snapshot (UTC): 2026-10-18 12:05" in html
        assert "$123,456,789" in html

    def test_rows(self, result, addresses):
        html = build_card_html(result)
        assert html.count("<tr>") == 21
        assert "🥇" in html and "🥈" in html and "🥉" in html
        assert "&lt; 01 &gt;" in html and "&lt; 20 &gt;" in html
        assert addresses[19] in html

    def test_sum_fallback_is_labelled(self, addresses):
        result = Top20Result(records=[make_record(1, addresses[0], 1_000), make_record(2, addresses[1], 500)])
        html = build_card_html(result)
        assert "$1,500" in html
        assert "sum of top 2" in html

    def test_deltas(self, result, ranked_records, addresses):
        yesterday = [make_record(1, addresses[1], 980_000), make_record(2, addresses[0], 900_000)]
        diffs = DiffEngine().diff(ranked_records, yesterday)
        html = build_card_html(result, diffs, total_delta=-2_500.0)

        assert "+$100,000" in html
        assert "▲1" in html
        assert "▼1" in html
        assert "NEW" in html
        assert "-$2,500" in html

    def test_no_baseline(self, result):
        html = build_card_html(result, total_delta=None)
        assert ">–</span> vs Yesterday" in html
        assert "NEW" not in html

    def test_text_is_escaped(self):
        record = DiffRecord(rank=1, address="<script>alert(1)</script>", volume_raw="$1", volume_numeric=1)
        html = build_card_html(Top20Result(records=[record]), [record], site_name="A&B")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "A&amp;B Leaderboard" in html


class TestFormatting:

    @pytest.mark.parametrize("delta, text", [
        (1_200.0, "+$1,200"),
        (-0.5, "-$0.50"),
        (0.0, "±$0"),
        (None, "–"),
    ])
    def test_format_delta_usd(self, delta, text):
        assert format_delta_usd(delta) == text

    def test_rank_marker(self):
        assert rank_marker(7) == "< 07 >"
        assert rank_marker(20) == "< 20 >"

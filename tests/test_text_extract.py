"""
Tests for TextProximityExtractor and OCRExtractor.
"""

import pytest

from leaderboard_snap.extractors.ocr_extract import OCRExtractor
from leaderboard_snap.extractors.text_extract import TextProximityExtractor
from leaderboard_snap.models.leaderboard_schema import PageSnapshot
from leaderboard_snap.processors.record_normalizer import RecordNormalizer
from leaderboard_snap.utils.settings import ExtractionSettings


def normalize(rows):
    return RecordNormalizer().normalize_all(rows)


class TestTextProximityExtractor:

    def test_single_neighbourhood(self):
        text = "\n".join(["3Bwp...QA2m", "LVL 6", "6,577,330 FAF staked", "$24,356,207"])
        rows = TextProximityExtractor().extract(PageSnapshot(text=text))
        records = normalize(rows)

        assert len(records) == 1
        record = records[0]
        assert record.address == "3Bwp...QA2m"
        assert record.level == "LVL 6"
        assert record.staked == "6577330"
        assert record.volume_numeric == 24_356_207

    def test_full_leaderboard_text(self, leaderboard_text, addresses):
        rows = TextProximityExtractor().extract(PageSnapshot(text=leaderboard_text))
        records = normalize(rows)

        assert len(records) == 12
        assert records[0].address == f"{addresses[0][:4]}...{addresses[0][-4:]}"
        assert records[0].volume_numeric == 3_000_000
        assert records[11].volume_numeric == 1_900_000
        assert records[3].level == "LVL 4"
        assert records[3].staked == "4000"

    def test_total_volume_line_is_not_a_row_volume(self, leaderboard_text):
        rows = TextProximityExtractor().extract(PageSnapshot(text=leaderboard_text))
        assert all("$1,234,567,890" not in row for row in rows)

    def test_address_without_amount_is_dropped(self):
        text = "\n".join(["3Bwp...QA2m", "LVL 2", "9Zxc...Kp4r", "$5,000"])
        rows = TextProximityExtractor().extract(PageSnapshot(text=text))
        assert len(rows) == 1
        assert rows[0][0] == "9Zxc...Kp4r"
        assert rows[0][-1] == "$5,000"

    def test_amount_above_address(self):
        text = "\n".join(["$7,500", "LVL 1", "3Bwp...QA2m", "Trade"])
        rows = TextProximityExtractor().extract(PageSnapshot(text=text))
        assert rows == [["3Bwp...QA2m", "LVL 1", "$7,500"]]

    def test_tab_separated_cells(self):
        text = "01\t3Bwp...QA2m\tLVL 3\t$12,000\n02\t9Zxc...Kp4r\tLVL 1\t$11,000"
        records = normalize(TextProximityExtractor().extract(PageSnapshot(text=text)))
        assert [r.volume_numeric for r in records] == [12_000, 11_000]

    def test_falls_back_to_html_text(self):
        html = "<div><p>3Bwp...QA2m</p><p>LVL 6</p><p>$24,356,207</p></div>"
        rows = TextProximityExtractor().extract(PageSnapshot(html=html))
        assert rows == [["3Bwp...QA2m", "LVL 6", "$24,356,207"]]

    def test_line_cap(self, leaderboard_text):
        settings = ExtractionSettings(text_max_lines=16)
        rows = TextProximityExtractor(settings).extract(PageSnapshot(text=leaderboard_text))
        assert len(rows) == 2

    def test_empty_snapshot(self):
        assert TextProximityExtractor().extract(PageSnapshot()) == []


class TestOCRExtractor:

    @pytest.fixture
    def ocr(self):
        return OCRExtractor()

    def test_reads_ocr_text_only(self, leaderboard_text, ocr):
        assert ocr.extract(PageSnapshot(text=leaderboard_text)) == []

    @pytest.mark.parametrize("raw, fixed", [
        ("S24,356,207", "$24,356,207"),
        ("LVL6", "LVL 6"),
        ("LYL 12", "LVL 12"),
        ("6,577,330 F4F staked", "6,577,330 FAF staked"),
        ("3Bwp. . .QA2m", "3Bwp...QA2m"),
        ("3Bwp...QA2m | $100", "3Bwp...QA2m $100"),
    ])
    def test_repairs(self, ocr, raw, fixed):
        assert ocr.repair(raw) == fixed

    def test_chrome_lines(self, ocr):
        assert ocr.is_chrome("Connect Wallet")
        assert ocr.is_chrome("LEADERBOARD")
        assert not ocr.is_chrome("$1,000")

    def test_glued_row_is_split(self, ocr):
        line = "< 1 > 3Bwp...QA2m LVL 6 6,577,330 FAF staked $24,356,207"
        assert ocr.split_tokens(line) == [
            "< 01 >", "3Bwp...QA2m", "LVL 6", "6,577,330 FAF staked", "$24,356,207",
        ]

    def test_noisy_transcription(self, ocr):
        ocr_text = "\n".join([
            "LEADERBOARD",
            "Connect Wallet",
            "Rank | Address | Level | FAF | Volume",
            "< 01 > 3Bwp. . .QA2m LVL6 6,577,330 F4F staked S24,356,207",
            "< 02 > 9Zxc...Kp4r LYL 2 1,000 FAF $9,100",
        ])
        records = normalize(ocr.extract(PageSnapshot(ocr_text=ocr_text)))

        assert [r.address for r in records] == ["3Bwp...QA2m", "9Zxc...Kp4r"]
        assert records[0].level == "LVL 6"
        assert records[0].staked == "6577330"
        assert records[0].volume_numeric == 24_356_207
        assert records[1].level == "LVL 2"
        assert records[1].volume_numeric == 9_100

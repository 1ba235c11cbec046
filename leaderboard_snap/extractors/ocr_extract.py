"""
OCR Extractor - degraded fallback for canvas-rendered / obfuscated pages

Input is the OCR transcription of a full-page screenshot (produced by the
browser collaborator). Same proximity logic as the text extractor, after a
cleanup pass for OCR noise:
- UI chrome lines (nav, headers, buttons) are removed
- rank markers "< 01 >" and several fields glued onto one line are split
  into one token per line
- common misreads ("S24,356" for "$24,356", "LVL6", "F4F staked", ". . .")
  are repaired
"""

import re
from typing import List

from leaderboard_snap.extractors.text_extract import TextProximityExtractor
from leaderboard_snap.models.leaderboard_schema import PageSnapshot
from leaderboard_snap.processors.patterns import ADDRESS_TOKEN_RE, is_address

UI_CHROME = {
    "leaderboard", "top 20", "rank", "address", "wallet", "trader", "level", "faf",
    "staked", "volume", "traded volume", "volume traded", "points",
    "connect wallet", "connect", "trade", "earn", "portfolio", "referral",
    "referrals", "stake", "docs", "more", "search", "load more", "show more",
    "view all", "daily", "weekly", "all-time", "all time",
}

REPAIRS = [
    (re.compile(r"\.\s+\.\s+\."), "..."),
    (re.compile(r"[‥⋯]"), "…"),
    (re.compile(r"(?<![A-Za-z0-9])[S§](?=\s?\d{1,3}(?:,\d{3})+)"), "$"),
    (re.compile(r"\bL[VY]L\s*[.:]?\s*(\d+)", re.IGNORECASE), r"LVL \1"),
    (re.compile(r"\bF[A4]F\b", re.IGNORECASE), "FAF"),
    (re.compile(r"[|¦]"), " "),
]

TOKEN_RE = re.compile(
    r"(?P<rank>[<«‹]\s*\d{1,2}\s*[>»›])"
    r"|(?P<level>(?i:\bLVL\s*\d+))"
    r"|(?P<staked>\d[\d,]*(?:\.\d+)?\s*(?i:FAF(?:\s+staked)?))"
    r"|(?P<amount>\$\s?\d[\d,]*(?:\.\d+)?\s*[KMBkmb]?(?![\w]))"
    rf"|(?P<address>{ADDRESS_TOKEN_RE.pattern})"
)


class OCRExtractor(TextProximityExtractor):

    name = "ocr"

    def source_text(self, snapshot: PageSnapshot) -> str:
        return snapshot.ocr_text or ""

    def prepare_lines(self, text: str) -> List[str]:
        out = []
        for line in super().prepare_lines(text):
            line = self.repair(line)
            if self.is_chrome(line):
                continue
            out.extend(self.split_tokens(line))
        return out[: self.settings.text_max_lines]

    def repair(self, line: str) -> str:
        for pattern, replacement in REPAIRS:
            line = pattern.sub(replacement, line)
        return re.sub(r"\s+", " ", line).strip()

    def is_chrome(self, line: str) -> bool:
        bare = re.sub(r"[^\w\s\-]", "", line).strip().lower()
        return not bare or bare in UI_CHROME

    def split_tokens(self, line: str) -> List[str]:
        """One line per recognised token when OCR glued a whole row together."""
        tokens = []
        for m in TOKEN_RE.finditer(line):
            token = m.group(0).strip()
            if m.lastgroup == "address" and not is_address(token):
                continue
            if m.lastgroup == "rank":
                token = "< %02d >" % int(re.search(r"\d+", token).group())
            tokens.append(token)
        if len(tokens) >= 2:
            return tokens
        return [line]

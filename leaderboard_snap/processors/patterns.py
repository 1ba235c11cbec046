"""
Text patterns shared by the normalizer and the extractors.

Addresses use the base58 alphabet (no 0, O, I, l). The UI shows them either
in full (20-45 chars) or truncated as "abcd…wxyz" / "abcd...wxyz".
"""

import math
import re
from typing import Any, Optional

ADDRESS_CHARS = "1-9A-HJ-NP-Za-km-z"

FULL_ADDRESS_RE = re.compile(rf"^[{ADDRESS_CHARS}]{{20,45}}$")
TRUNCATED_ADDRESS_RE = re.compile(
    rf"^([{ADDRESS_CHARS}]{{2,12}})(?:…|\.{{3,}})([{ADDRESS_CHARS}]{{2,12}})$"
)
ADDRESS_TOKEN_RE = re.compile(
    rf"(?<![{ADDRESS_CHARS}.…])"
    rf"([{ADDRESS_CHARS}]{{2,12}}(?:…|\.{{3,}})[{ADDRESS_CHARS}]{{2,12}}|[{ADDRESS_CHARS}]{{20,45}})"
    rf"(?![{ADDRESS_CHARS}.…])"
)

# "$24,356,207", "$ 1.2M", "$0"
CURRENCY_RE = re.compile(r"\$\s?(\d[\d,]*(?:\.\d+)?)\s*([KMB])?(?![\w])", re.IGNORECASE)
# "24,356,207" / "1,200.50" (thousands separators required)
FORMATTED_NUMBER_RE = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d+)?$")
PLAIN_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")

LEVEL_RE = re.compile(r"\b(?:LVL|LEVEL|TIER|LV)\s*\.?\s*(\d+)", re.IGNORECASE)
STAKED_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:FAF\b|staked\b)", re.IGNORECASE)
RANK_MARKER_RE = re.compile(r"^[<«‹(\[]?\s*#?\s*(\d{1,2})\s*[>»›)\]]?$")
TOTAL_VOLUME_RE = re.compile(r"total\s+volume", re.IGNORECASE)

SUFFIX_SCALE = {"K": 1e3, "M": 1e6, "B": 1e9}


def is_full_address(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    s = value.strip()
    if not FULL_ADDRESS_RE.match(s):
        return False
    # All-letter or all-digit tokens are words and counters, not wallets
    return any(c.isdigit() for c in s) and any(c.isalpha() for c in s)


def is_truncated_address(value: Any) -> bool:
    return isinstance(value, str) and bool(TRUNCATED_ADDRESS_RE.match(value.strip()))


def is_address(value: Any) -> bool:
    return is_full_address(value) or is_truncated_address(value)


def find_address(value: Any) -> Optional[str]:
    """Return the whole value if it is address-shaped, else the first address token in it."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    if is_address(s):
        return s
    for match in ADDRESS_TOKEN_RE.finditer(s):
        token = match.group(1)
        if is_address(token):
            return token
    return None


def truncation_parts(address: str) -> Optional[tuple]:
    """('abcd', 'wxyz') for a truncated address, None otherwise."""
    m = TRUNCATED_ADDRESS_RE.match(address.strip())
    if not m:
        return None
    return m.group(1), m.group(2)


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def parse_money(value: Any) -> float:
    """
    Parse a volume-like value into a non-negative float.

    Accepts numbers, "$1,234.5", "1,234", "$1.2M". Returns 0.0 when nothing
    numeric can be read or the value is negative.
    """
    if is_number(value):
        number = float(value)
        return number if number > 0 and math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    s = value.strip()
    if re.match(r"^[-−]\s*\$", s):
        return 0.0
    m = CURRENCY_RE.search(s)
    if m:
        digits, suffix = m.group(1), m.group(2)
    else:
        cleaned = s.replace("$", "").replace(",", "").replace(" ", "")
        m = re.match(r"^(-?\d+(?:\.\d+)?)([KMB])?$", cleaned, re.IGNORECASE)
        if not m:
            return 0.0
        digits, suffix = m.group(1), m.group(2)

    try:
        number = float(digits.replace(",", ""))
    except ValueError:
        return 0.0
    if suffix:
        number *= SUFFIX_SCALE[suffix.upper()]
    return number if number > 0 else 0.0


def format_usd(number: float) -> str:
    if float(number).is_integer():
        return f"${number:,.0f}"
    return f"${number:,.2f}"


def is_currency(value: Any) -> bool:
    return isinstance(value, str) and bool(CURRENCY_RE.search(value))


def first_int(value: Any) -> Optional[int]:
    if is_number(value):
        return int(value)
    if not isinstance(value, str):
        return None
    m = re.search(r"\d+", value)
    return int(m.group()) if m else None


def format_level(value: Any) -> str:
    n = first_int(value)
    return f"LVL {n}" if n is not None else ""


def numeric_portion(value: Any) -> str:
    """'6,577,330 FAF' -> '6577330', 12.0 -> '12', '' when nothing numeric."""
    if is_number(value):
        number = float(value)
        return str(int(number)) if number.is_integer() else str(number)
    if not isinstance(value, str):
        return ""
    m = re.search(r"\d[\d,]*(?:\.\d+)?", value)
    return m.group().replace(",", "") if m else ""


def collapse_ws(text: Any) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()

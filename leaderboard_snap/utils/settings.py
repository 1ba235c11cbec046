"""
Settings - YAML defaults + environment overrides

Every heuristic threshold used by the extraction core lives here as a named
setting instead of a literal buried in an extractor. Defaults come from
config/settings.yaml; LEADERBOARD_* environment variables (optionally from a
.env file) override the output/probe paths.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .logger import get_logger

logger = get_logger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "settings.yaml"

# Relevance filter for captured API responses
DEFAULT_URL_KEYWORDS = r"leader|board|rank|volume|wallet|address|faf|trader|stats"


class ExtractionSettings(BaseModel):
    """Thresholds of the extraction core."""

    sufficiency_threshold: int = 10
    max_records: int = 20

    # PayloadExtractor
    url_keywords: str = DEFAULT_URL_KEYWORDS
    payload_sample_size: int = 30
    payload_min_array_len: int = 10
    payload_min_score: int = 3
    payload_min_value: float = 1000.0
    payload_max_depth: int = 12

    # TableExtractor / AccessibilityGridExtractor
    table_min_cells: int = 4
    table_min_rows: int = 10
    table_max_rows: int = 40
    grid_max_rows: int = 60

    # TextProximityExtractor / OCRExtractor
    text_lookbehind: int = 4
    text_lookahead: int = 8
    text_max_lines: int = 5000


class ProbeSettings(BaseModel):
    url: str = "https://www.flash.trade/leaderboard"
    site_name: str = "FlashTrade"
    tries: int = 6
    timeout_ms: int = 60000
    settle_ms: int = 800
    viewport_width: int = 1100
    viewport_height: int = 2000
    locale: str = "en-US"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
    )


class OutputSettings(BaseModel):
    state_file: str = "data/leaderboard_state.json"
    card_path: str = "leaderboard_snapshot.png"
    debug_dir: str = "debug"
    history_db: Optional[str] = None


class Settings(BaseModel):
    extraction: ExtractionSettings = ExtractionSettings()
    probe: ProbeSettings = ProbeSettings()
    output: OutputSettings = OutputSettings()


# env var -> (section, field)
ENV_OVERRIDES = {
    "LEADERBOARD_URL": ("probe", "url"),
    "LEADERBOARD_STATE_FILE": ("output", "state_file"),
    "LEADERBOARD_OUTPUT": ("output", "card_path"),
    "LEADERBOARD_DEBUG_DIR": ("output", "debug_dir"),
    "LEADERBOARD_HISTORY_DB": ("output", "history_db"),
}


def _load_yaml(config_path: Path) -> dict:
    if not config_path.exists():
        logger.warning(f"Settings file not found, using defaults: {config_path}")
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load settings from {config_path}: {e}")
        return {}


def load_settings(config_path: Optional[Path] = None, env_file: Optional[Path] = None,
                  use_env: bool = True) -> Settings:
    """
    Build Settings from YAML defaults and environment overrides.

    Args:
        config_path: YAML file (default: config/settings.yaml)
        env_file: optional .env file loaded before reading overrides
        use_env: apply LEADERBOARD_* environment overrides

    Returns:
        Validated Settings
    """
    raw = _load_yaml(Path(config_path) if config_path else CONFIG_PATH)
    if not isinstance(raw, dict):
        logger.warning("Settings file is not a mapping, using defaults")
        raw = {}

    if use_env:
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)
        for env_key, (section, field) in ENV_OVERRIDES.items():
            value = os.environ.get(env_key)
            if value:
                raw.setdefault(section, {})[field] = value

    return Settings.model_validate(raw)

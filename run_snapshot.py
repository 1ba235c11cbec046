#!/usr/bin/env python3
"""
Leaderboard Snapshot - daily Top 20 card with deltas vs yesterday

1. Capture: live page via Playwright, or a saved PageSnapshot bundle
2. Baseline: yesterday's snapshot (JSON state file, DuckDB history fallback)
3. Extract: payload -> table -> ARIA grid -> text -> OCR, first sufficient wins
4. Diff: per-trader volume/rank deltas and total-volume delta
5. Render: HTML card -> PNG
6. Persist: new baseline, optional DuckDB archive

Usage:
    python run_snapshot.py                              # Live capture
    python run_snapshot.py --bundle debug/snap.json     # Replay a saved capture
    python run_snapshot.py --html-only                  # Write the card HTML, no PNG
    python run_snapshot.py --history-db data/history.db # Also archive to DuckDB

Exit status: 0 on success, 1 when no rows could be captured.
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from leaderboard_snap.models.leaderboard_schema import NoDataCaptured, PageSnapshot
from leaderboard_snap.pipeline import ExtractionPipeline
from leaderboard_snap.probers.leaderboard_probe import capture_snapshot, save_debug_artifacts
from leaderboard_snap.render.card_renderer import build_card_html, render_card
from leaderboard_snap.storage import HistoryStore, SnapshotStore
from leaderboard_snap.utils.logger import get_logger
from leaderboard_snap.utils.settings import load_settings

logger = get_logger(__name__)


class SnapshotRunner:
    """One daily run: capture, extract, diff, render, persist."""

    def __init__(self, settings, parallel: bool = False):
        self.settings = settings
        self.parallel = parallel
        self.start_time = datetime.now()
        self.screenshot = None

    def log_stage(self, stage: str):
        elapsed = (datetime.now() - self.start_time).seconds
        logger.info("=" * 60)
        logger.info(f"[{elapsed}s] STAGE: {stage}")
        logger.info("=" * 60)

    def capture(self, bundle=None, ocr_text=None, save_bundle=None) -> PageSnapshot:
        self.log_stage("CAPTURE")
        if bundle:
            snapshot = PageSnapshot.load(bundle)
            logger.info(f"Loaded bundle {bundle}")
        else:
            extraction = self.settings.extraction
            snapshot, self.screenshot = capture_snapshot(
                self.settings.probe,
                url_keywords=extraction.url_keywords,
                table_max_rows=extraction.table_max_rows,
                grid_max_rows=extraction.grid_max_rows,
            )

        if ocr_text:
            text = Path(ocr_text).read_text(encoding="utf-8")
            snapshot = snapshot.model_copy(update={"ocr_text": text})
            logger.info(f"Attached OCR transcription ({len(text)} chars) from {ocr_text}")

        if save_bundle:
            snapshot.save(save_bundle)
            logger.info(f"Saved bundle → {save_bundle}")
        return snapshot

    def run(self, snapshot: PageSnapshot, html_only: bool = False) -> int:
        output = self.settings.output
        store = SnapshotStore(output.state_file)
        history = HistoryStore(output.history_db) if output.history_db else None
        try:
            return self._run(snapshot, store, history, html_only)
        finally:
            if history:
                history.close()

    def load_baseline(self, store, history):
        baseline = store.load()
        if baseline is None and history is not None:
            baseline = history.snapshot_before(datetime.now(timezone.utc))
            if baseline:
                logger.info(f"Using DuckDB run from {baseline.captured_at:%Y-%m-%d %H:%M} as baseline")
        return baseline

    def _run(self, snapshot, store, history, html_only) -> int:
        output = self.settings.output
        baseline = self.load_baseline(store, history)

        self.log_stage("EXTRACT")
        pipeline = ExtractionPipeline(settings=self.settings.extraction, parallel=self.parallel)
        result = pipeline.run(snapshot)

        if isinstance(result, NoDataCaptured):
            logger.error(f"{result.reason}. Attempts: {result.attempts}")
            save_debug_artifacts(snapshot, output.debug_dir, self.screenshot)
            return 1

        self.log_stage("DIFF")
        diffs, total_delta = pipeline.diff_against(result, baseline)
        new_count = sum(1 for d in diffs if d.is_new)
        logger.info(f"{len(diffs)} rows, {new_count} new entrants"
                    + (f", total volume delta {total_delta:+,.0f}" if total_delta is not None else ""))

        self.log_stage("RENDER")
        html = build_card_html(result, diffs, total_delta, site_name=self.settings.probe.site_name)
        card_path = Path(output.card_path)
        if html_only:
            html_path = card_path.with_suffix(".html")
            html_path.parent.mkdir(parents=True, exist_ok=True)
            html_path.write_text(html, encoding="utf-8")
            logger.info(f"Saved card HTML: {html_path}")
        else:
            render_card(html, card_path)

        self.log_stage("PERSIST")
        store.save(result)
        if history is not None:
            history.append(result)

        logger.info(f"✅ Done: {len(result.records)} records via '{result.strategy}'")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Leaderboard Top 20 snapshot with daily deltas")
    parser.add_argument("--url", type=str, help="Leaderboard page URL")
    parser.add_argument("--bundle", type=str, help="Replay a saved PageSnapshot JSON instead of probing")
    parser.add_argument("--ocr-text", type=str, help="OCR transcription of the page screenshot")
    parser.add_argument("--save-bundle", type=str, help="Save the captured PageSnapshot JSON")
    parser.add_argument("--state-file", type=str, help="Baseline snapshot JSON")
    parser.add_argument("--output", type=str, help="Card PNG path")
    parser.add_argument("--html-only", action="store_true", help="Write the card HTML instead of a PNG")
    parser.add_argument("--history-db", type=str, help="DuckDB file for the run history")
    parser.add_argument("--parallel", action="store_true", help="Evaluate all strategies concurrently")
    parser.add_argument("--config", type=str, help="Settings YAML (default: config/settings.yaml)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    if args.url:
        settings.probe.url = args.url
    if args.state_file:
        settings.output.state_file = args.state_file
    if args.output:
        settings.output.card_path = args.output
    if args.history_db:
        settings.output.history_db = args.history_db

    runner = SnapshotRunner(settings, parallel=args.parallel)
    snapshot = runner.capture(args.bundle, args.ocr_text, args.save_bundle)
    return runner.run(snapshot, html_only=args.html_only)


if __name__ == "__main__":
    sys.exit(main())

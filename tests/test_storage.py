"""
Tests for SnapshotStore (JSON baseline) and HistoryStore (DuckDB archive).
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from leaderboard_snap.models.leaderboard_schema import Top20Result
from leaderboard_snap.storage import HistoryStore, SnapshotStore, SnapshotStoreError

from conftest import make_record


@pytest.fixture
def result(ranked_records):
    return Top20Result(
        records=ranked_records,
        total_volume=123_456_789.0,
        strategy="payload",
        captured_at=datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc),
    )


class TestSnapshotStore:

    def test_missing_file_is_first_run(self, tmp_path):
        assert SnapshotStore(tmp_path / "state.json").load() is None

    def test_round_trip(self, tmp_path, result):
        store = SnapshotStore(tmp_path / "data" / "state.json")
        path = store.save(result)
        loaded = store.load()

        assert path.exists()
        assert loaded.records == result.records
        assert loaded.total_volume == result.total_volume
        assert loaded.strategy == "payload"
        assert loaded.captured_at == result.captured_at

    def test_no_temp_files_left(self, tmp_path, result):
        SnapshotStore(tmp_path / "state.json").save(result)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_empty_result_does_not_overwrite(self, tmp_path, result):
        store = SnapshotStore(tmp_path / "state.json")
        store.save(result)
        assert store.save(Top20Result()) is None
        assert len(store.load().records) == 20

    def test_corrupt_file_treated_as_absent(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{ not json", encoding="utf-8")
        assert SnapshotStore(path).load() is None

    def test_corrupt_file_raises_in_strict_mode(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(SnapshotStoreError):
            SnapshotStore(path, strict=True).load()

    def test_baseline_breaking_invariants_rejected(self, tmp_path, addresses):
        path = tmp_path / "state.json"
        records = [make_record(1, addresses[0], 5).model_dump(), make_record(2, addresses[0], 3).model_dump()]
        path.write_text(json.dumps({"records": records}), encoding="utf-8")
        assert SnapshotStore(path).load() is None
        with pytest.raises(SnapshotStoreError):
            SnapshotStore(path, strict=True).load()

    def test_saved_file_has_snake_case_fields(self, tmp_path, result):
        path = SnapshotStore(tmp_path / "state.json").save(result)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"records", "total_volume", "strategy", "captured_at"}
        assert set(data["records"][0]) == {"rank", "address", "level", "staked", "volume_raw", "volume_numeric"}


class TestHistoryStore:

    @pytest.fixture
    def history(self, tmp_path):
        store = HistoryStore(tmp_path / "history.db")
        yield store
        store.close()

    def test_empty_history(self, history, result):
        assert history.latest_before(result.captured_at) == []
        assert history.snapshot_before(result.captured_at) is None

    def test_append_and_read_back(self, history, result, addresses):
        assert history.append(result) == 20

        later = result.model_copy(update={
            "captured_at": result.captured_at + timedelta(days=1),
            "records": [make_record(1, addresses[29], 5_000_000)],
            "total_volume": None,
        })
        history.append(later)

        records = history.latest_before(later.captured_at)
        assert records == result.records

        snapshot = history.snapshot_before(later.captured_at + timedelta(hours=1))
        assert [r.address for r in snapshot.records] == [addresses[29]]
        assert snapshot.total_volume is None
        assert snapshot.captured_at == later.captured_at

    def test_strictly_before(self, history, result):
        history.append(result)
        assert history.latest_before(result.captured_at) == []

    def test_runs(self, history, result):
        history.append(result)
        history.append(result.model_copy(update={"captured_at": result.captured_at + timedelta(days=1)}))
        assert len(history.runs()) == 2

    def test_empty_result_not_archived(self, history):
        assert history.append(Top20Result()) == 0

    def test_archive_is_logged_under_package_logger(self, history, result, caplog):
        caplog.set_level("INFO", logger="leaderboard_snap")
        history.append(result)
        assert any(
            r.name == "leaderboard_snap.storage.history_store" and "Archived 20 rows" in r.getMessage()
            for r in caplog.records
        )

    def test_export_csv(self, history, result, tmp_path):
        history.append(result)
        path = history.export_csv(str(tmp_path / "out" / "history.csv"))
        lines = (tmp_path / "out" / "history.csv").read_text(encoding="utf-8").strip().splitlines()
        assert path.endswith("history.csv")
        assert lines[0].startswith("captured_at,strategy,rank,address")
        assert len(lines) == 21

    def test_export_csv_path_with_quote(self, history, result, tmp_path):
        history.append(result)
        target = tmp_path / "it's" / "history.csv"
        history.export_csv(str(target))
        assert len(target.read_text(encoding="utf-8").strip().splitlines()) == 21

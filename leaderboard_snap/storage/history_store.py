from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import duckdb
import pandas as pd

from leaderboard_snap.models.leaderboard_schema import LeaderboardRecord, PersistedSnapshot, Top20Result
from leaderboard_snap.utils.logger import get_logger

logger = get_logger(__name__)


def _naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


class HistoryStore:
    """
    Run history in DuckDB: one row per (run, rank).
    Complements the JSON baseline with a queryable archive of every
    successful snapshot.
    """

    TABLE = "leaderboard_history"

    def __init__(self, db_path="data/leaderboard_history.db"):
        self.db_path = str(db_path)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.con = duckdb.connect(self.db_path)
        self._init_schema()

    def _init_schema(self):
        self.con.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE} (
                captured_at TIMESTAMP,
                strategy VARCHAR,
                rank INTEGER,
                address VARCHAR,
                level VARCHAR,
                staked VARCHAR,
                volume_raw VARCHAR,
                volume_numeric DOUBLE,
                total_volume DOUBLE
            )
        """)

    def append(self, result: Top20Result) -> int:
        """Archive a successful result. Returns the number of rows written."""
        if not result.records:
            return 0
        captured_at = _naive_utc(result.captured_at)
        df = pd.DataFrame([
            {
                "captured_at": captured_at,
                "strategy": result.strategy,
                "rank": r.rank,
                "address": r.address,
                "level": r.level,
                "staked": r.staked,
                "volume_raw": r.volume_raw,
                "volume_numeric": r.volume_numeric,
                "total_volume": result.total_volume,
            }
            for r in result.records
        ])
        self.con.register("df_view", df)
        try:
            self.con.execute(
                f"INSERT INTO {self.TABLE} SELECT captured_at, strategy, rank, address, level, staked, "
                f"volume_raw, volume_numeric, total_volume FROM df_view"
            )
        finally:
            self.con.unregister("df_view")
        logger.info(f"💾 Archived {len(df)} rows ({captured_at:%Y-%m-%d %H:%M} UTC) in DuckDB")
        return len(df)

    def runs(self) -> List[datetime]:
        rows = self.con.execute(
            f"SELECT DISTINCT captured_at FROM {self.TABLE} ORDER BY captured_at"
        ).fetchall()
        return [row[0] for row in rows]

    def latest_before(self, ts: datetime) -> List[LeaderboardRecord]:
        """Records of the most recent archived run strictly before ts ([] if none)."""
        snapshot = self.snapshot_before(ts)
        return snapshot.records if snapshot else []

    def snapshot_before(self, ts: datetime) -> Optional[PersistedSnapshot]:
        row = self.con.execute(
            f"SELECT max(captured_at) FROM {self.TABLE} WHERE captured_at < ?", [_naive_utc(ts)]
        ).fetchone()
        if not row or row[0] is None:
            return None
        run_ts = row[0]

        df = self.con.execute(
            f"SELECT * FROM {self.TABLE} WHERE captured_at = ? ORDER BY rank", [run_ts]
        ).fetchdf()
        records = [
            LeaderboardRecord(
                rank=int(r["rank"]),
                address=r["address"],
                level=r["level"] or "",
                staked=r["staked"] or "",
                volume_raw=r["volume_raw"] or "",
                volume_numeric=float(r["volume_numeric"]),
            )
            for r in df.to_dict("records")
        ]
        total = df["total_volume"].iloc[0]
        return PersistedSnapshot(
            records=records,
            total_volume=None if pd.isna(total) else float(total),
            strategy=df["strategy"].iloc[0] or "",
            captured_at=run_ts.replace(tzinfo=timezone.utc),
        )

    def export_csv(self, path="outputs/leaderboard_history.csv"):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        quoted = str(path).replace("'", "''")
        self.con.execute(f"COPY {self.TABLE} TO '{quoted}' (HEADER, DELIMITER ',')")
        return path

    def close(self):
        self.con.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

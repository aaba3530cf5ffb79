"""Persistence layer for storing squad runs."""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pysquad.models import Candidate, Roster, SolutionPath

DEFAULT_DB_PATH = Path("data") / "pysquad.sqlite"


@dataclass
class RunRecord:
    run_id: str
    created_at: datetime
    request: dict
    summary: dict
    players: List[dict]

    def to_roster(self) -> Roster:
        """Rebuild the stored roster for lineup selection or export."""

        return Roster(
            players=tuple(Candidate.model_validate(player) for player in self.players),
            path=SolutionPath(self.summary["path"]),
            budget=float(self.summary["budget"]),
            solver_status=self.summary.get("solver_status"),
            fallback_reason=self.summary.get("fallback_reason"),
        )


class RunStore:
    """Simple SQLite-backed store for squad runs."""

    def __init__(self, db_path: Path | str | None = None):
        self._use_uri = False
        env_db = os.getenv("PYSQUAD_DB_PATH")
        if env_db:
            if env_db.startswith("file:"):
                self.db_path = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        elif db_path is not None:
            self.db_path = Path(db_path)
        elif os.getenv("PYTEST_CURRENT_TEST"):
            test_dir = Path(tempfile.gettempdir()) / "pysquad-test"
            test_dir.mkdir(parents=True, exist_ok=True)
            self.db_path = test_dir / "pysquad.sqlite"
        else:
            self.db_path = DEFAULT_DB_PATH
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        else:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    path TEXT NOT NULL,
                    request_json TEXT NOT NULL,
                    summary_json TEXT NOT NULL,
                    players_json TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def save_run(
        self,
        *,
        run_id: str,
        request: dict,
        summary: dict,
        roster: Roster,
        created_at: Optional[datetime] = None,
    ) -> RunRecord:
        created_at = created_at or datetime.now(timezone.utc)
        players = [player.model_dump(mode="json") for player in roster]
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO runs (id, created_at, path, request_json, summary_json, players_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    run_id,
                    created_at.isoformat(),
                    roster.path.value,
                    json.dumps(request),
                    json.dumps(summary),
                    json.dumps(players),
                ),
            )
            conn.commit()
        return RunRecord(run_id=run_id, created_at=created_at, request=request, summary=summary, players=players)

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_record(row)

    def list_runs(self, limit: int = 50) -> List[RunRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM runs ORDER BY created_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def delete_run(self, run_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM runs WHERE id = ?", (run_id,))
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_record(self, row: sqlite3.Row) -> RunRecord:
        return RunRecord(
            run_id=row["id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            request=json.loads(row["request_json"]),
            summary=json.loads(row["summary_json"]),
            players=json.loads(row["players_json"]),
        )


__all__ = ["DEFAULT_DB_PATH", "RunRecord", "RunStore"]

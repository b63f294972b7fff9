"""
designkit Trace Logger — SQLite audit trail for dispatches and config changes.

Read back with ``designkit --trace-db PATH trace``.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

COLUMNS = ("id", "timestamp", "operation", "target", "args", "result",
           "approval_level", "approved_by", "session_id")


class TraceLogger:
    """Append-only record of dispatches, approval decisions and config writes."""

    def __init__(self, db_path: str):
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(path)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        with self.conn:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS traces (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    target TEXT,
                    args TEXT,
                    result TEXT,
                    approval_level TEXT,
                    approved_by TEXT,
                    session_id TEXT
                )
            """)
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS traces_session ON traces (session_id, id)"
            )

    def log(
        self,
        operation: str,
        target: str,
        args: dict,
        result: str,
        approval_level: str = "",
        approved_by: str = "",
        session_id: str = "",
    ) -> int:
        """Append one record and return its id."""
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO traces (timestamp, operation, target, args, result,"
                " approval_level, approved_by, session_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    datetime.now(timezone.utc).isoformat(),
                    operation,
                    target,
                    json.dumps(args, ensure_ascii=False, default=str),
                    result,
                    approval_level,
                    approved_by,
                    session_id,
                ),
            )
        return cursor.lastrowid

    def records(
        self,
        session_id: Optional[str] = None,
        operation: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Matching records in the order they were written.

        ``operation`` ending in ``:`` matches a family (``"fix:"`` covers
        every ``fix:<action>``). With ``limit``, only the newest records are
        returned, still oldest first.
        """
        clauses, params = [], []
        if session_id:
            clauses.append("session_id = ?")
            params.append(session_id)
        if operation:
            if operation.endswith(":"):
                clauses.append("operation LIKE ?")
                params.append(operation + "%")
            else:
                clauses.append("operation = ?")
                params.append(operation)

        sql = "SELECT * FROM traces"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        rows = self.conn.execute(sql, params).fetchall()
        return [_decode(row) for row in reversed(rows)]

    def export(self, **filters) -> str:
        """The records selected by :meth:`records` as a JSON array."""
        return json.dumps(self.records(**filters), ensure_ascii=False, indent=2)

    def close(self):
        self.conn.close()


def _decode(row: sqlite3.Row) -> Dict[str, Any]:
    record = {name: row[name] for name in COLUMNS}
    record["args"] = json.loads(record["args"]) if record["args"] else {}
    return record

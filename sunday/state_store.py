from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sqlite3
import threading

from sunday.automations_lib.models import AutomationLog, LogStatus, parse_datetime
from sunday.redaction import redact_payload


logger = logging.getLogger(__name__)


class AutomationStateStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(self._db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._configure_pragmas()
        self._ensure_schema()

    def _configure_pragmas(self) -> None:
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA synchronous=NORMAL;")
                cursor.execute("PRAGMA busy_timeout=5000;")
                cursor.execute("PRAGMA foreign_keys=ON;")
            except sqlite3.Error:
                logger.warning(
                    "failed to configure sqlite pragmas",
                    extra={"event": "sqlite_pragmas_error"},
                    exc_info=True,
                )

    def _ensure_schema(self) -> None:
        with self._lock:
            cursor = self._connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS execution_claims (
                    automation_id INTEGER NOT NULL,
                    event_id TEXT NOT NULL,
                    claimed_at TEXT NOT NULL,
                    PRIMARY KEY (automation_id, event_id)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS automation_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    automation_id INTEGER NOT NULL,
                    item_id INTEGER,
                    status TEXT NOT NULL,
                    error_message TEXT,
                    trigger_data_json TEXT,
                    action_results_json TEXT,
                    executed_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_automation_logs_automation_id
                ON automation_logs(automation_id, id)
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TEXT NOT NULL,
                    trace_id TEXT,
                    event_type TEXT NOT NULL,
                    automation_id INTEGER,
                    board_id INTEGER,
                    username TEXT,
                    status TEXT,
                    payload_json TEXT
                )
                """
            )
            self._connection.commit()

    def close(self) -> None:
        with self._lock:
            try:
                self._connection.close()
            except sqlite3.Error:
                logger.warning(
                    "failed to close sqlite connection",
                    extra={"event": "sqlite_close_error"},
                    exc_info=True,
                )

    def claim_execution(
        self,
        automation_id: int,
        event_id: str,
        now_utc: datetime | None = None,
    ) -> bool:
        now = (now_utc or datetime.now(timezone.utc)).astimezone(timezone.utc)
        with self._lock:
            cursor = self._connection.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO execution_claims (automation_id, event_id, claimed_at)
                VALUES (?, ?, ?)
                """,
                (automation_id, event_id, now.isoformat()),
            )
            self._connection.commit()
            return cursor.rowcount == 1

    def record_log(self, log: AutomationLog) -> int:
        with self._lock:
            cursor = self._connection.cursor()
            cursor.execute(
                """
                INSERT INTO automation_logs (
                    automation_id, item_id, status, error_message,
                    trigger_data_json, action_results_json, executed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.automation_id,
                    log.item_id,
                    log.status.value,
                    log.error_message,
                    _dump(log.trigger_data),
                    _dump(log.action_results),
                    log.executed_at.astimezone(timezone.utc).isoformat(),
                ),
            )
            self._connection.commit()
            return int(cursor.lastrowid)

    def list_logs(self, automation_id: int, *, limit: int = 50) -> list[AutomationLog]:
        safe_limit = max(1, min(500, int(limit)))
        with self._lock:
            cursor = self._connection.cursor()
            rows = cursor.execute(
                """
                SELECT id, automation_id, item_id, status, error_message,
                       trigger_data_json, action_results_json, executed_at
                FROM automation_logs
                WHERE automation_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (automation_id, safe_limit),
            ).fetchall()
        return [
            AutomationLog(
                id=int(row["id"]),
                automation_id=int(row["automation_id"]),
                item_id=row["item_id"],
                status=LogStatus(row["status"]),
                error_message=row["error_message"],
                trigger_data=_load(row["trigger_data_json"]),
                action_results=_load(row["action_results_json"]),
                executed_at=parse_datetime(row["executed_at"]) or datetime.now(timezone.utc),
            )
            for row in rows
        ]

    def record_audit_event(
        self,
        *,
        trace_id: str | None,
        event_type: str,
        automation_id: int | None,
        board_id: int | None,
        username: str | None,
        status: str | None,
        payload: dict | None = None,
    ) -> None:
        now_iso = datetime.now(timezone.utc).isoformat()
        payload_json = (
            json.dumps(redact_payload(payload), ensure_ascii=False)
            if payload is not None
            else None
        )
        with self._lock:
            cursor = self._connection.cursor()
            cursor.execute(
                """
                INSERT INTO audit_log (
                    created_at, trace_id, event_type, automation_id, board_id,
                    username, status, payload_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    now_iso,
                    trace_id,
                    event_type,
                    automation_id,
                    board_id,
                    username,
                    status,
                    payload_json,
                ),
            )
            self._connection.commit()

    def list_audit_events(self, *, limit: int = 20, only_error: bool = False) -> list[dict]:
        safe_limit = max(1, min(200, int(limit)))
        where_clause = "WHERE lower(coalesce(status, '')) = 'error'" if only_error else ""
        with self._lock:
            cursor = self._connection.cursor()
            rows = cursor.execute(
                f"""
                SELECT created_at, trace_id, event_type, automation_id, board_id,
                       username, status, payload_json
                FROM audit_log
                {where_clause}
                ORDER BY id DESC
                LIMIT ?
                """,
                (safe_limit,),
            ).fetchall()
        events: list[dict] = []
        for row in rows:
            event = {key: row[key] for key in row.keys() if key != "payload_json"}
            event["payload"] = _load(row["payload_json"])
            events.append(event)
        return events


def _dump(value: dict | None) -> str | None:
    if value is None:
        return None
    return json.dumps(redact_payload(value), ensure_ascii=False, default=str)


def _load(raw: str | None) -> dict | None:
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(
            "stored json payload is unreadable",
            extra={"event": "state_store_json_error"},
        )
        return None
    return payload if isinstance(payload, dict) else None

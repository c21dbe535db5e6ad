"""
Audit Repository

Append-only store and query engine for audit records.

Every (sort key, direction) pair maps to one fully static, parameterized
statement. Caller input only ever reaches SQL as a bound parameter.
"""

from __future__ import annotations

import csv
import json
import logging
import sqlite3
from datetime import datetime, timedelta
from io import StringIO
from typing import Any, Optional, Sequence

from ..models.audit import (
    AuditFilters,
    AuditRecord,
    AuditStatistics,
    CategoryCount,
    DailyCount,
    utc_now,
)
from .base import Repository, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


SORT_KEYS = ("created_at", "action_type", "status", "actor_id")
SORT_DIRECTIONS = ("ASC", "DESC")
DEFAULT_SORT = ("created_at", "DESC")

CSV_HEADER = [
    "ID",
    "User ID",
    "User Type",
    "Action Type",
    "Category",
    "Description",
    "Ability",
    "Status",
    "IP Address",
    "Created At",
]

_COLUMNS = (
    "id, actor_id, actor_type, action_type, action_category, description, "
    "ability_id, parameters, result, status, ip_address, session_id, "
    "object_type, object_id, created_at"
)

_WHERE = """
    WHERE (:record_id IS NULL OR id = :record_id)
      AND (:actor_id IS NULL OR actor_id = :actor_id)
      AND (:actor_type IS NULL OR actor_type = :actor_type)
      AND (:action_type IS NULL OR action_type = :action_type)
      AND (:action_category IS NULL OR action_category = :action_category)
      AND (:status IS NULL OR status = :status)
      AND (:object_type IS NULL OR object_type = :object_type)
      AND (:object_id IS NULL OR object_id = :object_id)
      AND (:date_from IS NULL OR created_at >= :date_from)
      AND (:date_to IS NULL OR created_at <= :date_to)
      AND (:search IS NULL
           OR casefold(description) LIKE :search ESCAPE '\\'
           OR casefold(ability_id) LIKE :search ESCAPE '\\')
"""

_SELECT = f"SELECT {_COLUMNS} FROM audit_log {_WHERE}"

# Closed set of query variants, one per whitelisted (sort key, direction)
_QUERIES = {
    ("created_at", "DESC"): _SELECT + " ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset",
    ("created_at", "ASC"): _SELECT + " ORDER BY created_at ASC, id ASC LIMIT :limit OFFSET :offset",
    ("action_type", "DESC"): _SELECT + " ORDER BY action_type DESC, id DESC LIMIT :limit OFFSET :offset",
    ("action_type", "ASC"): _SELECT + " ORDER BY action_type ASC, id ASC LIMIT :limit OFFSET :offset",
    ("status", "DESC"): _SELECT + " ORDER BY status DESC, id DESC LIMIT :limit OFFSET :offset",
    ("status", "ASC"): _SELECT + " ORDER BY status ASC, id ASC LIMIT :limit OFFSET :offset",
    ("actor_id", "DESC"): _SELECT + " ORDER BY actor_id DESC, id DESC LIMIT :limit OFFSET :offset",
    ("actor_id", "ASC"): _SELECT + " ORDER BY actor_id ASC, id ASC LIMIT :limit OFFSET :offset",
}

_COUNT = f"SELECT COUNT(*) FROM audit_log {_WHERE}"

_INSERT = """
    INSERT INTO audit_log (
        actor_id, actor_type, action_type, action_category, description,
        ability_id, parameters, result, status, ip_address, session_id,
        object_type, object_id, created_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def resolve_order(order_by: Optional[str], order_dir: Optional[str]) -> tuple[str, str]:
    """
    Map caller-supplied sort options onto the whitelist.

    Unknown sort keys fall back to ``created_at DESC``; unknown directions
    fall back to ``DESC``.
    """
    key = (order_by or "").strip().lower()
    if key not in SORT_KEYS:
        return DEFAULT_SORT
    direction = (order_dir or "").strip().upper()
    if direction not in SORT_DIRECTIONS:
        direction = "DESC"
    return key, direction


def _encode(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def _decode(value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else value


class AuditRepository(Repository[AuditRecord]):
    """Repository for AuditRecord entities."""

    @property
    def table_name(self) -> str:
        return "audit_log"

    @property
    def model_class(self) -> type[AuditRecord]:
        return AuditRecord

    @property
    def schema(self) -> Sequence[str]:
        return (
            """
            CREATE TABLE IF NOT EXISTS audit_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                actor_id INTEGER NOT NULL DEFAULT 0,
                actor_type TEXT NOT NULL DEFAULT 'guest',
                action_type TEXT NOT NULL,
                action_category TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                ability_id TEXT,
                parameters TEXT,
                result TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                ip_address TEXT,
                session_id TEXT,
                object_type TEXT,
                object_id INTEGER,
                created_at TEXT NOT NULL
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_audit_actor_id ON audit_log(actor_id)",
            "CREATE INDEX IF NOT EXISTS idx_audit_action_type ON audit_log(action_type)",
            "CREATE INDEX IF NOT EXISTS idx_audit_action_category ON audit_log(action_category)",
            "CREATE INDEX IF NOT EXISTS idx_audit_status ON audit_log(status)",
            "CREATE INDEX IF NOT EXISTS idx_audit_created_at ON audit_log(created_at)",
            "CREATE INDEX IF NOT EXISTS idx_audit_object ON audit_log(object_type, object_id)",
        )

    def _prepare(self, conn: sqlite3.Connection) -> None:
        # SQLite's LOWER() only folds ASCII
        conn.create_function("casefold", 1, _casefold, deterministic=True)

    def _row_to_model(self, row: sqlite3.Row) -> AuditRecord:
        return AuditRecord(
            id=row["id"],
            actor_id=row["actor_id"],
            actor_type=row["actor_type"],
            action_type=row["action_type"],
            action_category=row["action_category"],
            description=row["description"],
            ability_id=row["ability_id"],
            parameters=_decode(row["parameters"]),
            result=_decode(row["result"]),
            status=row["status"],
            ip_address=row["ip_address"],
            session_id=row["session_id"],
            object_type=row["object_type"],
            object_id=row["object_id"],
            created_at=parse_timestamp(row["created_at"]),
        )

    # Writes

    def insert(self, record: AuditRecord) -> int:
        """
        Append a record and return its store-assigned id.

        Raises:
            StoreError: the record could not be persisted
        """
        with self._conn() as conn:
            cursor = conn.execute(
                _INSERT,
                (
                    record.actor_id,
                    record.actor_type.value,
                    record.action_type,
                    record.action_category,
                    record.description,
                    record.ability_id,
                    _encode(record.parameters),
                    _encode(record.result),
                    record.status.value,
                    record.ip_address,
                    record.session_id,
                    record.object_type,
                    record.object_id,
                    format_timestamp(record.created_at),
                ),
            )
            return int(cursor.lastrowid)

    def cleanup(self, retention_days: int, now: Optional[datetime] = None) -> int:
        """Delete records created before ``now - retention_days``; returns rows deleted"""
        if retention_days < 0:
            raise ValueError("retention_days must be >= 0")
        cutoff = (now or utc_now()) - timedelta(days=retention_days)
        with self._conn() as conn:
            cursor = conn.execute(
                "DELETE FROM audit_log WHERE created_at < ?",
                (format_timestamp(cutoff),),
            )
            deleted = cursor.rowcount
        logger.info(f"Audit cleanup: deleted {deleted} records older than {retention_days} days")
        return deleted

    # Reads

    def get(self, record_id: int) -> Optional[AuditRecord]:
        row = self._fetch_one(f"SELECT {_COLUMNS} FROM audit_log WHERE id = ?", (record_id,))
        return self._row_to_model(row) if row else None

    def query(
        self,
        filters: Optional[AuditFilters] = None,
        order_by: Optional[str] = None,
        order_dir: Optional[str] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> list[AuditRecord]:
        """
        Return one page of records matching ``filters``.

        ``limit=None`` returns every matching record; the upper bound on
        page size is the caller's concern.
        """
        sql = _QUERIES[resolve_order(order_by, order_dir)]
        params = self._filter_params(filters)
        params["limit"] = -1 if limit is None else max(0, int(limit))
        params["offset"] = max(0, int(offset or 0))
        return [self._row_to_model(row) for row in self._fetch_all(sql, params)]

    def count(self, filters: Optional[AuditFilters] = None) -> int:
        return int(self._scalar(_COUNT, self._filter_params(filters)) or 0)

    def statistics(self, days: int = 30, now: Optional[datetime] = None) -> AuditStatistics:
        """Aggregate records created within the last ``days`` days"""
        since = (format_timestamp((now or utc_now()) - timedelta(days=days)),)

        with self._conn() as conn:
            total = conn.execute(
                "SELECT COUNT(*) FROM audit_log WHERE created_at >= ?", since
            ).fetchone()[0]
            by_status = conn.execute(
                "SELECT status, COUNT(*) AS count FROM audit_log "
                "WHERE created_at >= ? GROUP BY status",
                since,
            ).fetchall()
            by_category = conn.execute(
                "SELECT action_category, COUNT(*) AS count FROM audit_log "
                "WHERE created_at >= ? GROUP BY action_category "
                "ORDER BY count DESC, action_category ASC",
                since,
            ).fetchall()
            by_actor_type = conn.execute(
                "SELECT actor_type, COUNT(*) AS count FROM audit_log "
                "WHERE created_at >= ? GROUP BY actor_type",
                since,
            ).fetchall()
            daily = conn.execute(
                "SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS count FROM audit_log "
                "WHERE created_at >= ? GROUP BY day ORDER BY day ASC",
                since,
            ).fetchall()

        return AuditStatistics(
            total=total,
            by_status={row["status"]: row["count"] for row in by_status},
            by_category=[CategoryCount(category=row["action_category"], count=row["count"]) for row in by_category],
            by_actor_type={row["actor_type"]: row["count"] for row in by_actor_type},
            daily_trend=[DailyCount(date=row["day"], count=row["count"]) for row in daily],
            period_days=days,
        )

    def export_csv(self, filters: Optional[AuditFilters] = None, limit: int = 10000) -> str:
        """Serialize matching records (newest first) as CSV text"""
        records = self.query(filters, limit=limit, offset=0)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow([
                record.id,
                record.actor_id,
                record.actor_type.value,
                record.action_type,
                record.action_category,
                record.description,
                record.ability_id or "",
                record.status.value,
                record.ip_address or "",
                format_timestamp(record.created_at),
            ])
        logger.info(f"Exported {len(records)} audit records to CSV")
        return output.getvalue()

    # Helpers

    @staticmethod
    def _filter_params(filters: Optional[AuditFilters]) -> dict[str, Any]:
        f = filters or AuditFilters()
        return {
            "record_id": f.record_id,
            "actor_id": f.actor_id,
            "actor_type": f.actor_type.value if f.actor_type else None,
            "action_type": f.action_type,
            "action_category": f.action_category,
            "status": f.status.value if f.status else None,
            "object_type": f.object_type,
            "object_id": f.object_id,
            "date_from": format_timestamp(f.date_from) if f.date_from else None,
            "date_to": format_timestamp(f.date_to) if f.date_to else None,
            "search": f"%{_escape_like(f.search.casefold())}%" if f.search else None,
        }

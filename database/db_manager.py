# database/db_manager.py

import sqlite3
import json
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable, Tuple
from datetime import datetime, timezone
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)

JSON_COLUMNS = ('tags', 'badges', 'backers')
BOOL_COLUMNS = ('has_token', 'is_active')

JOB_COLUMNS = (
    'url', 'title', 'company', 'source', 'location', 'employment_type', 'category',
    'role', 'region', 'description', 'salary', 'salary_min', 'salary_max',
    'salary_currency', 'tags', 'posted_date', 'company_logo', 'company_website',
    'apply_url', 'language', 'badges', 'backers', 'sector', 'office_location',
    'has_token', 'stage', 'is_active', 'crawled_at', 'updated_at', 'last_validated',
)

# Columns a re-crawl may overwrite only with a non-null value
_COALESCED = (
    'location', 'employment_type', 'category', 'role', 'region', 'salary',
    'salary_min', 'salary_max', 'salary_currency', 'company_logo',
    'company_website', 'apply_url', 'language',
)


def _now() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat()


def _encode(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS:
        return json.dumps(list(value or []), ensure_ascii=False)
    if column in BOOL_COLUMNS:
        return 1 if value else 0
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _decode_row(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    data = dict(row)
    for column in JSON_COLUMNS:
        if column in data:
            try:
                data[column] = json.loads(data[column]) if data[column] else []
            except ValueError:
                data[column] = []
    for column in BOOL_COLUMNS:
        if column in data:
            data[column] = bool(data[column])
    return data


class JobStore:
    """SQLite-backed store for canonical jobs and crawl bookkeeping"""

    def __init__(self, db_path: str = "data/jobs.db"):
        self.db_path = str(db_path)
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist"""
        db_file = Path(self.db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        schema_path = Path(__file__).parent / "schema.sql"
        if not schema_path.exists():
            logger.error(f"Schema file not found: {schema_path}")
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with open(schema_path, 'r') as f:
            schema = f.read()

        with self.get_connection() as conn:
            conn.executescript(schema)
            conn.execute("PRAGMA journal_mode=WAL")

        logger.info(f"Database initialized: {self.db_path}")

    @contextmanager
    def get_connection(self):
        """Context manager for database connections"""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=30000")
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            conn.close()

    # ========== Jobs ==========

    def upsert_by_url(self, record: Dict[str, Any]) -> Tuple[int, bool]:
        """
        Insert or update a job keyed by URL in a single statement

        On conflict the stored posted_date is kept if already set, a
        non-empty stored description is never replaced by an empty one,
        and the row is reactivated.

        Returns:
            (job id, True if the row was inserted)
        """
        now = _now()
        values = {column: record.get(column) for column in JOB_COLUMNS}
        values['is_active'] = True
        values['updated_at'] = now
        values['crawled_at'] = values.get('crawled_at') or now
        columns = [c for c in JOB_COLUMNS if c != 'last_validated'] + ['created_at']
        values['created_at'] = now

        assignments = [
            "title = excluded.title",
            "company = excluded.company",
            "source = excluded.source",
            "tags = excluded.tags",
            "description = CASE WHEN excluded.description IS NOT NULL AND excluded.description != '' "
            "THEN excluded.description ELSE jobs.description END",
            "posted_date = COALESCE(jobs.posted_date, excluded.posted_date)",
            "is_active = 1",
            "crawled_at = excluded.crawled_at",
            "updated_at = excluded.updated_at",
        ] + [f"{c} = COALESCE(excluded.{c}, jobs.{c})" for c in _COALESCED]

        sql = (
            f"INSERT INTO jobs ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(url) DO UPDATE SET {', '.join(assignments)} "
            f"RETURNING id, created_at"
        )

        with self.get_connection() as conn:
            row = conn.execute(sql, [_encode(c, values[c]) for c in columns]).fetchone()

        # created_at is only written on insert
        return row['id'], row['created_at'] == now

    def get_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE url = ?", (url,)).fetchone()
            return _decode_row(row)

    def get_by_id(self, job_id: int) -> Optional[Dict[str, Any]]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
            return _decode_row(row)

    def find_active_by_company(self, company: str) -> List[Dict[str, Any]]:
        """Active jobs whose company contains, or is contained in, `company` (case-insensitive)"""
        if not company or not company.strip():
            return []
        needle = company.strip()
        with self.get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM jobs
                WHERE is_active = 1
                  AND (instr(lower(company), lower(?)) > 0 OR instr(lower(?), lower(company)) > 0)
            """, (needle, needle)).fetchall()
            return [_decode_row(r) for r in rows]

    def update_by_id(self, job_id: int, fields: Dict[str, Any]) -> bool:
        fields = {k: v for k, v in fields.items() if k in JOB_COLUMNS and k != 'url'}
        if not fields:
            return False
        assignments = ', '.join(f"{column} = ?" for column in fields)
        with self.get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE jobs SET {assignments} WHERE id = ?",
                [_encode(c, v) for c, v in fields.items()] + [job_id]
            )
            return cursor.rowcount > 0

    def deactivate(self, job_id: int) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE jobs SET is_active = 0, updated_at = ? WHERE id = ?",
                (_now(), job_id)
            )
            return cursor.rowcount > 0

    def list_for_validation(self, older_than: datetime, limit: int = 100) -> List[Dict[str, Any]]:
        """Active jobs never validated, or last validated before `older_than`, oldest first"""
        with self.get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM jobs
                WHERE is_active = 1
                  AND (last_validated IS NULL OR last_validated < ?)
                ORDER BY last_validated IS NOT NULL, last_validated
                LIMIT ?
            """, (older_than.isoformat(), limit)).fetchall()
            return [_decode_row(r) for r in rows]

    def mark_validated(self, job_id: int, is_active: bool):
        now = _now()
        with self.get_connection() as conn:
            if is_active:
                conn.execute("UPDATE jobs SET last_validated = ? WHERE id = ?", (now, job_id))
            else:
                conn.execute(
                    "UPDATE jobs SET last_validated = ?, is_active = 0, updated_at = ? WHERE id = ?",
                    (now, now, job_id)
                )

    def count_jobs(self, active: Optional[bool] = None) -> int:
        with self.get_connection() as conn:
            if active is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM jobs").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM jobs WHERE is_active = ?", (1 if active else 0,)
                ).fetchone()
            return row['n']

    # ========== Logs ==========

    def insert_error_logs(self, records: Iterable[Dict[str, Any]]) -> int:
        """Append fetch/parse failures tracked during a crawl"""
        now = _now()
        rows = [
            (r.get('source', 'unknown'), r.get('domain'), r.get('error_kind', 'unknown'),
             r.get('message'), r.get('url'), r.get('status_code'), now)
            for r in records
        ]
        if not rows:
            return 0
        with self.get_connection() as conn:
            conn.executemany("""
                INSERT INTO crawler_errors (source, domain, error_kind, message, url, status_code, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, rows)
        return len(rows)

    def insert_error_log(self, level: str, message: str, crawler_name: Optional[str] = None,
                         stack_trace: Optional[str] = None):
        """Append a validation/save failure"""
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO error_logs (level, message, crawler_name, stack_trace, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (level, message, crawler_name, stack_trace, _now()))

    def insert_crawl_log(self, result: Dict[str, Any]):
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO crawl_logs (
                    source, status, jobs_found, jobs_processed, jobs_new, jobs_saved,
                    error_message, duration_seconds, started_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                result['source'],
                result['status'],
                result.get('jobs_found', 0),
                result.get('jobs_processed', 0),
                result.get('jobs_new', 0),
                result.get('jobs_saved', 0),
                result.get('error_message'),
                result.get('duration_seconds'),
                result.get('started_at'),
                result.get('completed_at'),
            ))

    def list_error_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            if level:
                rows = conn.execute(
                    "SELECT * FROM error_logs WHERE level = ? ORDER BY id", (level,)
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM error_logs ORDER BY id").fetchall()
            return [dict(r) for r in rows]

    def list_crawler_errors(self) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            return [dict(r) for r in conn.execute("SELECT * FROM crawler_errors ORDER BY id").fetchall()]

    def list_crawl_logs(self) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            return [dict(r) for r in conn.execute("SELECT * FROM crawl_logs ORDER BY id").fetchall()]

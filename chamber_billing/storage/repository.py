"""
Repository pattern for data access.

Handles database operations for case records of both domains.
"""

import dataclasses
import logging
import sqlite3
from typing import List, Optional, Union

from chamber_billing.core.records import CaseRecord, Domain
from chamber_billing.core.statistics import ALL_EXPERTS

from .db import DEFAULT_DB_PATH, get_connection
from .models import CASE_RECORD_COLUMNS, record_to_row, row_to_record

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = ", ".join(CASE_RECORD_COLUMNS)
_INSERT_SQL = (
    f"INSERT INTO case_record ({_SELECT_COLUMNS}) "
    f"VALUES ({', '.join('?' for _ in CASE_RECORD_COLUMNS)})"
)


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the case_record table if it doesn't exist.

    Record ids are unique per domain, so conclusions and certificates
    may reuse the same numbers.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS case_record (
                domain TEXT NOT NULL,
                id INTEGER NOT NULL,
                registration_number TEXT NOT NULL,
                expert TEXT NOT NULL,
                status TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                company_name TEXT NOT NULL DEFAULT '',
                comment TEXT,
                act_number TEXT,
                certificate_form TEXT,
                billing TEXT NOT NULL,
                PRIMARY KEY (domain, id)
            )
        """)
        conn.commit()
    finally:
        conn.close()


def _with_id(conn: sqlite3.Connection, record: CaseRecord, domain: Domain) -> CaseRecord:
    if record.id is not None:
        return record
    cursor = conn.execute(
        "SELECT COALESCE(MAX(id), 0) + 1 FROM case_record WHERE domain = ?",
        (domain.value,)
    )
    return dataclasses.replace(record, id=cursor.fetchone()[0])


def insert_record(
    record: CaseRecord,
    domain: Union[str, Domain],
    db_path: str = DEFAULT_DB_PATH
) -> CaseRecord:
    """Insert a single record.

    Args:
        record: Record to store; a missing id is assigned the next free one
        domain: Domain the record belongs to
        db_path: Path to SQLite database file

    Returns:
        The stored record with its id

    Raises:
        sqlite3.IntegrityError: If the id is already taken in the domain
    """
    domain = Domain.parse(domain)
    conn = get_connection(db_path)
    try:
        stored = _with_id(conn, record, domain)
        conn.execute(_INSERT_SQL, record_to_row(stored, domain))
        conn.commit()
    finally:
        conn.close()
    logger.info("Stored %s record %s (%s)", domain.value, stored.id, stored.registration_number)
    return stored


def insert_records(
    records: List[CaseRecord],
    domain: Union[str, Domain],
    db_path: str = DEFAULT_DB_PATH
) -> List[CaseRecord]:
    """Insert multiple records atomically.

    All records are inserted in a single transaction; if any insert
    fails, none of them is kept.

    Args:
        records: Records to store
        domain: Domain the records belong to
        db_path: Path to SQLite database file

    Returns:
        The stored records with their ids
    """
    domain = Domain.parse(domain)
    if not records:
        return []

    conn = get_connection(db_path)
    stored = []
    try:
        conn.execute("BEGIN TRANSACTION")
        for record in records:
            record = _with_id(conn, record, domain)
            conn.execute(_INSERT_SQL, record_to_row(record, domain))
            stored.append(record)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    logger.info("Stored %d %s records", len(stored), domain.value)
    return stored


def fetch_records(
    domain: Union[str, Domain],
    month: Optional[str] = None,
    expert: Optional[str] = None,
    db_path: str = DEFAULT_DB_PATH
) -> List[CaseRecord]:
    """Fetch records of a domain, optionally limited to a month and expert.

    Args:
        domain: Domain to read
        month: Optional ``YYYY-MM`` filter on the end date
        expert: Optional expert name; ``"all"`` means no filter
        db_path: Path to SQLite database file

    Returns:
        Records ordered by id
    """
    domain = Domain.parse(domain)
    conn = get_connection(db_path)
    try:
        query = f"SELECT {_SELECT_COLUMNS} FROM case_record WHERE domain = ?"
        params: List[str] = [domain.value]

        if month:
            query += " AND substr(end_date, 1, 7) = ?"
            params.append(month)
        if expert and expert != ALL_EXPERTS:
            query += " AND expert = ?"
            params.append(expert)

        query += " ORDER BY id"
        cursor = conn.execute(query, params)
        return [row_to_record(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def fetch_record(
    record_id: int,
    domain: Union[str, Domain],
    db_path: str = DEFAULT_DB_PATH
) -> Optional[CaseRecord]:
    """Fetch one record by id, or None if it doesn't exist."""
    domain = Domain.parse(domain)
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM case_record WHERE domain = ? AND id = ?",
            (domain.value, record_id)
        )
        row = cursor.fetchone()
        return row_to_record(row) if row else None
    finally:
        conn.close()


def delete_record(
    record_id: int,
    domain: Union[str, Domain],
    db_path: str = DEFAULT_DB_PATH
) -> bool:
    """Delete a record.

    Returns:
        True if a record was deleted
    """
    domain = Domain.parse(domain)
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            "DELETE FROM case_record WHERE domain = ? AND id = ?",
            (domain.value, record_id)
        )
        conn.commit()
        deleted = cursor.rowcount > 0
    finally:
        conn.close()
    if deleted:
        logger.info("Deleted %s record %s", domain.value, record_id)
    return deleted


class RecordRepository:
    """Repository for the case records of one database file.

    Thin object wrapper over the module functions so callers can pass a
    single store around instead of a path.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    def add(self, record: CaseRecord, domain: Union[str, Domain]) -> CaseRecord:
        return insert_record(record, domain, self.db_path)

    def add_many(self, records: List[CaseRecord], domain: Union[str, Domain]) -> List[CaseRecord]:
        return insert_records(records, domain, self.db_path)

    def get(self, record_id: int, domain: Union[str, Domain]) -> Optional[CaseRecord]:
        return fetch_record(record_id, domain, self.db_path)

    def list(
        self,
        domain: Union[str, Domain],
        month: Optional[str] = None,
        expert: Optional[str] = None
    ) -> List[CaseRecord]:
        return fetch_records(domain, month=month, expert=expert, db_path=self.db_path)

    def delete(self, record_id: int, domain: Union[str, Domain]) -> bool:
        return delete_record(record_id, domain, self.db_path)


def get_repository(db_path: str = DEFAULT_DB_PATH) -> RecordRepository:
    """Get a repository for a database file."""
    return RecordRepository(db_path)

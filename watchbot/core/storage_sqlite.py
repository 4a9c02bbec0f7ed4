"""SQLite storage backend for fingerprint persistence."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from watchbot.core.models import FingerprintRecord
from watchbot.core.storage import FingerprintStorage

logger = logging.getLogger(__name__)


class SQLiteFingerprintStorage(FingerprintStorage):
    """SQLite-based fingerprint storage implementation."""
    
    def __init__(self, db_path: Path):
        """
        Initialize SQLite storage.
        
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = self._connect()
    
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            self._create_schema(conn)
        except sqlite3.DatabaseError as e:
            conn.close()
            backup = self.db_path.with_name(
                f"{self.db_path.name}.corrupt-{datetime.utcnow().strftime('%Y%m%dT%H%M%S')}"
            )
            logger.warning(
                "Fingerprint database %s is corrupt (%s); starting empty, "
                "previous file moved to %s",
                self.db_path, e, backup,
            )
            self.db_path.replace(backup)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._create_schema(conn)
        return conn
    
    @staticmethod
    def _create_schema(conn: sqlite3.Connection) -> None:
        """Create database schema if it doesn't exist."""
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS fingerprints (
                entity_key TEXT PRIMARY KEY,
                fingerprint TEXT NOT NULL,
                last_task_revision INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.commit()
    
    def _row_to_record(self, row: sqlite3.Row) -> Optional[FingerprintRecord]:
        revision = row["last_task_revision"]
        if not row["fingerprint"] or not isinstance(revision, int) or revision < 0:
            logger.warning(
                "Ignoring corrupt fingerprint row for %s; treating as new",
                row["entity_key"],
            )
            return None
        return FingerprintRecord(
            entity_key=row["entity_key"],
            fingerprint=row["fingerprint"],
            last_task_revision=revision,
        )
    
    def get(self, entity_key: str) -> Optional[FingerprintRecord]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM fingerprints WHERE entity_key = ?", (entity_key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(row)
    
    def put(self, record: FingerprintRecord) -> None:
        try:
            self.conn.execute("""
                INSERT OR REPLACE INTO fingerprints
                (entity_key, fingerprint, last_task_revision, updated_at)
                VALUES (?, ?, ?, ?)
            """, (
                record.entity_key,
                record.fingerprint,
                record.last_task_revision,
                datetime.utcnow().isoformat() + "Z",
            ))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise OSError(f"Failed to write fingerprint for {record.entity_key}: {e}") from e
    
    def all_records(self) -> Dict[str, FingerprintRecord]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM fingerprints ORDER BY entity_key")
        result = {}
        for row in cursor.fetchall():
            record = self._row_to_record(row)
            if record is not None:
                result[record.entity_key] = record
        return result
    
    def close(self) -> None:
        """Close storage connection."""
        self.conn.close()

"""
State Store Module.

This module persists the result store between sessions. The whole list
of rows lives as one JSON document in a single key-value slot of a
SQLite table, and is rewritten on every mutation.

Features:
    - Automatic schema creation
    - Corrupt or missing state loads as an empty list
    - Full rewrite per save inside one transaction

Author: ML Engineering Team
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.helpers import ensure_directory
from cmr_notes.utils.exceptions import PersistenceError
from cmr_notes.postprocessor.derived_row import DerivedRow

# Initialize module logger
logger = get_logger(__name__)


class StateStore:
    """
    Key-value slot in SQLite holding the serialized result store.

    Attributes:
        db_path: Path to the SQLite database file
        table_name: Name of the key-value table
        key: Slot name holding the rows

    Example:
        >>> store = StateStore()
        >>> store.save_rows(rows)
        >>> rows = store.load_rows()
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        key: Optional[str] = None
    ) -> None:
        """
        Initialize the state store.

        Args:
            db_path: Path to database file. If None, uses configuration.
            key: Slot name. If None, uses configuration.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            output_dir = Path(get_config("paths.output_dir", "outputs"))
            db_name = get_config("output.state.name", "cmr_notes.db")
            self.db_path = output_dir / db_name

        self.table_name = get_config("output.state.table_name", "kv_state")
        self.key = key or get_config("output.state.key", "cmr-notes")

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"StateStore initialized (db: {self.db_path}, key: {self.key})")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _create_tables(self) -> None:
        """Create the key-value table if it doesn't exist."""
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """

        try:
            with self._connect() as conn:
                conn.execute(create_sql)
                conn.commit()
            logger.debug("State table created/verified")
        except sqlite3.Error as e:
            raise PersistenceError("create tables", str(e))

    def read(self) -> Optional[str]:
        """
        Read the raw slot value.

        Returns:
            Stored text, or None if the slot is empty.

        Raises:
            PersistenceError: If the database cannot be read.
        """
        try:
            with self._connect() as conn:
                found = conn.execute(
                    f"SELECT value FROM {self.table_name} WHERE key = ?",
                    (self.key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError("read", str(e))

        return found[0] if found else None

    def write(self, value: str) -> None:
        """
        Replace the raw slot value.

        Raises:
            PersistenceError: If the write fails.
        """
        upsert_sql = f"""
        INSERT INTO {self.table_name} (key, value, updated_at)
        VALUES (?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """

        try:
            with self._connect() as conn, conn:
                conn.execute(upsert_sql, (self.key, value))
        except sqlite3.Error as e:
            raise PersistenceError("write", str(e))

    def load_rows(self) -> List[DerivedRow]:
        """
        Load persisted rows.

        Any failure (unreadable database, invalid JSON, unexpected shape)
        is logged and yields an empty list. Individual entries that are
        not objects are skipped.

        Returns:
            Rows in their persisted order.
        """
        try:
            raw = self.read()
        except PersistenceError as e:
            logger.error(f"Could not read stored rows: {e}")
            return []

        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored rows are not valid JSON, starting empty: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Stored rows have unexpected type {type(data).__name__}, starting empty")
            return []

        rows = []
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                logger.warning(f"Skipping stored entry {index}: not an object")
                continue
            try:
                rows.append(DerivedRow.from_dict(entry))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping stored entry {index}: {e}")

        logger.debug(f"Loaded {len(rows)} row(s) from {self.db_path}")
        return rows

    def save_rows(self, rows: Sequence[DerivedRow]) -> None:
        """
        Overwrite the slot with the full list of rows.

        Raises:
            PersistenceError: If serialization or the write fails.
        """
        try:
            payload = json.dumps([row.to_dict() for row in rows])
        except (TypeError, ValueError) as e:
            raise PersistenceError("serialize", str(e))

        self.write(payload)
        logger.debug(f"Saved {len(rows)} row(s)")

    def clear(self) -> None:
        """Reset the slot to an empty list."""
        self.write("[]")

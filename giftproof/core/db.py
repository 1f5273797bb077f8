"""
SQLite persistence for committed seasons.

Each season stores its public commitment, one ``gift_spec`` row per committed
index (record, salt, leaf, serialized proof) and the set of indices that have
been revealed. The store is a get/set surface; the Publisher rebuilds and
re-checks the tree whenever it is loaded.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from giftproof.core.errors import CommitmentExists, CommitmentNotFound
from giftproof.core.models import Commitment, format_timestamp
from giftproof.core.publisher import Publisher

logger = logging.getLogger(__name__)

# Database schema version
SCHEMA_VERSION = 1

# SQL statements for schema creation
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commitments (
        season TEXT PRIMARY KEY,
        root TEXT NOT NULL,
        created_at TEXT NOT NULL,
        batch_size INTEGER NOT NULL,
        hash_algo TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gift_spec (
        season TEXT NOT NULL REFERENCES commitments(season),
        idx INTEGER NOT NULL,
        day INTEGER NOT NULL,
        record TEXT NOT NULL,
        salt TEXT NOT NULL,
        leaf TEXT NOT NULL,
        proof TEXT NOT NULL,
        PRIMARY KEY (season, idx)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reveals (
        season TEXT NOT NULL REFERENCES commitments(season),
        idx INTEGER NOT NULL,
        revealed_at TEXT NOT NULL,
        PRIMARY KEY (season, idx)
    )
    """,
]


class CommitmentStore:
    """SQLite store for commitments, private gift rows and the revealed set."""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:" for in-memory DB.
        """
        self.db_path = str(db_path)
        # An in-memory database only lives as long as its connection.
        self._shared_conn = None
        if self.db_path == ":memory:":
            self._shared_conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._shared_conn.row_factory = sqlite3.Row
            self._shared_conn.execute("PRAGMA foreign_keys = ON")
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            for stmt in SCHEMA:
                conn.execute(stmt)

            cursor = conn.execute(
                "SELECT value FROM metadata WHERE key = 'schema_version'"
            )
            if not cursor.fetchone():
                conn.execute(
                    "INSERT INTO metadata (key, value) VALUES (?, ?)",
                    ("schema_version", str(SCHEMA_VERSION))
                )

    @contextmanager
    def _get_connection(self):
        """Get a database connection that commits on success and rolls back on error."""
        if self._shared_conn is not None:
            conn = self._shared_conn
        else:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")

        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            if conn is not self._shared_conn:
                conn.close()

    def close(self) -> None:
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None

    def save_publisher(self, publisher: Publisher) -> Commitment:
        """Persist a freshly committed season.

        Raises:
            CommitmentExists: If the season was already committed.
        """
        commitment = publisher.commitment
        private = publisher.to_private_dict()
        reveals = publisher.prepare_reveals()

        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT root FROM commitments WHERE season = ?",
                (commitment.season,)
            )
            if cursor.fetchone():
                raise CommitmentExists(f"Season {commitment.season} is already committed")

            conn.execute(
                """
                INSERT INTO commitments (season, root, created_at, batch_size, hash_algo)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    commitment.season,
                    commitment.root,
                    format_timestamp(commitment.created_at),
                    commitment.batch_size,
                    commitment.hash_algo,
                )
            )
            conn.executemany(
                """
                INSERT INTO gift_spec (season, idx, day, record, salt, leaf, proof)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        commitment.season,
                        reveal.index,
                        reveal.day,
                        json.dumps(private["records"][reveal.index]),
                        reveal.salt,
                        reveal.leaf,
                        json.dumps(reveal.proof),
                    )
                    for reveal in reveals
                ]
            )
            for index in private["revealed"]:
                self._insert_reveal(conn, commitment.season, index)

        logger.info(f"Stored season {commitment.season} with root {commitment.root}")
        return commitment

    def get_commitment(self, season: str) -> Commitment:
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT season, root, created_at, batch_size, hash_algo
                FROM commitments
                WHERE season = ?
                """,
                (season,)
            ).fetchone()
        if not row:
            raise CommitmentNotFound(f"No commitment for season {season}")
        return Commitment(
            root=row["root"],
            created_at=row["created_at"],
            season=row["season"],
            batch_size=row["batch_size"],
            hash_algo=row["hash_algo"],
        )

    def list_seasons(self) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT season FROM commitments ORDER BY created_at").fetchall()
        return [row["season"] for row in rows]

    def get_gift_row(self, season: str, index: int) -> Optional[Dict[str, Any]]:
        """Get the raw stored row for one committed index."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT idx, day, record, salt, leaf, proof
                FROM gift_spec
                WHERE season = ? AND idx = ?
                """,
                (season, index)
            ).fetchone()
        if not row:
            return None
        return {
            "index": row["idx"],
            "day": row["day"],
            "record": json.loads(row["record"]),
            "salt": row["salt"],
            "leaf": row["leaf"],
            "proof": json.loads(row["proof"]),
        }

    def load_publisher(self, season: str) -> Publisher:
        """Restore the publisher of a season, rebuilding its tree from records and salts."""
        commitment = self.get_commitment(season)
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT record, salt, leaf
                FROM gift_spec
                WHERE season = ?
                ORDER BY idx ASC
                """,
                (season,)
            ).fetchall()

        return Publisher.from_private_dict({
            "season": commitment.season,
            "batch_size": commitment.batch_size,
            "records": [json.loads(row["record"]) for row in rows],
            "salts": [row["salt"] for row in rows],
            "leaves": [row["leaf"] for row in rows],
            "root": commitment.root,
            "created_at_utc": format_timestamp(commitment.created_at),
            "revealed": sorted(self.revealed_indices(season)),
        })

    def _insert_reveal(self, conn: sqlite3.Connection, season: str, index: int) -> bool:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO reveals (season, idx, revealed_at)
            VALUES (?, ?, ?)
            """,
            (season, index, format_timestamp(datetime.now(timezone.utc)))
        )
        return cursor.rowcount > 0

    def mark_revealed(self, season: str, index: int) -> bool:
        """Record that ``index`` has been disclosed. Returns False if it already was."""
        with self._get_connection() as conn:
            inserted = self._insert_reveal(conn, season, index)
        if inserted:
            logger.info(f"Marked index {index} of season {season} as revealed")
        return inserted

    def revealed_indices(self, season: str) -> Set[int]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT idx FROM reveals WHERE season = ?",
                (season,)
            ).fetchall()
        return {row["idx"] for row in rows}

"""
SQLite database manager for the persisted file index.
"""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Dict, Iterator
from contextlib import contextmanager

from ..exceptions import StorageError, DuplicateAccountError
from ..models.data_models import User, Client, File


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class DatabaseManager:
    """Manages SQLite database operations for users, clients and file rows."""

    def __init__(self, db_path: str):
        """Initialize database manager with database path."""
        self.db_path = db_path
        self._ensure_db_directory()
        self.create_tables()

    def _ensure_db_directory(self):
        """Ensure the database directory exists."""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get an autocommit database connection with automatic cleanup."""
        try:
            conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=30)
        except sqlite3.Error as e:
            raise StorageError(f"Could not open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row  # Enable dict-like access to rows
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements as one write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so two batches cannot
        interleave their reads and writes. Any exception rolls the whole block
        back; SQLite failures are re-raised as StorageError.
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageError(f"Could not start transaction: {e}") from e

            try:
                yield conn
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise StorageError(f"Transaction rolled back: {e}") from e
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise StorageError(f"Commit failed: {e}") from e

    @contextmanager
    def _connection(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Reuse the caller's connection, or open a short-lived one."""
        if conn is not None:
            yield conn
            return

        with self.get_connection() as own_conn:
            try:
                yield own_conn
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def create_tables(self) -> None:
        """Create database tables with proper schema and indexes."""
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT UNIQUE NOT NULL,
                    hashed_password TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                );

                CREATE TABLE IF NOT EXISTS clients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    session_key TEXT UNIQUE NOT NULL,
                    created_at TIMESTAMP NOT NULL
                );

                CREATE TABLE IF NOT EXISTS files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    name TEXT,
                    hash TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    modified TIMESTAMP NOT NULL,
                    path TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    UNIQUE (user_id, path)
                );

                CREATE INDEX IF NOT EXISTS idx_clients_session_key
                ON clients(session_key);

                CREATE INDEX IF NOT EXISTS idx_files_user_path
                ON files(user_id, path);
            """)

    # Users and clients

    def insert_user(self, user: User) -> User:
        """Insert a new user and return it with its id and creation time."""
        created_at = user.created_at or _utcnow()
        with self._connection() as conn:
            try:
                cursor = conn.execute("""
                    INSERT INTO users (email, hashed_password, created_at)
                    VALUES (?, ?, ?)
                """, (user.email, user.hashed_password, created_at.isoformat()))
            except sqlite3.IntegrityError as e:
                raise DuplicateAccountError(f"User already exists: {user.email}") from e

            return User(
                email=user.email,
                hashed_password=user.hashed_password,
                id=cursor.lastrowid,
                created_at=created_at
            )

    def get_user(self, user_id: int) -> Optional[User]:
        """Get a user by id."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, email, hashed_password, created_at FROM users WHERE id = ?",
                (user_id,)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, email, hashed_password, created_at FROM users WHERE email = ?",
                (email,)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def insert_client(self, client: Client) -> Client:
        """Insert a new client session and return it with its id."""
        created_at = client.created_at or _utcnow()
        with self._connection() as conn:
            cursor = conn.execute("""
                INSERT INTO clients (user_id, session_key, created_at)
                VALUES (?, ?, ?)
            """, (client.user_id, client.session_key, created_at.isoformat()))

            return Client(
                user_id=client.user_id,
                session_key=client.session_key,
                id=cursor.lastrowid,
                created_at=created_at
            )

    def get_client_by_session_key(self, session_key: str) -> Optional[Client]:
        """Get a client by its session key."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, user_id, session_key, created_at FROM clients WHERE session_key = ?",
                (session_key,)
            ).fetchone()
            if row:
                return Client(
                    user_id=row['user_id'],
                    session_key=row['session_key'],
                    id=row['id'],
                    created_at=_parse_timestamp(row['created_at'])
                )
            return None

    # File index

    def insert_file(self, user_id: int, file: File,
                    conn: Optional[sqlite3.Connection] = None) -> File:
        """Insert a new file row for the given owner."""
        created_at = _utcnow()
        with self._connection(conn) as conn:
            cursor = conn.execute("""
                INSERT INTO files
                (user_id, name, hash, size, modified, path, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                user_id,
                file.name,
                file.hash,
                file.size,
                file.modified.isoformat(),
                file.path,
                created_at.isoformat()
            ))

            return File(
                path=file.path,
                hash=file.hash,
                size=file.size,
                modified=file.modified,
                name=file.name,
                user_id=user_id,
                id=cursor.lastrowid,
                created_at=created_at
            )

    def update_file(self, file_id: int, file: File,
                    conn: Optional[sqlite3.Connection] = None) -> None:
        """Overwrite the content fields of an existing file row."""
        with self._connection(conn) as conn:
            conn.execute("""
                UPDATE files
                SET name = ?, hash = ?, size = ?, modified = ?, created_at = ?
                WHERE id = ?
            """, (
                file.name,
                file.hash,
                file.size,
                file.modified.isoformat(),
                _utcnow().isoformat(),
                file_id
            ))

    def delete_file(self, file_id: int,
                    conn: Optional[sqlite3.Connection] = None) -> None:
        """Delete a file row by id."""
        with self._connection(conn) as conn:
            conn.execute("DELETE FROM files WHERE id = ?", (file_id,))

    def get_file(self, user_id: int, path: str,
                 conn: Optional[sqlite3.Connection] = None) -> Optional[File]:
        """Get the file row at a path in the owner's namespace."""
        with self._connection(conn) as conn:
            row = conn.execute("""
                SELECT id, user_id, name, hash, size, modified, path, created_at
                FROM files
                WHERE user_id = ? AND path = ?
            """, (user_id, path)).fetchone()
            return self._row_to_file(row) if row else None

    def get_files(self, user_id: int) -> List[File]:
        """Get all file rows owned by a user, ordered by path."""
        with self._connection() as conn:
            rows = conn.execute("""
                SELECT id, user_id, name, hash, size, modified, path, created_at
                FROM files
                WHERE user_id = ?
                ORDER BY path
            """, (user_id,)).fetchall()
            return [self._row_to_file(row) for row in rows]

    def get_file_count(self, user_id: Optional[int] = None) -> int:
        """Get the number of file rows, optionally for a single owner."""
        with self._connection() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) FROM files").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM files WHERE user_id = ?", (user_id,)
                ).fetchone()
            return row[0]

    def get_record_counts(self) -> Dict[str, int]:
        """Get row counts for every table."""
        with self._connection() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ('users', 'clients', 'files')
            }

    def clear_all_records(self) -> None:
        """Clear all records from the database (for testing purposes)."""
        with self._connection() as conn:
            conn.executescript("""
                DELETE FROM files;
                DELETE FROM clients;
                DELETE FROM users;
            """)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            email=row['email'],
            hashed_password=row['hashed_password'],
            id=row['id'],
            created_at=_parse_timestamp(row['created_at'])
        )

    @staticmethod
    def _row_to_file(row: sqlite3.Row) -> File:
        return File(
            path=row['path'],
            hash=row['hash'],
            size=row['size'],
            modified=datetime.fromisoformat(row['modified']),
            name=row['name'] or "",
            user_id=row['user_id'],
            id=row['id'],
            created_at=_parse_timestamp(row['created_at'])
        )

"""Repository for User persistence."""

import sqlite3
from datetime import datetime, timezone
from typing import Any, List, Optional

from subtrack.domain.errors import Conflict
from subtrack.domain.models.user import User

_UPDATABLE_COLUMNS = {"name", "last_name", "password_hash"}


class UserRepository:
    """Repository for managing User entities in SQLite."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create users table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)"
            )
            conn.commit()

    def create(
        self,
        name: str,
        last_name: str,
        email: str,
        password_hash: str,
    ) -> User:
        """Create a new user; the UNIQUE constraint on email makes this atomic."""
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")

        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, last_name, email, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (name, last_name, email, password_hash, now, now),
                )
                conn.commit()
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise Conflict("El email ya está registrado") from exc

        return User(
            id=user_id,
            name=name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            )
            row = cursor.fetchone()

        if not row:
            return None

        return self._row_to_user(row)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email,)
            )
            row = cursor.fetchone()

        if not row:
            return None

        return self._row_to_user(row)

    def list_users(self, skip: int = 0, limit: int = 10) -> List[User]:
        """List users, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM users ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                (limit, skip),
            )
            rows = cursor.fetchall()

        return [self._row_to_user(row) for row in rows]

    def count(self) -> int:
        with sqlite3.connect(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]

    def update(self, user_id: int, **fields: Any) -> Optional[User]:
        """Update name, last name or password hash; email is immutable here."""
        changes = {key: value for key, value in fields.items() if key in _UPDATABLE_COLUMNS}
        if changes:
            changes["updated_at"] = datetime.now(timezone.utc).isoformat(timespec="microseconds")
            assignments = ", ".join(f"{column} = ?" for column in changes)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    (*changes.values(), user_id),
                )
                conn.commit()
        return self.get_by_id(user_id)

    def delete(self, user_id: int) -> Optional[User]:
        """Delete a user and return the removed record."""
        user = self.get_by_id(user_id)
        if not user:
            return None
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
        return user

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User entity."""
        return User(
            id=row["id"],
            name=row["name"],
            last_name=row["last_name"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

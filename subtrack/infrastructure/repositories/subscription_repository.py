"""Repository for Subscription persistence."""

import sqlite3
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from subtrack.domain.lifecycle import ensure_utc
from subtrack.domain.models.subscription import (
    Category,
    Currency,
    Frequency,
    PaymentMethod,
    Subscription,
    SubscriptionStatus,
)

_FILTER_COLUMNS = {"user_id", "status", "category", "frequency"}
_WRITABLE_COLUMNS = {
    "name",
    "description",
    "price",
    "currency",
    "frequency",
    "category",
    "payment_method",
    "status",
    "start_date",
    "renewal_date",
    "website",
    "notes",
}
_ORDER_BY = {
    "-created_at": "created_at DESC, id DESC",
    "created_at": "created_at ASC, id ASC",
    "renewal_date": "renewal_date ASC, id ASC",
    "-renewal_date": "renewal_date DESC, id DESC",
}


def _to_iso(value: datetime) -> str:
    # Fixed-width UTC text keeps lexicographic order equal to time order.
    return ensure_utc(value).isoformat(timespec="microseconds")


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _to_iso(value)
    return value


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


class SubscriptionRepository:
    """Repository for managing Subscription entities in SQLite."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._initialize_table()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        # SQLite's lower()/LIKE only fold ASCII; names carry accents and ñ.
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    def _initialize_table(self) -> None:
        """Create subscriptions table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    price REAL NOT NULL,
                    currency TEXT NOT NULL,
                    frequency TEXT NOT NULL,
                    category TEXT NOT NULL,
                    payment_method TEXT NOT NULL,
                    status TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    renewal_date TEXT NOT NULL,
                    website TEXT,
                    notes TEXT,
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_user_id ON subscriptions(user_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_status_renewal ON subscriptions(status, renewal_date)"
            )
            conn.commit()

    def create(self, fields: Mapping[str, Any], now: Optional[datetime] = None) -> Subscription:
        """Create a new subscription from already validated fields."""
        now_iso = _to_iso(now or datetime.now(timezone.utc))
        columns = ["user_id"] + [key for key in fields if key in _WRITABLE_COLUMNS]
        values = [fields["user_id"]] + [_to_db(fields[key]) for key in columns[1:]]
        columns += ["version", "created_at", "updated_at"]
        values += [1, now_iso, now_iso]
        placeholders = ", ".join("?" for _ in columns)

        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO subscriptions ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )
            conn.commit()
            subscription_id = cursor.lastrowid

        return self.get_by_id(subscription_id)  # type: ignore[return-value]

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        """Get subscription by ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)
            ).fetchone()

        if not row:
            return None

        return self._row_to_subscription(row)

    def find(
        self,
        filters: Mapping[str, Any],
        *,
        sort: str = "-created_at",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Subscription]:
        """List subscriptions matching equality filters."""
        where, params = self._where(filters)
        query = f"SELECT * FROM subscriptions{where} ORDER BY {_ORDER_BY[sort]}"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params += [limit, skip]
        elif skip:
            query += " LIMIT -1 OFFSET ?"
            params.append(skip)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_subscription(row) for row in rows]

    def count(self, filters: Mapping[str, Any]) -> int:
        where, params = self._where(filters)
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM subscriptions{where}", params).fetchone()[0]

    def update(
        self,
        subscription_id: int,
        fields: Mapping[str, Any],
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """Apply a partial update and bump the version.

        Returns ``None`` when no row matched, either because the subscription
        is gone or because ``expected_version`` is stale.
        """
        changes = {key: _to_db(value) for key, value in fields.items() if key in _WRITABLE_COLUMNS}
        assignments = [f"{column} = ?" for column in changes]
        assignments += ["version = version + 1", "updated_at = ?"]
        params: List[Any] = [*changes.values(), _to_iso(now or datetime.now(timezone.utc)), subscription_id]
        query = f"UPDATE subscriptions SET {', '.join(assignments)} WHERE id = ?"
        if expected_version is not None:
            query += " AND version = ?"
            params.append(expected_version)

        with self._connect() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            if cursor.rowcount == 0:
                return None

        return self.get_by_id(subscription_id)

    def delete(self, subscription_id: int) -> Optional[Subscription]:
        """Delete a subscription and return the removed record."""
        subscription = self.get_by_id(subscription_id)
        if not subscription:
            return None
        with self._connect() as conn:
            conn.execute("DELETE FROM subscriptions WHERE id = ?", (subscription_id,))
            conn.commit()
        return subscription

    def delete_by_user(self, user_id: int) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM subscriptions WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount

    def find_renewing_between(
        self,
        start: datetime,
        end: datetime,
        *,
        status: str,
        user_id: Optional[int] = None,
    ) -> List[Subscription]:
        """Subscriptions in ``status`` whose renewal falls in ``[start, end]``, soonest first."""
        query = """
            SELECT * FROM subscriptions
            WHERE status = ? AND renewal_date >= ? AND renewal_date <= ?
        """
        params: List[Any] = [_to_db(status), _to_iso(start), _to_iso(end)]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += f" ORDER BY {_ORDER_BY['renewal_date']}"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_subscription(row) for row in rows]

    def search_by_name(
        self,
        term: str,
        *,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Subscription]:
        """Case-insensitive substring match on the name, newest first."""
        query = "SELECT * FROM subscriptions WHERE instr(casefold(name), ?) > 0"
        params: List[Any] = [term.casefold()]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += f" ORDER BY {_ORDER_BY['-created_at']} LIMIT ? OFFSET ?"
        params += [limit, skip]

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_subscription(row) for row in rows]

    def aggregate_statistics(
        self,
        user_id: int,
        monthly_divisors: Mapping[str, int],
    ) -> Optional[Dict[str, Any]]:
        """Group a user's subscriptions into counts and a monthly spend estimate.

        ``monthly_divisors`` maps a frequency to the number that turns one
        billing period into a monthly amount; other frequencies add nothing.
        """
        active = SubscriptionStatus.ACTIVE.value
        cancelled = SubscriptionStatus.CANCELLED.value
        expense_cases = " ".join(
            "WHEN frequency = ? THEN price * 1.0 / ?" for _ in monthly_divisors
        )
        expense_params: List[Any] = []
        for frequency, divisor in monthly_divisors.items():
            expense_params += [_to_db(frequency), divisor]
        expense_sql = (
            f"CASE WHEN status = ? THEN (CASE {expense_cases} ELSE 0 END) ELSE 0 END"
            if monthly_divisors
            else "0"
        )

        query = f"""
            SELECT
                COUNT(*) AS total_subscriptions,
                SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS active_subscriptions,
                SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS cancelled_subscriptions,
                SUM({expense_sql}) AS estimated_monthly_expense
            FROM subscriptions
            WHERE user_id = ?
        """
        params: List[Any] = [active, cancelled]
        if monthly_divisors:
            params += [active, *expense_params]
        params.append(user_id)

        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()

        if not row or row["total_subscriptions"] == 0:
            return None
        return dict(row)

    def _where(self, filters: Mapping[str, Any]):
        clauses = []
        params: List[Any] = []
        for column, value in filters.items():
            if value is None:
                continue
            if column not in _FILTER_COLUMNS:
                raise ValueError(f"Unsupported filter: {column}")
            clauses.append(f"{column} = ?")
            params.append(_to_db(value))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        """Convert database row to Subscription entity."""
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            currency=Currency(row["currency"]),
            frequency=Frequency(row["frequency"]),
            category=Category(row["category"]),
            payment_method=PaymentMethod(row["payment_method"]),
            status=SubscriptionStatus(row["status"]),
            start_date=datetime.fromisoformat(row["start_date"]),
            renewal_date=datetime.fromisoformat(row["renewal_date"]),
            website=row["website"],
            notes=row["notes"],
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

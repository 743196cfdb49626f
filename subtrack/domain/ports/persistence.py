from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..models import Subscription, User


class UserRepository(Protocol):
    """Persistence functions related to user accounts."""

    def create(self, name: str, last_name: str, email: str, password_hash: str) -> User:
        """Insert a user; raises ``Conflict`` when the email is already taken."""
        ...

    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def list_users(self, skip: int, limit: int) -> List[User]:
        ...

    def count(self) -> int:
        ...

    def update(self, user_id: int, **fields: Any) -> Optional[User]:
        ...

    def delete(self, user_id: int) -> Optional[User]:
        ...


class SubscriptionRepository(Protocol):
    """Record store for subscriptions.

    Filters are equality matches on column names (``user_id``, ``status``,
    ``category``, ``frequency``).
    """

    def create(self, fields: Mapping[str, Any], now: Optional[datetime] = None) -> Subscription:
        ...

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def find(
        self,
        filters: Mapping[str, Any],
        *,
        sort: str = "-created_at",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Subscription]:
        ...

    def count(self, filters: Mapping[str, Any]) -> int:
        ...

    def update(
        self,
        subscription_id: int,
        fields: Mapping[str, Any],
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """Apply a partial update; ``None`` when the row is gone or the version moved on."""
        ...

    def delete(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def delete_by_user(self, user_id: int) -> int:
        ...

    def find_renewing_between(
        self,
        start: datetime,
        end: datetime,
        *,
        status: str,
        user_id: Optional[int] = None,
    ) -> List[Subscription]:
        ...

    def search_by_name(
        self,
        term: str,
        *,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Subscription]:
        ...

    def aggregate_statistics(
        self,
        user_id: int,
        monthly_divisors: Mapping[str, int],
    ) -> Optional[Dict[str, Any]]:
        """Group a user's subscriptions; ``None`` when the user owns none."""
        ...

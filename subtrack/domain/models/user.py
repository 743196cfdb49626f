"""User domain model for authentication and subscription ownership."""

from datetime import datetime, timezone
from typing import Optional


class User:
    """
    User entity owning subscription records.

    Attributes:
        id: Unique identifier, used as the opaque owner key
        name: First name
        last_name: Last name
        email: Login email address (unique, lower-cased)
        password_hash: bcrypt hash of the password
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        name: str,
        last_name: str,
        email: str,
        password_hash: str,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.last_name = last_name
        self.email = email
        self.password_hash = password_hash
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"

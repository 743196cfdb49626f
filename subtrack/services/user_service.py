"""Service for user authentication and management."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import bcrypt
import jwt

from subtrack.domain.errors import AuthenticationError, NotFound, ValidationError
from subtrack.domain.models.user import User
from subtrack.domain.ports.persistence import SubscriptionRepository, UserRepository
from subtrack.domain.validation import MAX_PASSWORD_BYTES, check_password
from subtrack.services.pagination import build_pagination

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing user registration, login and profiles."""

    def __init__(
        self,
        user_repository: UserRepository,
        subscription_repository: SubscriptionRepository,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        jwt_expiration_hours: int = 24,
    ):
        self.user_repository = user_repository
        self.subscription_repository = subscription_repository
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.jwt_expiration_hours = jwt_expiration_hours

    def register(self, name: str, last_name: str, email: str, password: str) -> Tuple[User, str]:
        """
        Register a new user.

        Args:
            name: First name
            last_name: Last name
            email: User email
            password: Plain text password

        Returns:
            Tuple of (User, access_token)

        Raises:
            Conflict: If email already exists
        """
        password_hash = self._hash_password(self._require_valid_password(password))

        # The UNIQUE constraint on email settles concurrent sign-ups.
        user = self.user_repository.create(
            name=name.strip(),
            last_name=last_name.strip(),
            email=email.strip().lower(),
            password_hash=password_hash,
        )
        logger.info("Registered user %s", user.id)

        return user, self.create_token(user)

    def authenticate(self, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate a user with email and password.

        Returns:
            Tuple of (User, access_token)

        Raises:
            AuthenticationError: If the credentials do not match
        """
        user = self.user_repository.get_by_email(email.strip().lower())
        if not user or not self._verify_password(password, user.password_hash):
            raise AuthenticationError("Usuario o contraseña incorrectos")

        return user, self.create_token(user)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_by_id(user_id)
        if not self._verify_password(current_password, user.password_hash):
            raise ValidationError("Contraseña actual incorrecta")

        password_hash = self._hash_password(self._require_valid_password(new_password))
        self.user_repository.update(user_id, password_hash=password_hash)
        logger.info("Password changed for user %s", user_id)

    def create_token(self, user: User) -> str:
        """
        Create JWT token for user.

        Args:
            user: User entity

        Returns:
            JWT token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user.id,
            "email": user.email,
            "exp": now + timedelta(hours=self.jwt_expiration_hours),
            "iat": now,
        }

        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def verify_token(self, token: str) -> User:
        """
        Decode a JWT token and load its user.

        Raises:
            AuthenticationError: If the token is expired, tampered with or
                points to a user that no longer exists
        """
        try:
            payload = jwt.decode(
                token, self.jwt_secret, algorithms=[self.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token expirado. Por favor, inicia sesión de nuevo.") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Token inválido o manipulado.") from exc

        user_id = payload.get("user_id")
        if not isinstance(user_id, int):
            raise AuthenticationError("Token no contiene ID de usuario válido")

        user = self.user_repository.get_by_id(user_id)
        if not user:
            raise AuthenticationError("Usuario no encontrado")
        return user

    def get_by_id(self, user_id: int) -> User:
        """Get user by ID, raising ``NotFound`` when it does not exist."""
        user = self.user_repository.get_by_id(user_id)
        if not user:
            raise NotFound("Usuario no encontrado")
        return user

    def list_users(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        total = self.user_repository.count()
        users: List[User] = self.user_repository.list_users(skip=(page - 1) * limit, limit=limit)
        return {"users": users, "pagination": build_pagination(page, limit, total, "total_users")}

    def update_profile(
        self,
        user_id: int,
        name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        self.get_by_id(user_id)
        changes = {}
        if name is not None:
            changes["name"] = name.strip()
        if last_name is not None:
            changes["last_name"] = last_name.strip()
        updated = self.user_repository.update(user_id, **changes)
        if not updated:
            raise NotFound("Usuario no encontrado")
        return updated

    def delete_user(self, user_id: int) -> User:
        self.get_by_id(user_id)
        removed = self.subscription_repository.delete_by_user(user_id)
        deleted = self.user_repository.delete(user_id)
        if not deleted:
            raise NotFound("Usuario no encontrado")
        logger.info("Deleted user %s and %s subscriptions", user_id, removed)
        return deleted

    @staticmethod
    def _require_valid_password(password: str) -> str:
        try:
            return check_password(password)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @staticmethod
    def _hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def _verify_password(password: str, password_hash: str) -> bool:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

MIN_JWT_SECRET_LENGTH = 32


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        self.environment = os.getenv("APP_ENV", "development")
        load_dotenv(f".env.{self.environment}.local")
        load_dotenv()
        self.jwt_secret = self._get("JWT_SECRET")
        if len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            raise RuntimeError(
                f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters long"
            )
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expiration_hours = self._get_int("JWT_EXPIRATION_HOURS", default=24)
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/subscriptions.db")).resolve()
        self.upcoming_renewal_days = self._get_int("UPCOMING_RENEWAL_DAYS", default=7)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @staticmethod
    def _get(key: str) -> str:
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"Missing required environment variable: {key}")
        return value

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

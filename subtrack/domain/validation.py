"""Field-level format rules shared by the request schemas and the services."""

import re
from decimal import Decimal, InvalidOperation

SUBSCRIPTION_NAME_PATTERN = re.compile(r"[a-zA-ZÀ-ÿñÑ0-9\s\-_.&()\[\]]+")
PERSON_NAME_PATTERN = re.compile(r"[a-zA-Z\s]+")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PRICE_MAX_DECIMALS = 2
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72


def clean_subscription_name(value: str, label: str = "El nombre") -> str:
    """Trim and check a subscription name (also used for search terms)."""
    cleaned = value.strip()
    if not NAME_MIN_LENGTH <= len(cleaned) <= NAME_MAX_LENGTH:
        raise ValueError(f"{label} debe tener entre {NAME_MIN_LENGTH} y {NAME_MAX_LENGTH} caracteres")
    if not SUBSCRIPTION_NAME_PATTERN.fullmatch(cleaned):
        raise ValueError(f"{label} contiene caracteres no válidos")
    return cleaned


def clean_person_name(value: str, label: str = "El nombre") -> str:
    cleaned = value.strip()
    if not 3 <= len(cleaned) <= 50:
        raise ValueError(f"{label} debe tener entre 3 y 50 caracteres")
    if not PERSON_NAME_PATTERN.fullmatch(cleaned):
        raise ValueError(f"{label} solo puede contener letras sin tildes ni ñ, y espacios")
    return cleaned


def check_price(value: float) -> float:
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError("El precio debe ser un número") from exc
    if not amount.is_finite():
        raise ValueError("El precio debe ser un número")
    if amount < Decimal("0.01"):
        raise ValueError("El precio debe ser mayor a 0")
    exponent = amount.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -PRICE_MAX_DECIMALS:
        raise ValueError("El precio no puede tener más de 2 decimales")
    return float(amount)


def check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")
    # bcrypt only hashes the first 72 bytes and newer releases refuse longer input.
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"La contraseña no puede superar los {MAX_PASSWORD_BYTES} bytes")
    return value

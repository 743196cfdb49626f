"""Subscription domain model and the enumerations it is built from."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class SubscriptionStatus(str, Enum):
    ACTIVE = "activa"
    CANCELLED = "cancelada"
    PAUSED = "pausada"
    EXPIRED = "expirada"


class Frequency(str, Enum):
    DAILY = "diaria"
    WEEKLY = "semanal"
    MONTHLY = "mensual"
    ANNUAL = "anual"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    MXN = "MXN"
    ARS = "ARS"
    COP = "COP"
    PEN = "PEN"
    CLP = "CLP"


class Category(str, Enum):
    STREAMING = "streaming"
    SOFTWARE = "software"
    GAMING = "gaming"
    EDUCATION = "educacion"
    PRODUCTIVITY = "productividad"
    HEALTH = "salud"
    FINANCE = "finanzas"
    OTHER = "otro"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "tarjeta de crédito"
    DEBIT_CARD = "tarjeta de débito"
    PAYPAL = "PayPal"
    BANK_TRANSFER = "transferencia bancaria"
    OTHER = "otros"


class Subscription:
    """
    Subscription entity tracked on behalf of a single user.

    Attributes:
        id: Unique identifier
        user_id: Owning user; set at creation and never reassigned
        name: Display name of the service
        price: Amount charged per billing period
        currency: Currency label (never converted)
        frequency: Billing cadence
        category: Domain category
        payment_method: How the user pays
        status: Effective status after the expiry rule was applied
        start_date: When the subscription started
        renewal_date: Next renewal; always after start_date
        description: Optional free text
        website: Optional URL of the provider
        notes: Optional user notes
        version: Incremented on every update for compare-and-swap writes
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        name: str,
        price: float,
        currency: Currency,
        frequency: Frequency,
        category: Category,
        payment_method: PaymentMethod,
        status: SubscriptionStatus,
        start_date: datetime,
        renewal_date: datetime,
        description: Optional[str] = None,
        website: Optional[str] = None,
        notes: Optional[str] = None,
        version: int = 1,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.name = name
        self.price = price
        self.currency = currency
        self.frequency = frequency
        self.category = category
        self.payment_method = payment_method
        self.status = status
        self.start_date = start_date
        self.renewal_date = renewal_date
        self.description = description
        self.website = website
        self.notes = notes
        self.version = version
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    def is_owned_by(self, user_id: int) -> bool:
        return self.user_id == user_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency.value,
            "frequency": self.frequency.value,
            "category": self.category.value,
            "payment_method": self.payment_method.value,
            "status": self.status.value,
            "start_date": self.start_date,
            "renewal_date": self.renewal_date,
            "website": self.website,
            "notes": self.notes,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} user_id={self.user_id} name={self.name!r} status={self.status.value}>"

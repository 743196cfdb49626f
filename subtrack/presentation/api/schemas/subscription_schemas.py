"""Pydantic schemas for subscription API endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from ....domain.models import Category, Currency, Frequency, PaymentMethod, SubscriptionStatus
from ....domain.validation import check_price, clean_subscription_name


class _SubscriptionFields(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, max_length=500)
    website: Optional[HttpUrl] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("name", check_fields=False)
    @classmethod
    def _check_name(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else clean_subscription_name(value)

    @field_validator("price", check_fields=False)
    @classmethod
    def _check_price(cls, value: Optional[float]) -> Optional[float]:
        return value if value is None else check_price(value)

    def to_changes(self) -> dict:
        """Only the fields the client actually sent, with URLs as plain strings."""
        changes = self.model_dump(exclude_unset=True)
        if changes.get("website") is not None:
            changes["website"] = str(changes["website"])
        return changes


class SubscriptionCreateRequest(_SubscriptionFields):
    """Request schema for creating a subscription."""

    name: str
    price: float
    currency: Currency = Currency.PEN
    frequency: Frequency = Frequency.MONTHLY
    category: Category
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    status: Optional[SubscriptionStatus] = None
    start_date: datetime
    renewal_date: Optional[datetime] = None

    def to_changes(self) -> dict:
        data = super().to_changes()
        # Defaults count as sent on creation.
        for key in ("currency", "frequency", "payment_method"):
            data.setdefault(key, getattr(self, key))
        return data


class SubscriptionUpdateRequest(_SubscriptionFields):
    """Request schema for a partial update. The owner can never be changed."""

    name: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[Currency] = None
    frequency: Optional[Frequency] = None
    category: Optional[Category] = None
    payment_method: Optional[PaymentMethod] = None
    status: Optional[SubscriptionStatus] = None
    start_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None


class SubscriptionResponse(BaseModel):
    """Response schema for subscription data."""

    id: int
    user_id: int
    name: str
    description: Optional[str]
    price: float
    currency: Currency
    frequency: Frequency
    category: Category
    payment_method: PaymentMethod
    status: SubscriptionStatus
    start_date: datetime
    renewal_date: datetime
    website: Optional[str]
    notes: Optional[str]
    version: int
    created_at: datetime
    updated_at: datetime


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_subscriptions: int
    has_next_page: bool
    has_prev_page: bool


class SubscriptionPageResponse(BaseModel):
    """Response schema for the paginated listing."""

    items: List[SubscriptionResponse]
    pagination: PaginationResponse


class SubscriptionListResponse(BaseModel):
    items: List[SubscriptionResponse]
    count: int


class SubscriptionStatsResponse(BaseModel):
    """Response schema for per-user statistics."""

    total_subscriptions: int
    active_subscriptions: int
    cancelled_subscriptions: int
    estimated_monthly_expense: float

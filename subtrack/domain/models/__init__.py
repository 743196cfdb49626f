"""Domain models for the subscription tracker."""

from .subscription import (
    Category,
    Currency,
    Frequency,
    PaymentMethod,
    Subscription,
    SubscriptionStatus,
)
from .user import User

__all__ = [
    "Category",
    "Currency",
    "Frequency",
    "PaymentMethod",
    "Subscription",
    "SubscriptionStatus",
    "User",
]

"""Renewal, status and statistics rules for subscriptions.

Everything here is pure: callers pass the current time in and persist the
results themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Mapping, Optional, Protocol, Tuple

from .errors import InvalidDateOrdering, ValidationError
from .models.subscription import Frequency, SubscriptionStatus

RENEWAL_PERIOD_DAYS: Dict[Frequency, int] = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.MONTHLY: 30,
    Frequency.ANNUAL: 365,
}

# Divisor turning one billing period into a monthly amount. Daily and weekly
# plans are not part of the estimate.
# TODO: fold daily (x30) and weekly (x30/7) plans in once the product owners
# confirm the estimate should cover them.
MONTHLY_NORMALIZATION: Dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.ANNUAL: 12,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RenewalPolicy(Protocol):
    def next_renewal(self, start_date: datetime, frequency: Frequency) -> datetime:
        ...


class FixedDayCountPolicy:
    """Adds a fixed number of days per frequency (a month is 30 days, a year 365)."""

    def __init__(self, period_days: Optional[Mapping[Frequency, int]] = None) -> None:
        self._period_days = dict(period_days or RENEWAL_PERIOD_DAYS)

    def days_for(self, frequency: Frequency) -> int:
        try:
            return self._period_days[Frequency(frequency)]
        except (KeyError, ValueError) as exc:
            raise ValidationError(f"Frecuencia no válida: {frequency}") from exc

    def next_renewal(self, start_date: datetime, frequency: Frequency) -> datetime:
        return start_date + timedelta(days=self.days_for(frequency))


DEFAULT_POLICY = FixedDayCountPolicy()


def derive_renewal_date(
    start_date: datetime,
    frequency: Frequency,
    explicit_renewal_date: Optional[datetime] = None,
    policy: RenewalPolicy = DEFAULT_POLICY,
) -> datetime:
    """Return the renewal date to store for a subscription.

    An explicit date is kept as-is once it is known to follow ``start_date``;
    otherwise the policy computes one from the billing frequency.
    """
    start_date = ensure_utc(start_date)
    if explicit_renewal_date is not None:
        explicit_renewal_date = ensure_utc(explicit_renewal_date)
        if explicit_renewal_date <= start_date:
            raise InvalidDateOrdering()
        return explicit_renewal_date
    return policy.next_renewal(start_date, frequency)


def compute_effective_status(
    renewal_date: datetime,
    requested_status: Optional[SubscriptionStatus],
    now: datetime,
) -> SubscriptionStatus:
    """A lapsed renewal date always means expired, whatever was requested."""
    if ensure_utc(renewal_date) <= ensure_utc(now):
        return SubscriptionStatus.EXPIRED
    if requested_status is None:
        return SubscriptionStatus.ACTIVE
    return SubscriptionStatus(requested_status)


def validate_submitted_dates(
    start_date: datetime,
    renewal_date: Optional[datetime],
    now: datetime,
) -> None:
    start_date = ensure_utc(start_date)
    if start_date > ensure_utc(now):
        raise ValidationError("La fecha de inicio no puede ser futura")
    if renewal_date is not None and ensure_utc(renewal_date) <= start_date:
        raise InvalidDateOrdering()


def renewal_window(reference: datetime, days: int) -> Tuple[datetime, datetime]:
    """Inclusive ``[reference, reference + days]`` bounds for upcoming renewals."""
    if days < 1:
        raise ValidationError("Los días deben ser un número entero positivo")
    reference = ensure_utc(reference)
    return reference, reference + timedelta(days=days)


@dataclass(frozen=True)
class SubscriptionStatistics:
    total_subscriptions: int = 0
    active_subscriptions: int = 0
    cancelled_subscriptions: int = 0
    estimated_monthly_expense: float = 0.0

    @classmethod
    def from_aggregate(cls, row: Optional[Mapping[str, object]]) -> "SubscriptionStatistics":
        """Build statistics from an aggregate row; a missing row means no subscriptions."""
        if not row:
            return cls()
        return cls(
            total_subscriptions=int(row.get("total_subscriptions") or 0),
            active_subscriptions=int(row.get("active_subscriptions") or 0),
            cancelled_subscriptions=int(row.get("cancelled_subscriptions") or 0),
            estimated_monthly_expense=round(float(row.get("estimated_monthly_expense") or 0.0), 2),
        )

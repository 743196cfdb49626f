"""Service for subscription tracking: CRUD, renewals, search and statistics."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from subtrack.domain.errors import Conflict, Forbidden, InvalidDateOrdering, NotFound, ValidationError
from subtrack.domain.lifecycle import (
    DEFAULT_POLICY,
    MONTHLY_NORMALIZATION,
    RenewalPolicy,
    SubscriptionStatistics,
    compute_effective_status,
    derive_renewal_date,
    ensure_utc,
    renewal_window,
    utc_now,
    validate_submitted_dates,
)
from subtrack.domain.models.subscription import (
    Category,
    Currency,
    Frequency,
    PaymentMethod,
    Subscription,
    SubscriptionStatus,
)
from subtrack.domain.ports.persistence import SubscriptionRepository, UserRepository
from subtrack.domain.validation import check_price, clean_subscription_name
from subtrack.services.pagination import build_pagination

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_REQUIRED_ON_CREATE = ("name", "price", "category", "start_date")
_DEFAULTS = {
    "currency": Currency.PEN,
    "frequency": Frequency.MONTHLY,
    "payment_method": PaymentMethod.CREDIT_CARD,
}
_MUTABLE_FIELDS = {
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
_ENUM_FIELDS = {
    "currency": Currency,
    "frequency": Frequency,
    "category": Category,
    "payment_method": PaymentMethod,
    "status": SubscriptionStatus,
}


class SubscriptionService:
    """Service for managing the subscriptions a user tracks."""

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        user_repository: UserRepository,
        renewal_policy: RenewalPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.subscription_repository = subscription_repository
        self.user_repository = user_repository
        self.renewal_policy = renewal_policy
        self.clock = clock

    def create_subscription(self, user_id: int, data: Mapping[str, Any]) -> Subscription:
        """
        Create a subscription owned by ``user_id``.

        The renewal date is derived from the start date and frequency when it
        is not given, and the stored status is forced to expired when that
        renewal date has already passed.

        Raises:
            NotFound: If the owner does not exist
            ValidationError: If a field is missing or malformed
            InvalidDateOrdering: If the renewal date is not after the start date
        """
        self._require_user(user_id)

        missing = [field for field in _REQUIRED_ON_CREATE if data.get(field) is None]
        if missing:
            raise ValidationError(f"Campos obligatorios faltantes: {', '.join(missing)}")

        fields = {**_DEFAULTS, **self._clean_fields(data)}
        now = self.clock()
        start_date = ensure_utc(fields["start_date"])
        explicit_renewal = fields.get("renewal_date")

        validate_submitted_dates(start_date, explicit_renewal, now)
        renewal_date = derive_renewal_date(
            start_date, fields["frequency"], explicit_renewal, self.renewal_policy
        )

        fields.update(
            user_id=user_id,
            start_date=start_date,
            renewal_date=renewal_date,
            status=compute_effective_status(renewal_date, fields.get("status"), now),
        )
        subscription = self.subscription_repository.create(fields, now=now)
        logger.info(
            "Subscription %s created for user %s (status=%s)",
            subscription.id,
            user_id,
            subscription.status.value,
        )
        return subscription

    def list_subscriptions(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        status: Optional[SubscriptionStatus] = None,
        category: Optional[Category] = None,
        frequency: Optional[Frequency] = None,
    ) -> Dict[str, Any]:
        """Page through a user's subscriptions, newest first, with paging metadata."""
        self._check_paging(page, limit)
        filters = {"user_id": user_id, "status": status, "category": category, "frequency": frequency}
        total = self.subscription_repository.count(filters)
        subscriptions = self.subscription_repository.find(
            filters, sort="-created_at", skip=(page - 1) * limit, limit=limit
        )
        return {
            "subscriptions": subscriptions,
            "pagination": build_pagination(page, limit, total, "total_subscriptions"),
        }

    def get_user_subscriptions(
        self,
        requester_id: int,
        owner_id: int,
        status: Optional[SubscriptionStatus] = None,
        category: Optional[Category] = None,
        frequency: Optional[Frequency] = None,
    ) -> List[Subscription]:
        if requester_id != owner_id:
            raise Forbidden("No autorizado para acceder a estas suscripciones")
        self._require_user(owner_id)
        filters = {"user_id": owner_id, "status": status, "category": category, "frequency": frequency}
        return self.subscription_repository.find(filters, sort="-created_at")

    def get_subscription(self, subscription_id: int, user_id: int) -> Subscription:
        subscription = self.subscription_repository.get_by_id(subscription_id)
        if not subscription:
            raise NotFound("Suscripción no encontrada")
        if not subscription.is_owned_by(user_id):
            raise Forbidden("No autorizado para modificar esta suscripción")
        return subscription

    def update_subscription(
        self,
        subscription_id: int,
        user_id: int,
        changes: Mapping[str, Any],
    ) -> Subscription:
        """
        Apply a partial update after an ownership check.

        Dates are revalidated against the merged record and the effective
        status is recomputed on every write. The write is a compare-and-swap
        on the record version.

        Raises:
            NotFound / Forbidden: If the subscription is missing or not owned
            ValidationError: If a field is malformed or the status change is not allowed
            InvalidDateOrdering: If the merged renewal date is not after the start date
            Conflict: If another request updated the record first
        """
        current = self.get_subscription(subscription_id, user_id)
        fields = self._clean_fields(changes)
        now = self.clock()

        start_date = ensure_utc(fields.get("start_date", current.start_date))
        renewal_date = ensure_utc(fields.get("renewal_date", current.renewal_date))
        if "start_date" in fields:
            validate_submitted_dates(start_date, None, now)
        if renewal_date <= start_date:
            raise InvalidDateOrdering()

        requested = fields.get("status")
        if requested is None:
            requested = current.status
            if current.status == SubscriptionStatus.EXPIRED and "renewal_date" in fields:
                requested = SubscriptionStatus.ACTIVE
        else:
            self._check_transition(current.status, SubscriptionStatus(requested))

        fields["status"] = compute_effective_status(renewal_date, requested, now)
        updated = self.subscription_repository.update(
            subscription_id, fields, expected_version=current.version, now=now
        )
        if updated is None:
            if self.subscription_repository.get_by_id(subscription_id) is None:
                raise NotFound("Suscripción no encontrada")
            raise Conflict("La suscripción fue modificada por otra petición, vuelve a intentarlo")

        logger.info(
            "Subscription %s updated by user %s (status=%s)",
            subscription_id,
            user_id,
            updated.status.value,
        )
        return updated

    def cancel_subscription(self, subscription_id: int, user_id: int) -> Subscription:
        # Goes through the regular update path, so a lapsed renewal date still
        # stores the record as expired.
        return self.update_subscription(
            subscription_id, user_id, {"status": SubscriptionStatus.CANCELLED}
        )

    def delete_subscription(self, subscription_id: int, user_id: int) -> Subscription:
        self.get_subscription(subscription_id, user_id)
        deleted = self.subscription_repository.delete(subscription_id)
        if not deleted:
            raise NotFound("Suscripción no encontrada")
        logger.info("Subscription %s deleted by user %s", subscription_id, user_id)
        return deleted

    def upcoming_renewals(
        self,
        days: int = 7,
        user_id: Optional[int] = None,
        reference: Optional[datetime] = None,
    ) -> List[Subscription]:
        """Active subscriptions renewing within ``days`` of ``reference`` (inclusive)."""
        start, end = renewal_window(reference or self.clock(), days)
        return self.subscription_repository.find_renewing_between(
            start, end, status=SubscriptionStatus.ACTIVE.value, user_id=user_id
        )

    def user_statistics(self, user_id: int) -> SubscriptionStatistics:
        self._require_user(user_id)
        row = self.subscription_repository.aggregate_statistics(user_id, MONTHLY_NORMALIZATION)
        return SubscriptionStatistics.from_aggregate(row)

    def search_subscriptions(
        self,
        term: str,
        user_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> List[Subscription]:
        try:
            cleaned = clean_subscription_name(term, label="El término de búsqueda")
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self._check_paging(page, limit)
        return self.subscription_repository.search_by_name(
            cleaned, user_id=user_id, skip=(page - 1) * limit, limit=limit
        )

    def _require_user(self, user_id: int) -> None:
        if not self.user_repository.get_by_id(user_id):
            raise NotFound("Usuario no encontrado")

    @staticmethod
    def _check_paging(page: int, limit: int) -> None:
        if page < 1:
            raise ValidationError("La página debe ser un número entero mayor a 0")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"El límite debe ser un número entre 1 y {MAX_PAGE_SIZE}")

    @staticmethod
    def _check_transition(current: SubscriptionStatus, requested: SubscriptionStatus) -> None:
        if current == SubscriptionStatus.CANCELLED and requested in (
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAUSED,
        ):
            raise ValidationError("Una suscripción cancelada no puede reactivarse")

    @staticmethod
    def _clean_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep the writable fields and re-check the formats the service relies on."""
        fields = {key: value for key, value in data.items() if key in _MUTABLE_FIELDS}
        try:
            if fields.get("name") is not None:
                fields["name"] = clean_subscription_name(fields["name"])
            if fields.get("price") is not None:
                fields["price"] = check_price(fields["price"])
            for key, enum_type in _ENUM_FIELDS.items():
                if fields.get(key) is not None:
                    fields[key] = enum_type(fields[key])
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        for key in ("start_date", "renewal_date"):
            if fields.get(key) is not None:
                fields[key] = ensure_utc(fields[key])
        for key in ("name", "price", "currency", "frequency", "category", "payment_method", "start_date"):
            if key in fields and fields[key] is None:
                raise ValidationError(f"El campo {key} no puede ser nulo")
        if "renewal_date" in fields and fields["renewal_date"] is None:
            del fields["renewal_date"]
        if "status" in fields and fields["status"] is None:
            del fields["status"]
        return fields

from datetime import timedelta

import pytest

from subtrack.domain.errors import Conflict, Forbidden, InvalidDateOrdering, NotFound, ValidationError
from subtrack.domain.models import Category, Currency, Frequency, PaymentMethod, SubscriptionStatus
from subtrack.infrastructure.repositories.subscription_repository import SubscriptionRepository
from subtrack.services.subscription_service import SubscriptionService

from .conftest import NOW


class TestCreate:
    def test_derives_renewal_and_applies_defaults(self, make_subscription, owner):
        subscription = make_subscription()

        assert subscription.user_id == owner.id
        assert subscription.renewal_date == NOW - timedelta(days=1) + timedelta(days=30)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.currency == Currency.PEN
        assert subscription.payment_method == PaymentMethod.CREDIT_CARD
        assert subscription.version == 1

    def test_lapsed_renewal_is_stored_as_expired(self, make_subscription):
        subscription = make_subscription(start_date=NOW - timedelta(days=40))

        assert subscription.renewal_date == NOW - timedelta(days=10)
        assert subscription.status == SubscriptionStatus.EXPIRED

    def test_expiry_wins_over_requested_status(self, make_subscription):
        subscription = make_subscription(
            start_date=NOW - timedelta(days=5),
            renewal_date=NOW - timedelta(days=1),
            status=SubscriptionStatus.CANCELLED,
        )
        assert subscription.status == SubscriptionStatus.EXPIRED

    def test_requested_status_kept_for_future_renewal(self, make_subscription):
        subscription = make_subscription(status=SubscriptionStatus.PAUSED)
        assert subscription.status == SubscriptionStatus.PAUSED

    def test_rejects_renewal_not_after_start(self, make_subscription):
        start = NOW - timedelta(days=3)
        with pytest.raises(InvalidDateOrdering):
            make_subscription(start_date=start, renewal_date=start)

    def test_rejects_future_start(self, make_subscription):
        with pytest.raises(ValidationError):
            make_subscription(start_date=NOW + timedelta(days=1))

    def test_rejects_missing_required_fields(self, service, owner):
        with pytest.raises(ValidationError, match="category"):
            service.create_subscription(
                owner.id, {"name": "Netflix", "price": 10, "start_date": NOW}
            )

    def test_rejects_invalid_name(self, make_subscription):
        with pytest.raises(ValidationError):
            make_subscription(name="Net#flix")

    def test_unknown_owner_is_not_found(self, make_subscription, owner):
        class Ghost:
            id = owner.id + 100

        with pytest.raises(NotFound):
            make_subscription(user=Ghost())


class TestReadAndOwnership:
    def test_reads_are_idempotent(self, service, make_subscription, owner):
        subscription = make_subscription()

        first = service.get_subscription(subscription.id, owner.id)
        second = service.get_subscription(subscription.id, owner.id)

        assert first.to_dict() == second.to_dict()

    def test_missing_subscription_is_not_found(self, service, owner):
        with pytest.raises(NotFound):
            service.get_subscription(999, owner.id)

    def test_other_users_record_is_forbidden(self, service, make_subscription, other_user):
        subscription = make_subscription()
        with pytest.raises(Forbidden):
            service.get_subscription(subscription.id, other_user.id)

    def test_cancel_by_non_owner_leaves_record_untouched(
        self, service, make_subscription, owner, other_user
    ):
        subscription = make_subscription()

        with pytest.raises(Forbidden):
            service.cancel_subscription(subscription.id, other_user.id)

        stored = service.get_subscription(subscription.id, owner.id)
        assert stored.status == SubscriptionStatus.ACTIVE
        assert stored.version == subscription.version

    def test_listing_another_users_subscriptions_is_forbidden(self, service, owner, other_user):
        with pytest.raises(Forbidden):
            service.get_user_subscriptions(other_user.id, owner.id)


class TestUpdate:
    def test_partial_update_bumps_version(self, service, make_subscription, owner):
        subscription = make_subscription()

        updated = service.update_subscription(
            subscription.id, owner.id, {"price": 12.5, "notes": "plan familiar"}
        )

        assert updated.price == 12.5
        assert updated.notes == "plan familiar"
        assert updated.name == subscription.name
        assert updated.version == subscription.version + 1

    def test_timestamps_follow_the_service_clock(self, service, make_subscription, owner, clock):
        subscription = make_subscription()
        assert subscription.created_at == NOW
        assert subscription.updated_at == NOW

        clock.advance(hours=2)
        updated = service.update_subscription(subscription.id, owner.id, {"notes": "revisada"})

        assert updated.created_at == NOW
        assert updated.updated_at == NOW + timedelta(hours=2)

    def test_owner_cannot_be_reassigned(self, service, make_subscription, owner, other_user):
        subscription = make_subscription()

        updated = service.update_subscription(subscription.id, owner.id, {"user_id": other_user.id})

        assert updated.user_id == owner.id

    def test_merged_dates_are_revalidated(self, service, make_subscription, owner):
        subscription = make_subscription()
        with pytest.raises(InvalidDateOrdering):
            service.update_subscription(
                subscription.id, owner.id, {"renewal_date": subscription.start_date}
            )

    def test_expired_record_revives_with_new_renewal_date(self, service, make_subscription, owner):
        subscription = make_subscription(start_date=NOW - timedelta(days=40))
        assert subscription.status == SubscriptionStatus.EXPIRED

        updated = service.update_subscription(
            subscription.id, owner.id, {"renewal_date": NOW + timedelta(days=10)}
        )

        assert updated.status == SubscriptionStatus.ACTIVE

    def test_cancelled_record_cannot_be_reactivated(self, service, make_subscription, owner):
        subscription = make_subscription()
        service.cancel_subscription(subscription.id, owner.id)

        with pytest.raises(ValidationError):
            service.update_subscription(
                subscription.id, owner.id, {"status": SubscriptionStatus.ACTIVE}
            )

    def test_stale_version_is_a_conflict(self, db_path, user_repository, clock, owner):
        class RacingRepository(SubscriptionRepository):
            race = False

            def update(self, subscription_id, fields, expected_version=None, now=None):
                if self.race:
                    self.race = False
                    super().update(subscription_id, {"notes": "otra petición"})
                return super().update(subscription_id, fields, expected_version, now=now)

        repository = RacingRepository(db_path)
        service = SubscriptionService(repository, user_repository, clock=clock)
        subscription = service.create_subscription(
            owner.id,
            {
                "name": "Spotify",
                "price": 5,
                "category": Category.STREAMING,
                "start_date": NOW - timedelta(days=1),
            },
        )

        repository.race = True
        with pytest.raises(Conflict):
            service.update_subscription(subscription.id, owner.id, {"price": 6})

        stored = repository.get_by_id(subscription.id)
        assert stored.price == 5
        assert stored.notes == "otra petición"


class TestCancelAndDelete:
    def test_cancel_sets_cancelled(self, service, make_subscription, owner):
        subscription = make_subscription()

        cancelled = service.cancel_subscription(subscription.id, owner.id)

        assert cancelled.status == SubscriptionStatus.CANCELLED

    def test_cancel_after_renewal_lapsed_stores_expired(self, service, make_subscription, owner, clock):
        subscription = make_subscription()
        clock.advance(days=31)

        cancelled = service.cancel_subscription(subscription.id, owner.id)

        assert cancelled.status == SubscriptionStatus.EXPIRED

    def test_delete_returns_record_and_removes_it(self, service, make_subscription, owner):
        subscription = make_subscription()

        deleted = service.delete_subscription(subscription.id, owner.id)

        assert deleted.id == subscription.id
        with pytest.raises(NotFound):
            service.get_subscription(subscription.id, owner.id)


class TestUpcomingRenewals:
    def test_window_is_inclusive_and_sorted(self, service, make_subscription, other_user):
        edge = make_subscription(name="Borde", renewal_date=NOW + timedelta(days=7))
        soon = make_subscription(name="Pronto", renewal_date=NOW + timedelta(days=1))
        make_subscription(name="Lejos", renewal_date=NOW + timedelta(days=8))
        make_subscription(
            name="Pausada", renewal_date=NOW + timedelta(days=2), status=SubscriptionStatus.PAUSED
        )
        foreign = make_subscription(
            user=other_user, name="Ajena", renewal_date=NOW + timedelta(days=3)
        )

        everyone = service.upcoming_renewals(7)
        mine = service.upcoming_renewals(7, user_id=edge.user_id)

        assert [s.id for s in everyone] == [soon.id, foreign.id, edge.id]
        assert [s.id for s in mine] == [soon.id, edge.id]

    def test_rejects_non_positive_window(self, service):
        with pytest.raises(ValidationError):
            service.upcoming_renewals(0)


class TestStatistics:
    def test_zero_state_for_user_without_subscriptions(self, service, owner):
        stats = service.user_statistics(owner.id)

        assert stats.total_subscriptions == 0
        assert stats.active_subscriptions == 0
        assert stats.cancelled_subscriptions == 0
        assert stats.estimated_monthly_expense == 0.0

    def test_monthly_estimate_normalises_annual_plans(self, service, make_subscription, owner):
        make_subscription(name="Netflix", price=10)
        make_subscription(name="Spotify", price=5)
        make_subscription(name="iCloud", price=3)
        make_subscription(
            name="Office", price=120, frequency=Frequency.ANNUAL, category=Category.PRODUCTIVITY
        )
        make_subscription(name="Gimnasio", price=50, frequency=Frequency.WEEKLY)
        make_subscription(
            name="Diario", price=1, frequency=Frequency.DAILY, renewal_date=NOW + timedelta(hours=12)
        )
        dropped = make_subscription(name="Hulu", price=99)
        service.cancel_subscription(dropped.id, owner.id)

        stats = service.user_statistics(owner.id)

        assert stats.total_subscriptions == 7
        assert stats.active_subscriptions == 6
        assert stats.cancelled_subscriptions == 1
        assert stats.estimated_monthly_expense == 28.0

    def test_daily_and_weekly_plans_add_nothing_to_estimate(self, service, make_subscription, owner):
        daily = make_subscription(
            name="Diario", price=4, frequency=Frequency.DAILY, renewal_date=NOW + timedelta(hours=12)
        )
        weekly = make_subscription(name="Semanal", price=25, frequency=Frequency.WEEKLY)
        assert daily.status == SubscriptionStatus.ACTIVE
        assert weekly.status == SubscriptionStatus.ACTIVE

        stats = service.user_statistics(owner.id)

        assert stats.active_subscriptions == 2
        assert stats.estimated_monthly_expense == 0.0

    def test_unknown_user_is_not_found(self, service):
        with pytest.raises(NotFound):
            service.user_statistics(12345)


class TestSearchAndList:
    def test_search_is_case_insensitive_and_paginated(self, service, make_subscription, owner):
        created = [make_subscription(name=f"Plan Música {n:02d}") for n in range(1, 26)]
        make_subscription(name="Spotify")
        newest_first = [s.id for s in reversed(created)]

        first = service.search_subscriptions("MÚSICA", user_id=owner.id, page=1, limit=10)
        third = service.search_subscriptions("música", user_id=owner.id, page=3, limit=10)
        fourth = service.search_subscriptions("música", user_id=owner.id, page=4, limit=10)

        assert [s.id for s in first] == newest_first[:10]
        assert [s.id for s in third] == newest_first[20:]
        assert fourth == []

    def test_search_is_scoped_to_user(self, service, make_subscription, owner, other_user):
        make_subscription(user=other_user, name="Netflix")
        assert service.search_subscriptions("netflix", user_id=owner.id) == []

    def test_search_rejects_invalid_term(self, service, owner):
        with pytest.raises(ValidationError):
            service.search_subscriptions("a", user_id=owner.id)
        with pytest.raises(ValidationError):
            service.search_subscriptions("n@", user_id=owner.id)

    def test_list_reports_pagination(self, service, make_subscription, owner):
        for n in range(12):
            make_subscription(name=f"Servicio {n}")

        result = service.list_subscriptions(owner.id, page=3, limit=5)

        assert len(result["subscriptions"]) == 2
        assert result["pagination"] == {
            "current_page": 3,
            "total_pages": 3,
            "total_subscriptions": 12,
            "has_next_page": False,
            "has_prev_page": True,
        }

    def test_list_filters_by_status(self, service, make_subscription, owner):
        make_subscription(name="Activa")
        cancelled = make_subscription(name="Cancelada")
        service.cancel_subscription(cancelled.id, owner.id)

        result = service.list_subscriptions(owner.id, status=SubscriptionStatus.CANCELLED)

        assert [s.id for s in result["subscriptions"]] == [cancelled.id]

    def test_list_rejects_oversized_page(self, service, owner):
        with pytest.raises(ValidationError):
            service.list_subscriptions(owner.id, limit=101)

"""API router for the subscriptions a user tracks."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ....core.config import Settings
from ....core.dependencies import get_settings, get_subscription_service
from ....domain.models import Category, Frequency, Subscription, SubscriptionStatus, User
from ....services.subscription_service import SubscriptionService
from ..dependencies import get_current_user
from ..schemas.subscription_schemas import (
    SubscriptionCreateRequest,
    SubscriptionListResponse,
    SubscriptionPageResponse,
    SubscriptionResponse,
    SubscriptionStatsResponse,
    SubscriptionUpdateRequest,
)

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    request: SubscriptionCreateRequest,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    subscription = service.create_subscription(user.id, request.to_changes())
    return _serialize_subscription(subscription)


@router.get("", response_model=SubscriptionPageResponse)
async def list_subscriptions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status_filter: Optional[SubscriptionStatus] = Query(default=None, alias="status"),
    category: Optional[Category] = Query(default=None),
    frequency: Optional[Frequency] = Query(default=None),
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionPageResponse:
    result = service.list_subscriptions(
        user.id,
        page=page,
        limit=limit,
        status=status_filter,
        category=category,
        frequency=frequency,
    )
    return SubscriptionPageResponse(
        items=[_serialize_subscription(item) for item in result["subscriptions"]],
        pagination=result["pagination"],
    )


@router.get("/search", response_model=SubscriptionListResponse)
async def search_subscriptions(
    q: str = Query(...),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionListResponse:
    matches = service.search_subscriptions(q, user_id=user.id, page=page, limit=limit)
    return _serialize_list(matches)


@router.get("/upcoming-renewals", response_model=SubscriptionListResponse)
async def upcoming_renewals(
    days: Optional[int] = Query(default=None, ge=1, le=365),
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
    settings: Settings = Depends(get_settings),
) -> SubscriptionListResponse:
    """Active subscriptions renewing within the next ``days`` days."""
    window = days if days is not None else settings.upcoming_renewal_days
    return _serialize_list(service.upcoming_renewals(window, user_id=user.id))


@router.get("/stats", response_model=SubscriptionStatsResponse)
async def subscription_stats(
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionStatsResponse:
    stats = service.user_statistics(user.id)
    return SubscriptionStatsResponse(
        total_subscriptions=stats.total_subscriptions,
        active_subscriptions=stats.active_subscriptions,
        cancelled_subscriptions=stats.cancelled_subscriptions,
        estimated_monthly_expense=stats.estimated_monthly_expense,
    )


@router.get("/user/{user_id}", response_model=SubscriptionListResponse)
async def get_user_subscriptions(
    user_id: int,
    status_filter: Optional[SubscriptionStatus] = Query(default=None, alias="status"),
    category: Optional[Category] = Query(default=None),
    frequency: Optional[Frequency] = Query(default=None),
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionListResponse:
    subscriptions = service.get_user_subscriptions(
        user.id, user_id, status=status_filter, category=category, frequency=frequency
    )
    return _serialize_list(subscriptions)


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    return _serialize_subscription(service.get_subscription(subscription_id, user.id))


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    request: SubscriptionUpdateRequest,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    updated = service.update_subscription(subscription_id, user.id, request.to_changes())
    return _serialize_subscription(updated)


@router.put("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    return _serialize_subscription(service.cancel_subscription(subscription_id, user.id))


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> None:
    service.delete_subscription(subscription_id, user.id)


def _serialize_subscription(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(**subscription.to_dict())


def _serialize_list(subscriptions: list) -> SubscriptionListResponse:
    return SubscriptionListResponse(
        items=[_serialize_subscription(item) for item in subscriptions],
        count=len(subscriptions),
    )

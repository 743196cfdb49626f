from dataclasses import dataclass

from .config import Settings
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..services.subscription_service import SubscriptionService
from ..services.user_service import UserService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    user_repository: UserRepository
    subscription_repository: SubscriptionRepository
    user_service: UserService
    subscription_service: SubscriptionService

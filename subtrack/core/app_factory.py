from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..domain.errors import DomainError
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import subscriptions as subscriptions_router
from ..presentation.api.routers import users as users_router
from ..services.subscription_service import SubscriptionService
from ..services.user_service import UserService

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Subscription Tracker API", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    _register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(subscriptions_router.router)

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {"message": "Bienvenido a Suscripcion Tracker API"}

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        logger.warning(
            "%s on %s %s: %s",
            exc.__class__.__name__,
            request.method,
            request.url.path,
            exc.message,
        )
        content: Dict[str, Any] = {"detail": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
        logger.warning("Rejected request %s %s: %s", request.method, request.url.path, details)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Errores de validación en los datos enviados", "details": details},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        settings.database_path.parent.mkdir(parents=True, exist_ok=True)
        db_path = str(settings.database_path)

        user_repository = UserRepository(db_path)
        subscription_repository = SubscriptionRepository(db_path)
        user_service = UserService(
            user_repository,
            subscription_repository,
            jwt_secret=settings.jwt_secret,
            jwt_algorithm=settings.jwt_algorithm,
            jwt_expiration_hours=settings.jwt_expiration_hours,
        )
        subscription_service = SubscriptionService(subscription_repository, user_repository)

        app.state.container = ApplicationContainer(  # type: ignore[attr-defined]
            settings=settings,
            user_repository=user_repository,
            subscription_repository=subscription_repository,
            user_service=user_service,
            subscription_service=subscription_service,
        )
        logger.info("Subscription tracker started with database %s", db_path)

        yield

        logger.info("Subscription tracker shutting down")

    return lifespan

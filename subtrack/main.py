"""ASGI entrypoint for the subscription tracker (``uvicorn subtrack.main:app``)."""

import os

import uvicorn

from .core.app_factory import create_application

app = create_application()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run(
        "subtrack.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "4000")),
        reload=os.getenv("APP_ENV", "development") == "development",
    )


if __name__ == "__main__":
    run()

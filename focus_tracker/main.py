"""
Focus Tracker API

FastAPI application server: vision interview, onboarding staging,
weekly check-ins and 360 feedback links.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from focus_tracker.config.settings import get_settings
from focus_tracker.routers import checkins, feedback, onboarding, vision

# ---------------------------------------------------------------------------
# App initialization
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Focus Tracker API",
        description="Vision interview, focus plans, weekly check-ins and 360 feedback.",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(vision.router)  # /vision/*, /vision-interview
    app.include_router(onboarding.router)  # /onboarding/{client_id}/*
    app.include_router(checkins.router)  # /plans/active, /checkins/*
    app.include_router(feedback.router)  # /feedback/*

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


# Singleton app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )

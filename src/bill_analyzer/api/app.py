"""FastAPI application factory."""
from __future__ import annotations
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ..config import Settings
from ..pipeline import BillAnalysisPipeline
from ..utils.logging import setup_logging
from .middleware import RequestLoggingMiddleware
from .routes import bills, health


def create_app(settings: Settings | None = None, pipeline: BillAnalysisPipeline | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        # Load .env for local development
        load_dotenv()
        settings = Settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Bill Analyzer API",
        description="Electricity bill OCR and completion API",
        version="0.1.0",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # One pipeline per app; it holds no per-bill state
    app.state.settings = settings
    app.state.pipeline = pipeline or BillAnalysisPipeline(settings)

    # Register routes
    app.include_router(health.router, tags=["health"])
    app.include_router(bills.router, prefix="/bills", tags=["bills"])

    return app

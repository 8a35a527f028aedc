from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from app.api import router
from datastore.readings import ReadingStore, build_default_store
from logging_config import configure_logging
from services.insights import InsightOrchestrator, build_orchestrator
from services.readings import ReadingService
from settings import get_settings


def create_app(
    store: Optional[ReadingStore] = None,
    orchestrator: Optional[InsightOrchestrator] = None,
) -> FastAPI:
    """Build the application; collaborators default to settings-driven instances."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        reading_store = store if store is not None else build_default_store()
        insight_orchestrator = (
            orchestrator if orchestrator is not None else build_orchestrator(get_settings())
        )
        app.state.reading_service = ReadingService(reading_store)
        app.state.insight_orchestrator = insight_orchestrator
        try:
            yield
        finally:
            insight_orchestrator.shutdown()

    app = FastAPI(
        title="Utility Usage Tracker",
        description="Household electricity, gas and water readings with statistics and AI insights.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()

from __future__ import annotations

from contextlib import asynccontextmanager

import requests
from fastapi import FastAPI

from psx_scraper.api.routes import router
from psx_scraper.config.settings import get_settings
from psx_scraper.integrations.psx_web import PsxQuoteScraper
from psx_scraper.integrations.row_store import InMemoryRowStore
from psx_scraper.services.batch_refresh import BatchRefreshOrchestrator
from psx_scraper.services.runtime_state import RuntimeState
from psx_scraper.services.stock_repository import StockRepository
from psx_scraper.services.stock_service import StockService


def _bind_runtime(app: FastAPI, settings, store=None) -> None:
    scraper = PsxQuoteScraper(
        primary_base_url=settings.PSX_PRIMARY_BASE_URL,
        fallback_base_url=settings.PSX_FALLBACK_BASE_URL,
        timeout_sec=settings.PSX_FETCH_TIMEOUT_SEC,
        user_agent=settings.PSX_USER_AGENT,
    )
    orchestrator = BatchRefreshOrchestrator(
        fetch_one=scraper.fetch,
        stagger_ms=settings.PSX_BATCH_STAGGER_MS,
        max_workers=settings.PSX_BATCH_MAX_WORKERS,
    )
    repository = StockRepository(store if store is not None else InMemoryRowStore())

    app.state.quote_scraper = scraper
    app.state.batch_orchestrator = orchestrator
    app.state.stock_repository = repository
    app.state.stock_service = StockService(
        repository=repository,
        fetcher=scraper,
        orchestrator=orchestrator,
        max_age_minutes=settings.PSX_FRESHNESS_MAX_AGE_MINUTES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = app.state.runtime_state
    runtime.begin_loading()
    try:
        settings = app.state.get_settings()
    except Exception as exc:
        runtime.reset(error=str(exc))
        raise
    runtime.mark_ready()
    print(f"[APP][ready] self_base_url={settings.PSX_SELF_BASE_URL or '-'}", flush=True)

    try:
        yield
    finally:
        runtime.reset()
        print("[APP][stopped]", flush=True)


app = FastAPI(title="PSX Quote API", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/api")

# NOTE: lazy-loaded so tests can swap settings before the first request.
app.state.get_settings = get_settings
app.state.runtime_state = RuntimeState()
app.state.self_http_session = requests.Session()
_bind_runtime(app, get_settings())

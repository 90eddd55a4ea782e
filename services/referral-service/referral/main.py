"""FastAPI application wiring for the referral service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.routes import router
from .config import get_settings
from .database import close_pool, get_pool
from .domain.errors import LedgerStorageError
from .domain.service import ReferralService
from .repository import AccountRepository

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
    logging.basicConfig(level=settings.log_level)
    repository = AccountRepository(get_pool())
    if settings.bootstrap_schema:
        try:
            repository.ensure_schema()
        except LedgerStorageError:
            logger.exception("schema bootstrap failed; serving with the existing schema")
    app.state.referral_service = ReferralService(repository)
    try:
        yield
    finally:
        close_pool()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()

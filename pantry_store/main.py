"""FastAPI application bootstrap for hosting the pantry store."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from pantry_store import __version__
from pantry_store.config import get_settings
from pantry_store.db import PantryStore, close_store, init_store
from pantry_store.services.subscription import SubscriptionService

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and close it on shutdown."""
    app.state.store = await init_store(settings)
    yield
    await close_store()


app = FastAPI(
    title="Pantry Store",
    description="Tenant-scoped pantry inventory with an activity ledger",
    version=__version__,
    lifespan=lifespan,
)


def get_store(request: Request) -> PantryStore:
    """Inject the store opened by the lifespan."""
    return request.app.state.store


def get_subscription_service(
    store: Annotated[PantryStore, Depends(get_store)],
) -> SubscriptionService:
    return SubscriptionService(store)


@app.get("/health")
async def health_check(store: Annotated[PantryStore, Depends(get_store)]):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "engine": store.engine_name,
    }

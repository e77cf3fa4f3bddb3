import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from conduit.cache import cache
from conduit.config import settings
from conduit.database import engine
from conduit.errors import register_exception_handlers
from conduit.middleware import RequestTimeoutMiddleware, TimingMiddleware
from conduit.projections import isoformat
from conduit.routers import articles, profiles, tags, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect()
    except ValueError as exc:
        # Malformed REDIS_URL; the API works without the cache.
        logger.warning("Cache disabled: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()
    await engine.dispose()

app = FastAPI(
    title="Conduit API",
    description="RealWorld social blogging backend",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware (last added is outermost; the timeout wraps timing so the
# query counter is read in the same task that runs the request)
app.add_middleware(TimingMiddleware)
app.add_middleware(RequestTimeoutMiddleware, timeout=settings.REQUEST_TIMEOUT)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(profiles.router)
app.include_router(articles.router)
app.include_router(tags.router)

@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "timestamp": isoformat(datetime.now(timezone.utc)),
        "service": "conduit-api",
        "version": settings.APP_VERSION,
    }

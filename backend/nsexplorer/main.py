import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nsexplorer.api.v1 import api_router
from nsexplorer.config import settings
from nsexplorer.core.error_handlers import register_error_handlers
from nsexplorer.core.middleware import RequestIDMiddleware
from nsexplorer.services.builder_sessions import BuilderSessionStore
from nsexplorer.services.store_client import TurbopufferClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start without store credentials outside debug mode
    if not settings.TURBOPUFFER_API_KEY and not settings.DEBUG:
        raise RuntimeError(
            "TURBOPUFFER_API_KEY is not set. "
            "Set it in the environment or .env before starting the service."
        )
    client = TurbopufferClient(
        base_url=settings.store_base_url,
        api_key=settings.TURBOPUFFER_API_KEY,
        timeout=settings.STORE_TIMEOUT_SECONDS,
    )
    app.state.store_client = client
    logger.info("Using turbopuffer at %s", client.base_url)
    yield
    # Shutdown: close pooled store connections
    app.state.store_client = None
    await client.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.state.builder_sessions = BuilderSessionStore(max_sessions=settings.MAX_BUILDER_SESSIONS)

# --- Middleware (outermost first) ---

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)

# --- Error handlers ---
register_error_handlers(app)

# --- Routes ---
app.include_router(api_router)


@app.get("/api/health")
async def health_check():
    """Liveness plus whether the store client is configured."""
    client = getattr(app.state, "store_client", None)
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "store": {
            "configured": client is not None,
            "base_url": client.base_url if client is not None else None,
        },
        "builder_sessions": len(app.state.builder_sessions),
    }

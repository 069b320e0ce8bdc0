"""FastAPI backend for the ideagen web app."""

import logging
import time
from collections import defaultdict

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from backend.auth import PUBLIC_PATHS, validate_token
from ideagen import __version__
from ideagen.config import get_settings

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

settings = get_settings()

app = FastAPI(
    title="ideagen API",
    description="Startup idea extraction with PRD, go-to-market and marketing plan generation.",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


# ---------------------------------------------------------------------------
# Authentication middleware: reject unauthenticated requests to protected paths
# ---------------------------------------------------------------------------
@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Enforce bearer-token auth on all non-public API routes."""
    path = request.url.path.rstrip("/")

    if (
        request.method == "OPTIONS"
        or path in PUBLIC_PATHS
        or f"{path}/" in PUBLIC_PATHS
        or path.startswith("/api/docs")
        or path.startswith("/api/redoc")
        or path.startswith("/api/openapi")
    ):
        return await call_next(request)

    if path.startswith("/api/"):
        auth_header = request.headers.get("authorization", "")
        if not auth_header.lower().startswith("bearer "):
            return Response(
                content='{"detail":"Authentication required"}',
                status_code=401,
                media_type="application/json",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not validate_token(auth_header.split(" ", 1)[1]):
            return Response(
                content='{"detail":"Invalid or expired token"}',
                status_code=401,
                media_type="application/json",
                headers={"WWW-Authenticate": "Bearer"},
            )

    return await call_next(request)


# ---------------------------------------------------------------------------
# In-memory rate limiter (per IP, RATE_LIMIT_MAX mutating requests / 60 s)
# ---------------------------------------------------------------------------
RATE_LIMIT_WINDOW = 60  # seconds
_rate_store: dict[str, list[float]] = defaultdict(list)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Sliding-window rate limiter for non-GET routes."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    _rate_store[client_ip] = [t for t in _rate_store[client_ip] if now - t < RATE_LIMIT_WINDOW]
    if len(_rate_store[client_ip]) >= settings.rate_limit_max:
        return Response(
            content='{"detail":"Rate limit exceeded. Try again later."}',
            status_code=429,
            media_type="application/json",
        )
    _rate_store[client_ip].append(now)
    return await call_next(request)


# ---------------------------------------------------------------------------
# CORS is added LAST so it is the OUTERMOST middleware and 401/429 responses
# carry CORS headers too (Starlette add_middleware is LIFO).
# ---------------------------------------------------------------------------
logger.info("CORS configured for origins: %s", settings.cors_origin_list)
cors_kw: dict = {
    "allow_origins": settings.cors_origin_list,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["*"],
}
if settings.cors_origin_regex:
    logger.info("CORS origin regex: %s", settings.cors_origin_regex)
    cors_kw["allow_origin_regex"] = settings.cors_origin_regex
app.add_middleware(CORSMiddleware, **cors_kw)

logger.info(
    "Storage: %s (data dir %s)",
    "Postgres" if settings.ideagen_database_url else "files",
    settings.data_dir,
)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str
    data_dir: str


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", data_dir=str(settings.data_dir))


@app.get("/api/")
async def root():
    return {"message": "ideagen API", "version": __version__}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
from backend.routes import auth, downloads, generation, ideas, usage  # noqa: E402

app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(generation.router, prefix="/api", tags=["generation"])
app.include_router(ideas.router, prefix="/api", tags=["ideas"])
app.include_router(downloads.router, prefix="/api", tags=["downloads"])
app.include_router(usage.router, prefix="/api", tags=["usage"])

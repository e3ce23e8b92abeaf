import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from repolens.api.deps import Analyzer
from repolens.api.router import api_router
from repolens.config import settings
from repolens.services.analysis import (
    AnalysisError,
    AnalysisTimeout,
    InvalidRepoIdentifier,
    RateLimitExceeded,
    UpstreamFailure,
)
from repolens.services.github import close_github_client


def setup_logging() -> None:
    """Configure application logging."""
    log_format = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
    date_format = "%H:%M:%S"

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=log_format,
        datefmt=date_format,
        stream=sys.stdout,
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    setup_logging()
    logger.info("Repolens API starting up")
    yield
    await close_github_client()
    logger.info("Repolens API shutting down")


app = FastAPI(
    title="Repolens API",
    description="GitHub repository analysis API",
    version="0.1.0",
    lifespan=lifespan,
)

# Trust X-Forwarded-Proto from the TLS-terminating proxy
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Cache-Age"],
)


def error_status(error: AnalysisError) -> int:
    """HTTP status for a fatal analysis error."""
    if isinstance(error, InvalidRepoIdentifier):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, AnalysisTimeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(error, UpstreamFailure):
        return status.HTTP_502_BAD_GATEWAY
    if error.requires_auth:
        return status.HTTP_401_UNAUTHORIZED
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(AnalysisError)
async def analysis_error_handler(_request: Request, exc: AnalysisError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceeded) and exc.rate_limit_reset:
        headers["Retry-After"] = str(max(0, exc.rate_limit_reset - int(time.time())))
    return JSONResponse(
        status_code=error_status(exc),
        content=exc.to_payload(),
        headers=headers,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log failed requests, skipping OPTIONS preflight and health checks."""
    if request.method == "OPTIONS" or request.url.path == "/health":
        return await call_next(request)

    response = await call_next(request)
    if response.status_code >= 400:
        logger.info(f"{request.method} {request.url.path} → {response.status_code}")
    return response


app.include_router(api_router)


@app.get("/health")
async def health_check(analyzer: Analyzer):
    """Health check endpoint, with cache occupancy."""
    return {"status": "healthy", "caches": analyzer.cache_stats()}

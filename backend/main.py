"""FastAPI backend for Page Perfector: content optimization jobs, scoring and validation."""

import logging
import sys
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from perfector.config import Settings, get_settings
from perfector.errors import RateLimitExceeded
from perfector.jobs.store import JobStore
from perfector.pipeline.executor import PipelineExecutor
from perfector.reliability.ratelimit import RateLimiter

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

__version__ = "0.4.0"


class HealthResponse(BaseModel):
    status: str
    jobs: int
    providers: list[str]


def create_app(
    settings: Settings | None = None,
    store: JobStore | None = None,
    executor: PipelineExecutor | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    # JobStore defines __len__, so an empty store is falsy: compare to None.
    if settings is None:
        settings = get_settings()
    if store is None:
        store = JobStore()
    if executor is None:
        executor = PipelineExecutor(store, settings=settings)
    if rate_limiter is None:
        rate_limiter = RateLimiter()

    app = FastAPI(
        title="Page Perfector API",
        description="Multi-stage content optimization jobs with quality scoring.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.executor = executor
    app.state.rate_limiter = rate_limiter

    # -----------------------------------------------------------------------
    # Fixed-window rate limiter (per IP) for mutating routes
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        result = rate_limiter.check(
            f"ip:{client_ip}",
            settings.perfector_rate_limit_max,
            settings.perfector_rate_limit_window_ms,
        )
        if not result.allowed:
            error = RateLimitExceeded(int(result.retry_after_ms or 0))
            retry_after_s = max(1, -(-error.retry_after_ms // 1000))
            logger.info("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            return JSONResponse(
                {"detail": error.to_dict()["error"], "retryAfterMs": error.retry_after_ms},
                status_code=error.status_code,
                headers={"Retry-After": str(retry_after_s)},
            )
        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response

    # -----------------------------------------------------------------------
    # CORS: added LAST so it is the OUTERMOST middleware.
    # In Starlette, add_middleware uses LIFO: last-added = outermost, so
    # 429 responses from the rate limiter still carry CORS headers.
    # -----------------------------------------------------------------------
    logger.info("CORS configured for origins: %s", settings.cors_origin_list)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------
    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(status="ok", jobs=len(store), providers=executor.router.providers)

    @app.get("/api/")
    async def root():
        return {"message": "Page Perfector API", "version": __version__}

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    from backend.routes import jobs, score, validate

    app.include_router(jobs.router, prefix="/api", tags=["jobs"])
    app.include_router(score.router, prefix="/api", tags=["score"])
    app.include_router(validate.router, prefix="/api", tags=["validate"])

    return app


app = create_app()

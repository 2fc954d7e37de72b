"""
Neighborhood locator FastAPI service: geocodes attractions, finds their
neighborhoods and resolves the best neighborhood for a batch.

Entrypoint: uvicorn services.locator.main:app --host 0.0.0.0 --port 8080
"""

import logging
import uuid
from contextlib import asynccontextmanager

import asyncpg
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from services.locator.attractions.service import AttractionService
from services.locator.config import settings
from services.locator.geo.distance import create_distance_provider
from services.locator.geo.geocoder import NominatimGeocoder
from services.locator.geo.spatial import NeighborhoodStore
from services.locator.middleware.cors import setup_cors
from services.locator.middleware.rate_limit import RateLimitMiddleware
from services.locator.middleware.sentry import setup_sentry
from services.locator.resolution.distance_cache import DistanceCache
from services.locator.resolution.resolver import NeighborhoodResolver
from services.locator.routers import attractions, health, neighborhoods

logger = logging.getLogger(__name__)

# Shared redis reference: set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Every shared resource is built once here
    and handed to the components that need it."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    setup_sentry()

    # Redis for rate limiting + shared distance cache tier
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception as e:
            # Rate limiting and L2 distance caching degrade gracefully
            logger.warning(f"Redis unavailable, continuing without it: {e}")
            redis_client = None

    _redis_holder["client"] = redis_client
    app.state.redis = redis_client
    app.state.settings = settings

    # PostGIS pool: containment lookups, centroids, distances
    db_pool = None
    if settings.database_url:
        try:
            db_pool = await asyncpg.create_pool(
                settings.database_url,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout_s,
            )
        except Exception as e:
            logger.warning(f"DB pool failed to connect: {e}")

    app.state.db = db_pool

    distance_provider = create_distance_provider(settings.distance_backend, db_pool)
    distance_cache = DistanceCache(
        distance_provider,
        redis=redis_client,
        ttl_seconds=settings.distance_cache_ttl_s,
    )
    resolver = NeighborhoodResolver(distance_cache)
    geocoder = NominatimGeocoder(
        base_url=settings.nominatim_url,
        user_agent=settings.geocoder_user_agent,
        timeout_s=settings.geocoder_timeout_s,
    )

    app.state.resolver = resolver
    app.state.geocoder = geocoder
    app.state.attraction_service = None
    if db_pool is not None:
        app.state.attraction_service = AttractionService(
            geocoder=geocoder,
            store=NeighborhoodStore(db_pool, distance_provider),
            resolver=resolver,
            max_concurrency=settings.geocoder_max_concurrency,
        )

    yield

    await geocoder.aclose()
    if db_pool:
        await db_pool.close()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Neighborhood Locator API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(attractions.router)
app.include_router(neighborhoods.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Rate limiting: uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

def _validation_message(exc) -> str:
    if isinstance(exc, RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = ".".join(str(part) for part in first.get("loc", ()))
            return f"{loc}: {first.get('msg', 'invalid')}"
        return "Validation error."
    return str(exc.detail) if hasattr(exc, "detail") else "Validation error."


@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Resource not found."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(RequestValidationError)
@app.exception_handler(422)
async def validation_error_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": _validation_message(exc),
            },
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from keeper.config import API_KEY, PUBLIC_API_PREFIXES
from keeper.db import init_db
from keeper.error_handlers import register_error_handlers
from keeper.health_checks import check_database, check_env, get_app_metadata
from keeper.logging_config import setup_logging
from keeper.metrics import get_metrics, increment_request
from keeper.realtime.hub import SessionHub

setup_logging()
logger = logging.getLogger(__name__)

# Track uptime
start_time = time.time()

TITLE = "Keeper API"
DESCRIPTION = "Call of Cthulhu session companion: dice, investigators and realtime game sessions"
VERSION = "1.0.0"


# Lifespan context for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("🚀 Keeper API starting")
    yield
    logger.info("🛑 Keeper API shutting down")


application = FastAPI(
    title=TITLE,
    description=DESCRIPTION,
    version=VERSION,
    lifespan=lifespan,
)

# One hub per application; routes reach it through app.state
application.state.hub = SessionHub()

application.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def requires_api_key(path: str) -> bool:
    return path.startswith("/api/") and not path.startswith(PUBLIC_API_PREFIXES)


# Middleware to attach request_id and check auth
@application.middleware("http")
async def add_request_id_and_auth(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    if requires_api_key(request.url.path):
        provided_key = request.headers.get("X-API-Key")
        if not provided_key or provided_key != API_KEY:
            increment_request(request.url.path, 403)
            return JSONResponse(
                status_code=403,
                content={"error": "Invalid or missing X-API-Key", "request_id": request_id},
            )

    logger.info(f"{request.method} {request.url.path}", extra={"request_id": request_id})

    response = await call_next(request)
    increment_request(request.url.path, response.status_code)
    response.headers["X-Request-ID"] = request_id
    return response


@application.get("/health")
async def health_check():
    """Simple health check."""
    return {
        "status": "ok",
        "uptime_seconds": time.time() - start_time,
        "timestamp": time.time(),
    }


@application.get("/api/health")
async def api_health_check():
    """Detailed health check with DB and env checks."""
    db_status = check_database()
    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "uptime_seconds": time.time() - start_time,
        "database": db_status,
        "environment": check_env(),
        "metadata": get_app_metadata(start_time),
        "realtime": {"sessions": len(application.state.hub.sessions)},
        "timestamp": time.time(),
    }


@application.get("/api/metrics")
async def metrics():
    return get_metrics()


def custom_openapi():
    if application.openapi_schema:
        return application.openapi_schema

    openapi_schema = get_openapi(
        title=TITLE,
        version=VERSION,
        description=DESCRIPTION,
        routes=application.routes,
    )
    openapi_schema["components"] = openapi_schema.get("components", {})
    openapi_schema["components"]["securitySchemes"] = {
        "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"}
    }
    application.openapi_schema = openapi_schema
    return application.openapi_schema


application.openapi = custom_openapi

# ✅ Register routers (import after app creation to avoid circular imports)
from routes.characters import characters_router  # noqa: E402
from routes.effects import effects_router  # noqa: E402
from routes.game_websocket import game_ws_router  # noqa: E402
from routes.rolls import rolls_router  # noqa: E402
from routes.sessions import limiter, sessions_router  # noqa: E402

application.state.limiter = limiter
application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

application.include_router(sessions_router)
application.include_router(characters_router)
application.include_router(effects_router)
application.include_router(rolls_router)
application.include_router(game_ws_router)


@application.get("/")
async def root():
    """API root."""
    return {
        "message": TITLE,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "health": "/health",
        "api_health": "/api/health",
        "websocket": "/game-ws",
    }


register_error_handlers(application)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(application, host="0.0.0.0", port=8000)

"""
# Barangay Registry - Main Application Module

Entry point of the Barangay Registry FastAPI service: resident and family-head
records for barangay staff, stored in Redis.

## Architecture Overview

```
┌──────────────────────────────────────────────┐
│               FastAPI Application             │
│  Middleware: CORS, RequestLogging             │
│  Routers:   /auth  /residents  /familyHeads   │
│             /dashboard  /health               │
│  Handlers:  RegistryError -> {"error": ...}   │
└──────────────────────────────────────────────┘
                      │
        RecordRepository / AggregationEngine
                      │
                      ▼
                 ┌─────────┐
                 │  Redis  │
                 └─────────┘
```

## Lifespan

**Startup:**
1. Connect to Redis (exponential backoff retries).
2. Seed the admin account and the record counters when missing.

**Shutdown:**
1. Close the Redis connection pool.

## Error Responses

Domain exceptions raised anywhere below the routers are rendered here:

| Exception               | Status       | Body                                   |
|-------------------------|--------------|----------------------------------------|
| `RecordValidationError` | 400          | `{"error": ..., "errors": [...]}`      |
| `RecordConflictError`   | 400 / 409    | `{"error": ...}`                       |
| `RecordNotFoundError`   | 404          | `{"error": "<Entity> not found"}`      |
| `AuthenticationError`   | 401          | `{"error": ...}`                       |
| `StoreError`            | 500          | `{"error": ...}`                       |

Request body validation failures use the same 400 `errors` shape.

## Usage Example

```bash
uvicorn barangay_registry.main:app --reload --port 5000
```

- **Swagger UI**: `http://localhost:5000/docs`
- **Prometheus Metrics**: `http://localhost:5000/metrics`

Attributes:
    app (FastAPI): The ASGI application served by uvicorn.
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
import uvicorn

from barangay_registry.config import settings
from barangay_registry.exceptions import RegistryError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import redis_manager
from barangay_registry.models.record_models import validation_errors
from barangay_registry.routes.auth.routes import router as auth_router
from barangay_registry.routes.dashboard import router as dashboard_router
from barangay_registry.routes.family_heads import router as family_heads_router
from barangay_registry.routes.health import router as health_router
from barangay_registry.routes.residents import router as residents_router
from barangay_registry.services.auth_service import seed_initial_data
from barangay_registry.utils.logging_utils import (
    RequestLoggingMiddleware,
    log_application_lifecycle,
    log_error_with_context,
)

logger = get_logger()

APP_NAME = "Barangay Registry API"
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Connect to Redis and seed bootstrap data before serving; disconnect on shutdown.

    Raises:
        RedisError: If Redis stays unreachable after all retries. The service does not
            start without its store.
    """
    startup_start_time = time.time()
    log_application_lifecycle(
        "startup_initiated",
        {
            "app_name": APP_NAME,
            "version": APP_VERSION,
            "environment": "production" if settings.is_production else "development",
            "debug_mode": settings.DEBUG,
        },
    )

    try:
        redis_connect_start = time.time()
        redis = await redis_manager.connect()
        log_application_lifecycle(
            "redis_connected",
            {
                "connection_duration": f"{time.time() - redis_connect_start:.3f}s",
                "redis_url": settings.REDIS_URL.split("@")[-1],
            },
        )
        await seed_initial_data(redis)
        log_application_lifecycle("bootstrap_data_ready", {"admin_username": settings.ADMIN_USERNAME})
    except Exception as e:
        log_error_with_context(e, {"operation": "application_startup"})
        raise

    total_startup_duration = time.time() - startup_start_time
    log_application_lifecycle("startup_completed", {"total_startup_duration": f"{total_startup_duration:.3f}s"})
    logger.info(f"FastAPI application startup completed in {total_startup_duration:.3f}s")

    yield

    shutdown_start_time = time.time()
    log_application_lifecycle("shutdown_initiated", {})
    try:
        await redis_manager.disconnect()
        log_application_lifecycle("redis_disconnected", {})
    except Exception as e:
        log_error_with_context(e, {"operation": "redis_disconnection"})

    total_shutdown_duration = time.time() - shutdown_start_time
    log_application_lifecycle("shutdown_completed", {"total_shutdown_duration": f"{total_shutdown_duration:.3f}s"})


app = FastAPI(
    title=APP_NAME,
    description="""
    ## Barangay Registry API

    Resident and family-head records for barangay staff.

    ### Features
    - **Residents**: register, update, and remove residents, optionally grouped under a family head
    - **Family Heads**: household representatives with member listings and address propagation
    - **Dashboard**: totals plus gender, age and monthly registration breakdowns

    ### Security
    - JWT bearer authentication for every records and dashboard endpoint
    """,
    version=APP_VERSION,
    lifespan=lifespan,
    redirect_slashes=False,
    openapi_tags=[
        {"name": "Authentication", "description": "Staff login and account management"},
        {"name": "Residents", "description": "Resident records"},
        {"name": "Family Heads", "description": "Family head records and household membership"},
        {"name": "Dashboard", "description": "Registration statistics"},
        {"name": "System", "description": "Health probes"},
    ],
)


# Exception handlers
@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    if exc.status_code >= 500:
        log_error_with_context(exc, {"operation": "request", "method": request.method, "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **exc.details})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = validation_errors(exc)
    logger.info(f"Rejected {request.method} {request.url.path}: {len(errors)} invalid field(s)")
    return JSONResponse(status_code=400, content={"error": "Invalid request", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


# Middleware
cors_origins = ["http://localhost:3000", *settings.cors_origins_list]
logger.info(f"Configuring CORS with origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)
app.add_middleware(RequestLoggingMiddleware)
log_application_lifecycle(
    "middleware_configured",
    {"middleware": ["CORSMiddleware", "RequestLoggingMiddleware"], "cors_origins": cors_origins},
)

# Routers: (name, router, mount prefix, description)
routers_config = [
    ("auth", auth_router, settings.API_PREFIX, "Staff authentication endpoints"),
    ("residents", residents_router, settings.API_PREFIX, "Resident records"),
    ("family_heads", family_heads_router, settings.API_PREFIX, "Family head records and members"),
    ("dashboard", dashboard_router, settings.API_PREFIX, "Dashboard statistics"),
    ("health", health_router, "", "Kubernetes health probes"),
]

logger.info("Including API routers...")
included_routers = []
for router_name, router, prefix, description in routers_config:
    try:
        app.include_router(router, prefix=prefix)
        included_routers.append({"name": router_name, "description": description})
        logger.info(f"Successfully included {router_name} router: {description}")
    except Exception as e:
        log_error_with_context(
            e, {"operation": "router_inclusion", "router_name": router_name, "description": description}
        )
        logger.error(f"Failed to include {router_name} router: {e}")

log_application_lifecycle(
    "routers_configured",
    {"total_routers": len(routers_config), "included_routers": len(included_routers), "routers": included_routers},
)

# Prometheus metrics
logger.info("Setting up Prometheus metrics instrumentation...")
try:
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
    )
    instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")
    log_application_lifecycle("prometheus_configured", {"metrics_endpoint": "/metrics"})
except Exception as e:
    log_error_with_context(e, {"operation": "prometheus_setup"})
    logger.error(f"Failed to configure Prometheus metrics: {e}")


def run() -> None:
    uvicorn.run(
        "barangay_registry.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info"
    )


if __name__ == "__main__":
    run()

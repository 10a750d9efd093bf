import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import Response

from app.config import allowed_origins, ensure_secure_runtime_settings, settings
from app.db.migration_check import prepare_schema
from app.db.session import engine
from app.observability import configure_logging, log_event, metrics_store, set_request_id
from app.routers.delivery import router as delivery_router
from app.routers.health import router as health_router
from app.routers.metrics import router as metrics_router
from app.routers.orders import admin_router as admin_orders_router
from app.routers.orders import router as orders_router
from app.routers.products import router as products_router
from app.routers.reports import router as reports_router
from app.routers.tracking import router as tracking_router
from app.services.side_effects import get_side_effect_runner, shutdown_side_effect_runner


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    ensure_secure_runtime_settings()
    prepare_schema(engine)
    get_side_effect_runner()
    log_event(f"startup mode={settings.app_mode}")
    yield
    shutdown_side_effect_runner()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Order lifecycle, stock and delivery tracking API",
    lifespan=lifespan,
)


def custom_openapi():
    """Advertise bearer auth so Swagger UI offers an 'Authorize' button."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    security_schemes = components.setdefault("securitySchemes", {})
    security_schemes["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(
        f"http_request method={request.method} path={request.url.path} "
        f"status={response.status_code}",
        order_id=request.path_params.get("order_id"),
    )
    return response


app.include_router(health_router)
app.include_router(orders_router)
app.include_router(admin_orders_router)
app.include_router(delivery_router)
app.include_router(products_router)
app.include_router(reports_router)
app.include_router(tracking_router)
app.include_router(metrics_router)

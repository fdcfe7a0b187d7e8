"""
EcoSpin Laundry — Orders API (FastAPI application)

Customer order form, manual M-Pesa payment confirmation, and the admin
order lifecycle, backed by either JSON files or a relational database.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, settings as default_settings
from domain.errors import DomainError, StorageUnavailableError
from domain.responses import error_code_for, error_response
from routes import exports, health, orders

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load store, warm cache, start timers. Shutdown: stop, drain, save."""
    from services.async_executor import shutdown_executor
    from services.id_allocator import IdentifierAllocator
    from services.json_store import JsonFileOrderStore
    from services.notification_service import build_dispatcher
    from services.order_cache import OrderCache
    from services.order_service import OrderService
    from services.order_store import create_store

    settings: Settings = app.state.settings
    settings.validate_production_settings()

    store = create_store(settings)
    await store.load()

    cache = OrderCache()
    service = OrderService(
        store=store,
        cache=cache,
        allocator=IdentifierAllocator(store, settings.order_id_prefix),
        notifier=build_dispatcher(settings),
        business_number=settings.business_number,
    )
    count = await service.refresh_cache()
    cache.start_refresher(store, settings.cache_refresh_seconds)
    if isinstance(store, JsonFileOrderStore):
        store.start_autosave(settings.autosave_seconds)

    app.state.order_service = service
    logger.info(f"🚀 {settings.business_name} orders API ready ({store.name})")
    logger.info(f"📦 Loaded {count} existing orders, next order number: {await store.get_counter()}")
    logger.info(f"📧 Email notifications: {'✅ Configured' if service.notifier.configured else '❌ Not configured'}")

    yield  # app runs here

    logger.info("🛑 Shutting down")
    await cache.stop_refresher()
    await service.drain_notifications()
    try:
        await store.close()
    except StorageUnavailableError:
        logger.error("❌ Error saving data during shutdown")
    shutdown_executor()


# ── App Factory ─────────────────────────────────────────────────────

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="EcoSpin Orders API",
        description="Laundry pickup/delivery orders with manual M-Pesa payment reconciliation",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # ── Routes ──────────────────────────────────────────────────────
    app.include_router(orders.router)
    app.include_router(health.router)
    app.include_router(exports.router)

    # ── Exception Handlers ──────────────────────────────────────────

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all for unhandled exceptions.

        Never return raw exception details to clients; the full traceback
        is logged server-side.
        """
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_response("internal_server_error", "Internal server error"),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        """
        Malformed bodies get the same 400 envelope as the service's own
        validation errors, not FastAPI's bare 422 detail list.
        """
        errors = [
            {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        if errors:
            first = errors[0]
            field = ".".join(p for p in first["loc"] if p != "body") or "body"
            message = f"Validation error on {field}: {first['msg']}"
        else:
            message = "Invalid request"
        logger.warning(f"⚠️  Rejected request to {request.url.path}: {message}")
        return JSONResponse(
            status_code=400,
            content=error_response("validation_error", message, {"errors": errors}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc: StarletteHTTPException):
        """
        Standardize HTTP errors for the order form and admin dashboard.

        Keeps the original HTTP status code, but wraps the payload.
        """
        if isinstance(exc, DomainError):
            return JSONResponse(
                status_code=exc.status_code,
                content=error_response(error_code_for(exc), exc.message, exc.details),
            )

        detail = exc.detail
        if exc.status_code == 404 and detail == "Not Found":
            detail = "Endpoint not found"
        message = detail if isinstance(detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(
                "http_error", message, detail if not isinstance(detail, str) else None
            ),
        )

    # ── Static Files (order form + admin dashboard) ─────────────────

    public_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "public")
    if os.path.exists(public_dir):
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


app = create_app()


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")

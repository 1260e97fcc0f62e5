# produce/main.py
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .cache import KeyValueCache, make_backend
from .config import Settings, get_settings, setup_logging
from .core import ApiResponse, ProductIn
from .database import Database
from .errors import ImportValidationError, StoreError
from .health import HealthService
from .importer import ImportService, parse_items
from .models import Category, Unit
from .services import CategoryService, build_services

logger = logging.getLogger(__name__)


def _envelope(status_code: int, success: bool, message: str, data: Any = None, errors=None) -> JSONResponse:
    body = ApiResponse(success=success, message=message, data=data, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    cache_backend: Optional[KeyValueCache] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    db = db or Database(settings.database_path)
    cache_backend = cache_backend or make_backend(
        settings.cache_backend, settings.redis_url, settings.socket_timeout
    )

    services: Dict[Category, CategoryService] = build_services(db, cache_backend, ttl=settings.cache_ttl)
    importer = ImportService(services)
    health = HealthService(db, cache_backend, environment=settings.environment)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.init_schema()
        logger.info("produce-store starting (env=%s, cache=%s, ttl=%ss)",
                    settings.environment, settings.cache_backend, settings.cache_ttl)
        yield

    app = FastAPI(title="produce-store", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.db = db
    app.state.services = services

    @app.exception_handler(RequestValidationError)
    async def validation_failed(request: Request, exc: RequestValidationError):
        errors = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
            errors.append(f"{'.'.join(loc)}: {err['msg']}" if loc else err["msg"])
        return _envelope(400, False, "Validation failed", errors=errors)

    def _service(category: str) -> CategoryService:
        try:
            return services[Category.from_plural(category)]
        except ValueError:
            raise HTTPException(status_code=404, detail=f"unknown category: {category}")

    # ---------------------------
    # Health
    # ---------------------------
    @app.get("/health")
    def get_health():
        return health.check()

    # ---------------------------
    # Import endpoints
    # ---------------------------
    @app.post("/api/import")
    def import_products(payload: Any = Body(...)):
        try:
            items = parse_items(payload)
        except ImportValidationError as e:
            return _envelope(400, False, "Validation failed", errors=[str(e)])
        result = importer.import_items(items)
        data = {"imported_count": result.imported_count, "errors": result.errors}
        if result.errors:
            return _envelope(200, False, "Import completed with errors", data=data, errors=result.errors)
        return _envelope(200, True, f"Successfully imported {result.imported_count} products", data=data)

    @app.post("/api/file_content")
    def preview_import(payload: Any = Body(...)):
        try:
            items = parse_items(payload)
        except ImportValidationError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        return importer.process(items)

    # ---------------------------
    # Category endpoints
    # ---------------------------
    @app.get("/api/{category}")
    def list_products(category: str, search: Optional[str] = None, unit: Unit = Unit.GRAMS):
        service = _service(category)
        label = service.category.label
        try:
            data = service.list(search or None, unit)
        except StoreError as e:
            logger.error("listing %s failed: %s", category, e)
            return _envelope(500, False, f"Failed to retrieve {category}: {e}", errors=[str(e)])
        return _envelope(200, True, f"{label}s retrieved successfully", data=data)

    @app.post("/api/{category}", status_code=201)
    def add_product(category: str, payload: ProductIn):
        service = _service(category)
        label = service.category.label
        try:
            data = service.add(payload.name, payload.quantity, payload.unit)
        except ValueError as e:
            return _envelope(400, False, "Validation failed", errors=[str(e)])
        except StoreError as e:
            logger.error("adding %s failed: %s", service.category.value, e)
            return _envelope(500, False, f"Failed to add {service.category.value}: {e}", errors=[str(e)])
        return _envelope(201, True, f"{label} added successfully", data=data)

    @app.delete("/api/{category}/{product_id}")
    def remove_product(category: str, product_id: int):
        service = _service(category)
        label = service.category.label
        try:
            removed = service.remove(product_id)
        except StoreError as e:
            logger.error("removing %s #%d failed: %s", service.category.value, product_id, e)
            return _envelope(500, False, f"Failed to remove {service.category.value}: {e}", errors=[str(e)])
        if not removed:
            return _envelope(404, False, f"{label} not found")
        return _envelope(200, True, f"{label} removed successfully")

    return app


_default_app: Optional[FastAPI] = None


def __getattr__(name: str):
    # `uvicorn produce.main:app` builds the app from the environment on first
    # access, so importing create_app never reads settings
    global _default_app
    if name == "app":
        if _default_app is None:
            _default_app = create_app()
        return _default_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

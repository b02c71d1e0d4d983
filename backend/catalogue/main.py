import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalogue.api.health import router as health_router
from catalogue.api.routes_categories import router as categories_router
from catalogue.api.routes_products import router as products_router
from catalogue.api.routes_variants import router as variants_router
from catalogue.config import Settings, settings as default_settings
from catalogue.db import Database
from catalogue.db.seed import seed_catalogue
from catalogue.logging_setup import configure_logging

log = logging.getLogger("catalogue")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    cfg: Settings = app.state.settings
    db: Database = app.state.db
    db.init_db(reset=cfg.RESET_DB)
    if cfg.SEED_ON_STARTUP:
        session = db.session()
        try:
            seed_catalogue(session)
        finally:
            session.close()
    log.info("Catalogue API ready (database %s)", db.url)

    try:
        yield
    finally:
        db.dispose()
        log.info("Catalogue API stopped")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{where}: {first.get('msg')}" if where else str(first.get("msg"))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    cfg = settings or default_settings
    configure_logging(cfg.LOG_LEVEL)

    app = FastAPI(title="Product Catalogue - Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.db = Database(cfg.DATABASE_URL, echo=cfg.DB_ECHO)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api", tags=["health"])
    app.include_router(products_router, prefix="/api/products", tags=["products"])
    app.include_router(variants_router, prefix="/api/variants", tags=["variants"])
    app.include_router(categories_router, prefix="/api/categories", tags=["categories"])

    # every error leaves as JSON with an "error" key

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        content = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal error"})

    return app


app = create_app()

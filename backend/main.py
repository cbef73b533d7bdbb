import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware

from core.auth import CredentialProvider, SessionRegistry, StaticCredentialProvider
from core.config import settings
from core.errors import InventoryError
from core.logging import add_context, clear_context, configure_logging
from core.service import InventoryService
from db.database import create_db_and_tables, engine as default_engine
from db.store import RecordStore
from routers.auth import router as auth_router
from routers.inventory import router as inventory_router
from routers.settings import router as settings_router

logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        clear_context()
        add_context(request_id=request_id, method=request.method, path=request.url.path)
        start = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            logger.info("request", status_code=status_code, latency_ms=int((time.time() - start) * 1000))
            clear_context()


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": type(exc).__name__,
            "title": exc.title,
            "status": exc.status_code,
            "detail": exc.detail,
        },
        media_type="application/problem+json",
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


def create_app(
    engine: Optional[AsyncEngine] = None,
    credential_provider: Optional[CredentialProvider] = None,
    store_timeout: Optional[float] = None,
) -> FastAPI:
    engine = engine or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_db_and_tables(engine)
        store = RecordStore(async_sessionmaker(engine, expire_on_commit=False), timeout=store_timeout)
        app.state.inventory = InventoryService(store)
        await app.state.inventory.load_all()
        logger.info("Inventory API ready", items=len(app.state.inventory.cache))
        yield
        await engine.dispose()

    app = FastAPI(
        title="Inventory API",
        description="Two-location stock tracking with a change log",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.sessions = SessionRegistry(credential_provider or StaticCredentialProvider())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(InventoryError, inventory_error_handler)

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
    app.include_router(settings_router, prefix="/settings", tags=["settings"])

    @app.get("/health")
    async def health():
        inventory = getattr(app.state, "inventory", None)
        return {
            "status": "ok",
            "items": len(inventory.cache) if inventory is not None else 0,
        }

    return app


configure_logging()
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)

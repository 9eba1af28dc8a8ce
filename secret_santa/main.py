from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import get_db, init_db, ping
from .errors import SantaError

from .api.admin import router as admin_router
from .api.assign import router as assign_router
from .api.organization import router as organization_router

logger = logging.getLogger(__name__)


def _error_body(detail: Any, code: str) -> Dict[str, Any]:
    return {"detail": detail, "code": code}


def _install_error_handlers(app: FastAPI) -> None:
    """
    Every failure leaves as {"detail", "code"} so the UI can tell
    "not allowed" from "nobody left to draw" from a server fault.
    """

    @app.exception_handler(SantaError)
    async def _santa_error(request: Request, exc: SantaError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))

    # Starlette's class, so unmatched routes (404/405) are covered too
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail, "http_error"))

    # Body/query schema failures keep FastAPI's per-field list as detail
    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content=_error_body(jsonable_encoder(exc.errors()), "request_invalid"))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Secret Santa API",
        version=settings.app_version,
        # Interactive docs only outside production
        docs_url=None if settings.is_prod else "/docs",
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_db()

    _install_error_handlers(app)

    @app.get("/health", tags=["meta"])
    def health(db: Session = Depends(get_db)) -> Dict[str, Any]:
        db_ok = ping(db)
        return {"ok": db_ok, "env": settings.env, "database": "up" if db_ok else "down"}

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"name": settings.app_name, "version": settings.app_version}

    for router in (assign_router, admin_router, organization_router):
        app.include_router(router)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    import uvicorn

    # Tables are created by the startup hook, not here
    uvicorn.run(
        "secret_santa.main:app",
        host=settings.host,
        port=int(settings.port),
        reload=bool(settings.reload),
    )

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sweet_shop import __version__
from sweet_shop.auth.crud import bootstrap_admin_if_needed
from sweet_shop.config import Config, load_config
from sweet_shop.db import init_db
from sweet_shop.errors import ApiError, AuthError, ValidationError

from .auth_routes import auth_router
from .sweet_routes import sweet_router


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into [{field, message}], dropping the 'body'/'query' prefix."""
    out: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        msg = str(err.get("msg") or "Invalid value")
        # pydantic prefixes messages raised from custom validators.
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        out.append({"field": ".".join(loc), "message": msg})
    return out


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        err = ValidationError(errors=_validation_errors(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # Never echo driver messages / tracebacks to clients.
        _debug(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
        return JSONResponse(status_code=500, content={"status": "error", "message": "Internal server error"})


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    """Application factory. Tests pass their own Config (temp DB, fixed JWT secret)."""

    cfg = cfg or load_config()
    app = FastAPI(title="Sweet Shop API", version=__version__)
    # Auth deps and routes read config from here.
    app.state.cfg = cfg

    # CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
    origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    _register_error_handlers(app)

    @app.on_event("startup")
    def _on_startup() -> None:
        init_db(cfg.DB_DSN)

        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')}")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(sweet_router, prefix="/api/sweets")
    return app


app = create_app()

"""FastAPI application factory for the reference remote items service."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from offsync.db.engine import get_service_engine
from offsync.api.routes import health, items


def create_app() -> FastAPI:
    """Build and return the FastAPI app."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup (idempotent)
        get_service_engine()
        yield

    app = FastAPI(
        title="Offsync Items API",
        description="Authoritative record store for offline-first clients",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Every response, errors included, uses the {success, error} envelope.
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(request: Request, exc: RequestValidationError):
        if request.url.path.endswith("/sync"):
            error = "Invalid request: items array required"
        else:
            error = "Invalid request body"
        return JSONResponse(status_code=400, content={"success": False, "error": error})

    app.include_router(items.router, prefix="/items", tags=["items"])
    app.include_router(health.router, prefix="/health", tags=["health"])

    return app


# Module-level app instance for uvicorn
app = create_app()

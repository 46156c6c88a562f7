"""
Emerald Yield Simulator - FastAPI application.
Server-rendered rental yield simulator with a data-driven occupancy prediction
and an admin view over stored simulations.
"""
import asyncio
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.admin.router import router as admin_router
from app.core.config import settings
from app.core.database import init_db
from app.core.logger import logger
from app.prediction.service import PredictionService
from app.web_routes import router as web_router, templates


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management (startup/shutdown hooks)."""
    # Startup
    logger.info(f"Initializing {settings.APP_NAME} v{settings.VERSION}")
    init_db()
    logger.info("Database initialized")

    warmup = None
    if settings.DATASET_WARMUP:
        # Runs in the background so a slow download never delays startup
        warmup = asyncio.create_task(app.state.prediction_service.initialize_dataset())

    yield

    # Shutdown
    if warmup is not None and not warmup.done():
        warmup.cancel()
    logger.info("Shutting down application")


# FastAPI Application Factory
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Rental yield simulator with dataset-backed occupancy predictions.",
    lifespan=lifespan
)

# Dataset cache shared by every request of this process
app.state.prediction_service = PredictionService.from_settings()

# Trust X-Forwarded-Proto headers from the reverse proxy
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")


# Middleware for distributed tracing and logging
@app.middleware("http")
async def add_correlation_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Middleware for distributed tracing.
    Injects a unique Correlation ID into the request context and propagates it to the response headers.
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id

    start_time = time.time()

    logger.info(
        f"Request: {request.method} {request.url.path}",
        extra={"correlation_id": correlation_id}
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        f"Response: {response.status_code} | {process_time:.3f}s",
        extra={"correlation_id": correlation_id}
    )

    return response


# Mount Static Files
static_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
app.mount("/static", StaticFiles(directory=static_dir), name="static")

# Router Registration
app.include_router(web_router, tags=["Web UI"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])


@app.get("/health", tags=["Health"])
def health_check(request: Request) -> Dict[str, Any]:
    """
    Liveness probe endpoint. Reports the dataset state without triggering a load.
    """
    state = request.app.state.prediction_service.state
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.VERSION,
        "dataset": "not_loaded" if state is None else ("available" if state.available else "unavailable")
    }


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def _render_error(request: Request, status_code: int, title: str, message: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"title": title, "message": message, "status_code": status_code},
        status_code=status_code
    )


# Global Exception Handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle HTTP exceptions: error page for browsers, JSON for everything else.
    """
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.info(
        f"HTTPException: {exc.status_code} | {exc.detail}",
        extra={"correlation_id": correlation_id}
    )

    if _wants_html(request):
        title = "Not Found" if exc.status_code == 404 else "Error"
        return _render_error(request, exc.status_code, title, str(exc.detail))

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "correlation_id": correlation_id}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception barrier.
    Captures unhandled exceptions, logs stack traces with Correlation IDs,
    and returns a sanitized 500 Internal Server Error response.
    """
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"correlation_id": correlation_id}
    )

    if _wants_html(request):
        return _render_error(request, 500, "Error", "An error occurred. Please try again later.")

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal Server Error",
            "correlation_id": correlation_id
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",  # nosec
        port=8000,
        reload=settings.DEBUG
    )

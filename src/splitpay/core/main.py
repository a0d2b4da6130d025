"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from splitpay.api import dashboard, users
from splitpay.api.v1 import auth
from splitpay.core.database import init_db
from splitpay.core.dependencies import get_engine, get_settings
from splitpay.core.errors import SplitPayError
from splitpay.plugins.mercadopago import create_mercadopago_router

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("api")


# Request tracing middleware
class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Request tracing middleware."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        # Query strings are left out: the OAuth callback carries the authorization code
        logger.info("Request: %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("Response status: %s", response.status_code)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan for the FastAPI application."""
    logger.info("Initializing database...")
    init_db(get_engine())
    logger.info("Database initialized successfully!")
    yield


app = FastAPI(
    title="SplitPay API",
    description="Marketplace split payments on Mercado Pago",
    version="1.0.0",
    lifespan=lifespan,
)

# Add request tracing middleware
app.add_middleware(RequestTracingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(SplitPayError)
async def split_pay_error_handler(request: Request, exc: SplitPayError) -> JSONResponse:
    """Translate service errors into JSON bodies with the matching status code."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.detail
        )
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are client errors like any other validation failure."""
    logger.info("%s %s rejected: invalid request body", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request.", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


# Include routers
app.include_router(create_mercadopago_router())
app.include_router(dashboard.router)
app.include_router(users.router)
app.include_router(auth.router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {"message": "Welcome to the SplitPay API"}


def run() -> None:
    """Serve the application on the configured port."""
    settings = get_settings()
    logger.info("Server running on port %s", settings.port)
    logger.info("Expected callback URL: %s", settings.redirect_uri)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()

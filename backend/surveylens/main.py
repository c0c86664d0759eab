"""
SurveyLens Backend — FastAPI Application Factory

App creation, middleware (CORS, rate limiting, request ID logging), router registration.
Run with: uvicorn surveylens.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from surveylens.api import analysis, personas, surveys
from surveylens.config import log, settings

VERSION = "0.1.0"

# Rate limiter: global, per-IP
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Log the X-Request-Id header from every incoming request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id", "none")
        log(
            "INFO",
            "request received",
            method=request.method,
            path=request.url.path,
            request_id=request_id,
        )
        response = await call_next(request)
        return response


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Steps:
        1. Create FastAPI instance with title, version, description
        2. Add CORS middleware (origins from settings.cors_origins)
        3. Add request ID logging middleware
        4. Add rate limiting (slowapi, default limit from settings.rate_limit)
        5. Register routers (analysis, surveys) and the health check
        6. Return the app
    """
    app = FastAPI(
        title="SurveyLens API",
        version=VERSION,
        description="Product validation surveys: statistics, segment patterns, and launch recommendations.",
    )

    # CORS
    origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID logging
    app.add_middleware(RequestIdMiddleware)

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Routers
    app.include_router(analysis.router)
    app.include_router(personas.router)
    app.include_router(surveys.router)

    @app.get("/api/health")
    async def health_check():
        """
        GET /api/health

        Returns: { "status": "ok", "version": "0.1.0" }
        """
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()

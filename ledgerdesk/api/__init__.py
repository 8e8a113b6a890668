"""
LedgerDesk API Application Factory

REST surface over the reservation desk and the ATM ledger. Domain errors
are mapped to HTTP status codes in one place.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..errors import (
    AlreadyExistsError, AuthenticationError, ForbiddenError,
    InsufficientFundsError, NotFoundError, StorageError, ValidationError
)
from ..logging_config import get_logger
from ..services import LedgerDeskServices
from .atm import router as atm_router
from .auth import router as auth_router
from .reservations import router as reservations_router, trains_router


ERROR_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    AlreadyExistsError: 409,
    InsufficientFundsError: 409,
    StorageError: 503,
}


def _register_error_handlers(app: FastAPI) -> None:
    logger = get_logger("ledgerdesk.api")

    def make_handler(status_code: int):
        async def handler(request: Request, exc: Exception):
            if status_code >= 500:
                logger.error(f"{request.method} {request.url.path} failed: {exc}")
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
        return handler

    for error_type, status_code in ERROR_STATUS_CODES.items():
        app.add_exception_handler(error_type, make_handler(status_code))


def create_app(services: Optional[LedgerDeskServices] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="LedgerDesk API",
        description="Train reservation desk and ATM account ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.services = services or LedgerDeskServices()

    _register_error_handlers(app)

    # Include routers
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(trains_router, prefix="/trains", tags=["Trains"])
    app.include_router(reservations_router, prefix="/reservations", tags=["Reservations"])
    app.include_router(atm_router, prefix="/atm", tags=["ATM"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "ledgerdesk_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "LedgerDesk API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": "/auth",
                "trains": "/trains",
                "reservations": "/reservations",
                "atm": "/atm",
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "ledgerdesk.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )

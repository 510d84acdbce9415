"""
Loanbook API Application Factory
"""

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from ..logging_config import setup_logging
from .clients import router as clients_router
from .loans import router as loans_router
from .reports import router as reports_router


logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (PermissionDenied, 403),
    (ConflictError, 409),
)


def _register_error_handlers(app: FastAPI) -> None:
    for exc_class, status_code in ERROR_STATUS_CODES:
        async def handler(request: Request, exc: Exception, status_code: int = status_code):
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, status_code, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(exc_class, handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format, log_file=config.log_file)

    app = FastAPI(
        title="Loanbook API",
        description="Short-term cash loans: clients, repayment plans, collections",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    app.include_router(clients_router, prefix="/clients", tags=["Clients"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loanbook_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = None, port: int = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "loanbook.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )

"""
Stock Ledger FastAPI Main Application
Entry point for the inventory reconciliation REST API
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stockledger.api.v1.api_router import api_router
from stockledger.core.config import settings
from stockledger.core.database import check_db_connection, init_db
from stockledger.core.exceptions import InventoryException, StorageError
from stockledger.core.logging import get_logger, setup_logging
from stockledger.schemas.common import ErrorResponse

logger = get_logger("api")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Inventory Reconciliation & Stock Ledger

    Multi-tenant warehouse inventory tracking.

    - **Incoming inventory**: receipts with received, short and rejected quantities
    - **Outgoing inventory**: dispatches with strict stock checks
    - **Stock ledger**: one stock-on-hand counter per SKU with a movement journal
    - **Price history**: current, previous and lowest purchase price per SKU
    - **Reports**: rejected item and short item reports

    Every request is scoped to a company through the `X-Company-Id` header.
    """,
    docs_url=settings.DOCS_URL,
    openapi_url=settings.OPENAPI_URL,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


@app.on_event("startup")
async def startup_event():
    """
    Application startup tasks

    Configure logging, verify the database and create tables
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")

    init_db()
    logger.info("Application startup completed successfully")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


@app.exception_handler(InventoryException)
async def inventory_exception_handler(request: Request, exc: InventoryException):
    """
    Map inventory errors to HTTP responses

    Every error here was raised after a full rollback.
    """
    if isinstance(exc, StorageError):
        logger.error(
            f"{request.method} {request.url.path} storage failure in {exc.operation} "
            f"({exc.original_error_class}) {exc.context}"
        )
        detail = exc.message if settings.DEBUG else "A storage error occurred, nothing was changed"
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        detail = exc.message

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=type(exc).__name__, detail=detail, type="inventory_error").model_dump()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if settings.DEBUG else "An unexpected error occurred",
            type="server_error",
        ).model_dump()
    )


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stockledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )

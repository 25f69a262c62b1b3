"""
Main FastAPI Application Entry Point
Fund Approval System
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import asyncio
import time

from fund_approval.config.settings import settings
from fund_approval.config.database import engine, Base
from fund_approval.utils.exceptions import (
    FundApprovalError,
    ApprovalRoutingError,
    NotFoundError,
    PermissionDeniedError,
    InvalidTransitionError,
    ValidationError,
    FinalReceiverAlreadyCompletedError,
)
from fund_approval.utils.logger import setup_logger
from fund_approval.middleware.logging_middleware import LoggingMiddleware
from fund_approval.services.outbox_worker import run_outbox_worker

# Import routes
from fund_approval.routes import fund_request as fund_request_routes
from fund_approval.routes import approval as approval_routes
from fund_approval.routes import delegation as delegation_routes
from fund_approval.routes import final_receiver as final_receiver_routes

# Setup logger
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for application startup and shutdown
    """
    # Startup
    logger.info("Starting Fund Approval System...")

    # Create database tables
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {str(e)}")

    stop_event = asyncio.Event()
    worker = None
    if settings.EMAIL_OUTBOX_WORKER_ENABLED:
        worker = asyncio.create_task(run_outbox_worker(stop_event))

    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Fund Approval System...")
    if worker is not None:
        stop_event.set()
        await worker


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Designation-based fund request approval routing",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)


def _error_body(exc: FundApprovalError) -> dict:
    return {
        "success": False,
        "code": exc.code,
        "message": exc.message
    }


# Exception handlers
@app.exception_handler(ApprovalRoutingError)
async def routing_exception_handler(request: Request, exc: ApprovalRoutingError):
    """Approver could not be resolved: problem details body"""
    logger.warning(f"Approver resolution failed: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "title": "Approver resolution failed",
            "status": status.HTTP_422_UNPROCESSABLE_ENTITY,
            "detail": exc.message,
            "code": exc.code
        }
    )


_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (FinalReceiverAlreadyCompletedError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


@app.exception_handler(FundApprovalError)
async def fund_approval_exception_handler(request: Request, exc: FundApprovalError):
    """Map domain errors to HTTP status codes"""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=_error_body(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation error",
            "errors": [
                {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ]
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


# Include routers
app.include_router(fund_request_routes.router, prefix="/api/fund-requests", tags=["Fund Requests"])
app.include_router(approval_routes.router, prefix="/api/approvals", tags=["Approvals"])
app.include_router(delegation_routes.router, prefix="/api/delegations", tags=["Delegations"])
app.include_router(final_receiver_routes.router, prefix="/api/final-receiver", tags=["Final Receiver"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fund_approval.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )

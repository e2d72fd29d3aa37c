"""
Main FastAPI application entry point for the Contact Reconciliation Service
This file sets up the FastAPI application with configuration, middleware,
exception handlers and endpoints. It serves as the entry point for both
local development (uvicorn) and AWS Lambda deployment (lambda_handler.py).
"""

import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import settings
from exceptions import DataIntegrityError, ReconciliationError
from schemas.identify import ErrorResponse, IdentifyRequest, IdentifyResponse
from services.identity_service import IdentityService, identity_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def get_identity_service() -> IdentityService:
    """Dependency providing the process-wide identity service"""
    return identity_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await identity_service.db_manager.create_tables()
    yield
    await identity_service.db_manager.dispose()


# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def _validation_error_response(request: Request, errors) -> JSONResponse:
    logger.warning(f"Validation error for {request.url}: {errors}")

    error_details = []
    for error in errors:
        error_details.append({
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    error_response = ErrorResponse(
        error="ValidationError",
        message="Request validation failed",
        details={"errors": error_details}
    )

    return JSONResponse(
        status_code=400,
        content=error_response.model_dump()
    )


# Exception handlers
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body validation errors"""
    return _validation_error_response(request, exc.errors())


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors"""
    return _validation_error_response(request, exc.errors())


@app.exception_handler(ReconciliationError)
async def reconciliation_exception_handler(request: Request, exc: ReconciliationError):
    """Map reconciliation failures to 503 (retryable) or 500 (fatal)"""
    details = {"stage": exc.stage}

    if exc.retryable:
        logger.warning(f"Retryable reconciliation failure for {request.url}: {exc}")
        error_response = ErrorResponse(
            error=type(exc).__name__,
            message="The request could not be completed right now. Please try again later.",
            retryable=True,
            details=details
        )
        return JSONResponse(
            status_code=503,
            content=error_response.model_dump(),
            headers={"Retry-After": "1"}
        )

    logger.error(f"Reconciliation failure for {request.url}: {exc}")
    if isinstance(exc, DataIntegrityError):
        message = "Stored contact links are inconsistent"
    else:
        message = "Unable to process identity reconciliation request"

    error_response = ErrorResponse(
        error=type(exc).__name__,
        message=message,
        details=details
    )
    return JSONResponse(
        status_code=500,
        content=error_response.model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.error(f"Unexpected error for {request.url}: {exc}")
    logger.error(f"Traceback: {traceback.format_exc()}")

    error_response = ErrorResponse(
        error="InternalServerError",
        message="An unexpected error occurred"
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump()
    )


@app.get("/")
async def root():
    """
    Root endpoint that returns basic API information
    """
    return {
        "message": "Contact Reconciliation API is running",
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check(service: IdentityService = Depends(get_identity_service)):
    """
    Health check endpoint for monitoring and load balancer health checks
    """
    connected = await service.db_manager.test_connection()

    return {
        "status": "healthy" if connected else "degraded",
        "environment": settings.ENVIRONMENT,
        "version": settings.API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "lambda": settings.is_lambda_environment(),
        "database": {
            "status": "connected" if connected else "disconnected"
        }
    }


@app.post("/identify", response_model=IdentifyResponse)
async def identify_endpoint(
    request: IdentifyRequest,
    service: IdentityService = Depends(get_identity_service)
):
    """
    Main identity reconciliation endpoint

    Links customer identities based on email and/or phone number.
    Returns consolidated contact information including all linked emails,
    phone numbers, and secondary contact IDs.

    **Algorithm:**
    1. Find existing contacts matching email or phone
    2. If no matches → create new primary contact
    3. If matches found → determine linking strategy:
       - New information → create secondary contact
       - Link two primaries → convert newer to secondary
    4. Return consolidated contact information

    **Examples:**
    - New customer: Creates primary contact
    - Existing email + new phone: Creates secondary contact
    - Two existing primaries with shared info: Links them (older remains primary)
    """
    logger.info(f"Processing identify request: email={request.email}, phone={request.phoneNumber}")

    response = await service.identify_contact(request)

    logger.info(f"Successfully processed request. Primary contact ID: {response.contact.primaryContatctId}")

    return response


# This is the proper way to run the application using uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1  # The keyed mutex only serializes requests within one process
    )

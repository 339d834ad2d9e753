"""
Main FastAPI application entry point for Identity Reconciliation System
This file sets up the FastAPI application with proper configuration,
middleware, error mapping and health check endpoints. It serves as the main
entry point for both local development and AWS Lambda deployment.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from datetime import datetime, timezone

from schemas.identify import IdentifyRequest, IdentifyResponse, ErrorResponse
from services import errors
from services.identity_service import identity_service
from database import db_manager
from config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def error_response(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Exception handlers
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies"""
    logger.warning(f"Validation error for {request.url}: {exc}")

    error_details = []
    for error in exc.errors():
        error_details.append({
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    return error_response(400, "ValidationError", "Request validation failed", {"errors": error_details})


@app.exception_handler(errors.ValidationError)
async def identity_validation_exception_handler(request: Request, exc: errors.ValidationError):
    """Handle submissions without any identifier"""
    logger.warning(f"Rejected submission for {request.url}: {exc}")
    return error_response(400, "ValidationError", str(exc))


@app.exception_handler(errors.StoreTimeoutError)
async def store_timeout_exception_handler(request: Request, exc: errors.StoreTimeoutError):
    """Store timeouts are transient; clients may retry"""
    logger.error(f"Store timeout for {request.url}: {exc}")
    return error_response(503, "StoreTimeoutError", "Contact store did not respond in time, please retry")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors, including corrupt identity groups"""
    logger.error(f"Unexpected error for {request.url}: {exc}", exc_info=exc)
    return error_response(500, "InternalServerError", "An unexpected error occurred")


@app.get("/")
async def root():
    """
    Root endpoint that returns basic API information
    """
    return {
        "status": "ok",
        "message": "Identity Reconciliation API is running",
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer health checks
    """
    db_connected = await db_manager.test_connection()

    return {
        "status": "healthy" if db_connected else "degraded",
        "environment": settings.ENVIRONMENT,
        "version": settings.API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "lambda": settings.is_lambda_environment(),
        "database": {
            "status": "connected" if db_connected else "disconnected",
            "dialect": db_manager.dialect_name
        }
    }


@app.post("/identify", response_model=IdentifyResponse)
async def identify_endpoint(request: IdentifyRequest):
    """
    Main identity reconciliation endpoint

    Links customer identities based on email and/or phone number.
    Returns consolidated contact information including all linked emails,
    phone numbers, and secondary contact IDs.

    **Algorithm:**
    1. Find existing contacts matching email or phone
    2. If no matches → create new primary contact
    3. If matches span several primaries → merge them (oldest remains primary)
    4. If matches share one primary and bring new information → create secondary contact
    5. Return consolidated contact information
    """
    logger.info(f"Processing identify request: email={request.email}, phone={request.phoneNumber}")

    response = await identity_service.identify_contact(request)

    logger.info(f"Successfully processed request. Primary contact ID: {response.contact.primaryContactId}")
    return response


# This is the proper way to run the application using uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1
    )

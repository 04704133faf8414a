"""
Renuga CRM API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from core.config import get_settings
from crm.errors import CRMError, InternalError

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Renuga CRM API starting up", version=settings.app_version)
    yield
    logger.info("Renuga CRM API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Calls, leads, orders and inventory for a roofing-materials distributor",
    lifespan=lifespan,
)


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if exc.status_code >= 500:
        logger.error("api.internal_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing fields are a 400, same as the update guard."""
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append({"field": location, "message": error.get("msg")})
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Storage and other unexpected failures never leak details to the caller."""
    logger.exception("api.unhandled_error", path=request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import (
    auth,
    call_logs,
    customers,
    dashboard,
    leads,
    orders,
    products,
    remark_logs,
    shift_notes,
    tasks,
    users,
)

app.include_router(auth.router)
app.include_router(call_logs.router)
app.include_router(leads.router)
app.include_router(orders.router)
app.include_router(products.router)
app.include_router(tasks.router)
app.include_router(customers.router)
app.include_router(users.router)
app.include_router(shift_notes.router)
app.include_router(remark_logs.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}

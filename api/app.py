"""
FastAPI application for lead analytics and workflow automation.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from api.routes import router
from config import settings
from history import NotFoundError
from observability import trace_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown."""
    # Startup
    trace_logger.info("Starting Lead Analytics API")
    settings.validate_outbound()

    yield

    # Shutdown
    trace_logger.info("Shutting down Lead Analytics API")


app = FastAPI(
    title="Lead Analytics & Workflow Automation",
    description="Lead journeys, attribution, funnel analytics, prioritization and workflow rules",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    trace_logger.warning("Rejected request", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Lead Analytics & Workflow Automation",
        "version": "1.0.0",
        "status": "operational"
    }

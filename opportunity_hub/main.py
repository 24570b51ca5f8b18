"""
Opportunity Hub - Main Application

FastAPI backend with:
- PostgreSQL for structured data (SQLite in tests)
- MongoDB archive of raw ingested internship postings
- JWT authentication with user, member and admin roles
- Razorpay checkout for paid toolkits

Run: uvicorn opportunity_hub.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from opportunity_hub import __version__
from opportunity_hub.api.routes import api_router
from opportunity_hub.core.config import get_settings
from opportunity_hub.core.logging_config import configure_logging
from opportunity_hub.db.mongodb import init_mongo_indexes, test_mongo_connection
from opportunity_hub.db.postgres import test_postgres_connection
from opportunity_hub.db.schema import init_schema

settings = get_settings()

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Opportunity Hub",
    description="""
    Backend for a student opportunity platform.

    ## Features
    - **Internships**: Listings, filters, bulk ingest from scrapers, fit scores
    - **Opportunities**: Community-posted hackathons, grants and competitions with upvotes and comments
    - **Bookmarks & Tracker**: Deadline-grouped bookmarks and an application tracker
    - **Toolkits**: Paid course bundles with coupons and lesson progress
    - **Admin**: Moderation queues, roles and catalog management
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema failures are client errors: 400 with the pydantic error list."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables and MongoDB indexes."""
    init_schema()
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Opportunity Hub", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }

"""
Bootcamp Mentor Backend - FastAPI Application

Entry point for the mentorship API: student messaging, the mentor review
gate for agent drafts, engagement tooling and onboarding.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings, validate_required_settings
from database import get_db_manager
from auth.api import auth_routes
from mentorship.api import admin, agent, drafts, engagement, mentor, messages, students
from shared.api import health

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Validate configuration on startup
validate_required_settings()

# Initialize FastAPI app
app = FastAPI(
    title="Bootcamp Mentor Backend",
    description="Mentorship API where every agent-written reply waits for mentor approval",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(auth_routes.router)
app.include_router(messages.router)
app.include_router(drafts.router)
app.include_router(students.router)
app.include_router(mentor.router)
app.include_router(engagement.router)
app.include_router(admin.router)
app.include_router(agent.router)


@app.on_event("startup")
async def startup_event():
    """Create tables for local databases and validate the connection."""
    logger.info("Starting Bootcamp Mentor Backend...")

    db_manager = get_db_manager()
    if settings.environment == "development":
        db_manager.create_tables()

    if not db_manager.health_check():
        logger.warning("Database health check failed on startup")
    else:
        logger.info("Database connection healthy")

    logger.info("Application started successfully")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )

"""
PDCA Planner FastAPI Backend

This is the main entry point for the API server that exposes the
agent layer to the chat frontend.

Architecture:
- FastAPI handles HTTP routing and request/response validation
- Pydantic schemas ensure type safety
- Agents handle all business logic
- Database provides persistence via SQLite

Run with:
    uvicorn backend.main:app --reload --port 8000

Or:
    python -m backend.main
"""

import logging
import sys
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add project root to path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from backend.routers import goals_router, tasks_router, chat_router
from backend.dependencies import get_database, get_config
from pdca import __version__
from pdca.core.models import StructuredGoal

logger = logging.getLogger("backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs startup and shutdown tasks:
    - Startup: Open (and if needed create) the database
    - Shutdown: Clean up resources
    """
    # Startup
    try:
        db = get_database()
        config = get_config()
        logger.info(f"Database connected: {db.db_path}")
        logger.info(f"Config loaded from: {config.config_dir}")
    except Exception as e:
        # Allow app to start but endpoints will fail gracefully
        logger.error(f"Startup check failed: {e}")

    yield

    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="PDCA Planner API",
    description="""
    Goal-planning chat and goal tracking API.

    ## Features

    - **Chat**: Talk through a goal with the planning coach; goals named in
      the conversation come back in the `x-extracted-goal` header
    - **Goals**: Store goals with levels, date ranges, metrics and priorities
    - **Extract**: Turn one chat turn into a structured goal

    ## Extraction Examples

    - "目标：每天跑步30分钟" -> title "每天跑步30分钟", MONTHLY, 30-day range
    - "My goal is to read 12 books this year" -> YEARLY goal
    """,
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend access
# The header must be exposed or browsers hide it from the chat client
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",  # Alternative dev port
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[StructuredGoal.HEADER_NAME],
)

# Include routers
app.include_router(goals_router)
app.include_router(tasks_router)
app.include_router(chat_router)


@app.get("/")
async def root():
    """API root - returns basic info and available endpoints."""
    return {
        "name": "PDCA Planner API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "goals": "/goals",
            "extract": "/goals/extract",
            "tasks": "/tasks",
            "goal_chat": "/chat/goal",
            "plan_chat": "/chat",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        db = get_database()
        # Quick database check
        db.execute_one("SELECT 1")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


# Allow running directly with: python -m backend.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

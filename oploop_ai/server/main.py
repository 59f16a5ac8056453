"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
and includes all API routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oploop_ai.core.logging_config import get_logger, setup_logging
from oploop_ai.core.monitoring import initialize_logfire

from .api.v1 import chats, health
from .core import constant
from .core.database import init_db
from .exception_handlers import setup_exception_handlers

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates the database tables on startup.
    """
    try:
        logger.info("Starting up OpLoop-AI Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down OpLoop-AI Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    OpLoop-AI Server API

    This API provides chats with an autonomy mode. Assistant turns propose operations that run
    immediately when the mode allows it and wait for approval otherwise. Turns and approvals are
    streamed as Server-Sent Events.
    """,
    version="0.1.0",
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(chats.router, prefix=f"{constant.API_V1_STR}/chats", tags=["chats"])

"""
Database Connection and Session Management.

This module sets up the asynchronous SQLAlchemy engine and session factory
used by the chat repository.
"""

from oploop_ai.agent_core.repos.sql import create_all, create_engine, create_sessionmaker
from oploop_ai.server.core.config import settings

"""
engine:
    The global SQLAlchemy AsyncEngine instance.
    Configured with the connection URL from settings (Postgres via asyncpg or SQLite via aiosqlite).
"""
engine = create_engine(settings.database_url)

"""
async_session_maker:
    A global factory for creating new AsyncSession instances.
    Bound to the `engine` and configured to NOT expire on commit (typical for async).
"""
async_session_maker = create_sessionmaker(engine)




async def init_db():
    """
    Initialize the database.

    Creates all tables defined in the agent_core ORM metadata if they do not exist.
    """
    await create_all(engine)

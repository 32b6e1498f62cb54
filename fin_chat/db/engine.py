# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# DESIGN DECISION: Async SQLAlchemy Engine
# FastAPI is async, so all database work goes through SQLAlchemy's async
# engine with the asyncpg driver. Nothing in this service blocks the event
# loop on I/O.
#
# COMMIT POLICY:
# Two session patterns exist in this codebase:
#
# 1. Dependency-injected (get_async_session via Depends):
#    Auto-commits when the request handler returns, rolls back on error.
#    Used by the /api/chats routes.
#
# 2. Self-managed (async_session_factory() directly):
#    Used by the chat-history background task, which runs after the
#    response is sent and outside the request dependency lifecycle.
#    These MUST commit explicitly.
# =============================================================================

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fin_chat.config import settings

# ---------------------------------------------------------------------------
# Async Engine
# ---------------------------------------------------------------------------
# echo follows debug so SQL is logged during development only.
# Creating the engine does not connect; the first query does.
# ---------------------------------------------------------------------------
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# expire_on_commit=False: attributes stay readable after commit. Without
# it, touching a loaded object after commit triggers a lazy load, which
# fails outside the session in async code.
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session is committed when the handler returns and rolled back if
    it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create any missing tables (development convenience, no migrations)."""
    from fin_chat.db.models import Base

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

'''
Database Engine file.
1- Engine: creates and manages TCP Pool connections
2- AsyncSessionLocal: Session Creator (with engine as bind)
3- get_db_session: Dependency to create, yield and manage the life-cycle of a session.
'''
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, Any
from ..common.config import settings
from ..common.logger import log
from .models import Base

# We define them as None. They will be created by the app's lifespan.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and (
        parsed.database in (None, "", ":memory:") or parsed.query.get("mode") == "memory"
    )

def _engine_options(url: str) -> dict[str, Any]:
    """
    Pool options per backend.
    In-memory SQLite must share one connection (StaticPool). A file database keeps
    the default pool so every session gets its own connection and transaction.
    """
    if _is_memory_sqlite(url):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": -1,
        "pool_pre_ping": True,
    }

def create_db_engine_and_session_factory(url: str | None = None):
    """
    Creates the engine and session factory.
    This is called by the app's lifespan event (and by the maintenance scripts).
    """
    global engine, AsyncSessionLocal
    url = url or settings.database_url

    log.info("Creating database engine for URL...")
    try:

        # 1. Create the asynchronous engine
        engine = create_async_engine(url, echo=False, **_engine_options(url))
        
        # 2. Create the AsyncSessionLocal factory
        AsyncSessionLocal = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        log.info("Async database engine and session factory created successfully.")
    except Exception as e:
        log.critical(f"Failed to create async database engine: {e}", exc_info=True)
        raise

async def create_all_tables():
    """Creates every ledger table from the ORM metadata. Used for local dev and tests."""
    if engine is None:
        raise RuntimeError("Database engine is not available.")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database schema created from metadata.")

async def dispose_db_engine():
    """Disposes of the engine. Called by the app's lifespan."""
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
        log.info("Database engine disposed.")
    engine = None
    AsyncSessionLocal = None

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.
    
    This pattern ensures:
    1. A session is created from the factory for each request.
    2. The session is yielded to the route.
    3. The session is auto-committed if the request is successful.
    4. The session is auto-rolled-back if an exception occurs.
    5. The session is always closed after the request.

    Every ledger operation of one request therefore commits or fails as a unit.
    """
    if AsyncSessionLocal is None:
        log.error("AsyncSessionLocal is not initialized. App lifespan may not have run.")
        raise RuntimeError("Database session factory is not available.")

    session = AsyncSessionLocal() # Create a new session
    try:
        yield session
        await session.commit()  # Commit on successful request
    except Exception as e:
        await session.rollback() # Rollback on error
        log.error(f"Database session rolled back due to error: {e}")
        raise # Re-raise the exception so FastAPI can handle it
    finally:
        await session.close() # Always close the session

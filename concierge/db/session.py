# concierge/db/session.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from concierge.core.config import settings


def make_engine(uri: str | None = None, **kwargs) -> AsyncEngine:
    uri = uri or settings.async_db_uri
    if not uri.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)  # avoids stale connection errors
    return create_async_engine(uri, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,  # keep objects usable after commit
        class_=AsyncSession,
    )


# 1) Engine: one per process; nothing connects until first use
engine = make_engine()

# 2) Session factory: creates short-lived sessions per operation
AsyncSessionLocal = make_session_factory(engine)


# 3) Declarative Base: all models inherit from this
class Base(DeclarativeBase):
    pass

"""Standalone Session Factory — engine + sessionmaker for processes outside FastAPI.

Invariants:
    - Used by the one-off tick runner (mirrio.tick); the API uses DatabaseSessionManager
    - Caller owns the engine and must dispose it
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)


def create_session_factory(
    database_url: str,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(database_url, echo=False, pool_pre_ping=True)
    return engine, async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

"""
Base service class for the tournament stats bot.

Provides async database session management for service layer operations.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for all services with async database session management."""

    def __init__(self, session_factory):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self, session: Optional[AsyncSession] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope for async database operations.

        When a session is passed in, the caller owns its lifecycle and this
        context neither commits nor closes it.
        """
        if session is not None:
            yield session
            return

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

"""Host directory lookups for the visitor registration form."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from violation_ledger.core.errors import BackendUnavailableError
from violation_ledger.core.filters import prefix_range
from violation_ledger.models.host import Host

logger = logging.getLogger(__name__)


class HostService:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def list(self) -> List[Host]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(Host).order_by(Host.name))
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error fetching hosts: {e}")
            raise BackendUnavailableError("Failed to fetch hosts") from e

    async def search(self, term: str) -> List[Host]:
        """Hosts whose name starts with ``term``.

        If the range query fails, falls back to a case-insensitive substring
        match over the full host list.
        """
        term = term.strip()
        if not term:
            return await self.list()

        low, high = prefix_range(term)
        query = select(Host).where(Host.name >= low, Host.name <= high).order_by(Host.name)
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Host prefix search failed, filtering client-side: {e}")

        needle = term.lower()
        return [host for host in await self.list() if needle in host.name.lower()]


def get_host_service() -> HostService:
    from violation_ledger.database import async_session_maker

    return HostService(async_session_maker)

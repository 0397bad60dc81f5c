"""Durable client-side preferences (the `debug_events` flag)."""
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from occitanie_hub.core.database import AsyncSessionLocal
from occitanie_hub.models import PreferenceModel

DEBUG_KEY = "debug_events"


class DebugFlagStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    async def is_enabled(self) -> bool:
        async with self.session_factory() as session:
            preference = await session.get(PreferenceModel, DEBUG_KEY)
            return preference is not None and preference.value == "true"

    async def set_enabled(self, enabled: bool):
        async with self.session_factory() as session:
            if enabled:
                await session.merge(PreferenceModel(key=DEBUG_KEY, value="true"))
            else:
                await session.execute(delete(PreferenceModel).where(PreferenceModel.key == DEBUG_KEY))
            await session.commit()

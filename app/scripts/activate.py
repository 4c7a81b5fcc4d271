import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.services.registry import FieldRegistry, refresh_registry

log = logging.getLogger(__name__)


async def activate(db: AsyncSession) -> FieldRegistry:
    """Install-time step: build the field registry snapshot once."""
    registry = await refresh_registry(db)
    log.info("activation: registry holds %d fields", len(registry))
    return registry


async def main():
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    async with Session() as db:
        registry = await activate(db)
        print(f"Registry built: {len(registry)} fields")

    await engine.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())

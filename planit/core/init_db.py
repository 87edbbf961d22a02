from planit.core.database import engine, Base
import planit.models  # noqa: F401  registers every table on Base.metadata

async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

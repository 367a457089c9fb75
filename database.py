from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import config
import models  # registers the tables on SQLModel.metadata

# 1. Create the Async Engine
engine = create_async_engine(config.DATABASE_URL, echo=config.SQL_ECHO, future=True)

# 2. Session factory shared by the API and the ledger
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(bind=engine):
    async with bind.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session

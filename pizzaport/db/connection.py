from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine,async_sessionmaker,AsyncSession
from sqlmodel import SQLModel
from pizzaport.config.settings import Settings
from pizzaport.db.utils import _normalize_db_url


def build_engine(settings: Settings) -> AsyncEngine:
    """One engine (and its pool) per process , created in the app lifespan."""
    db_url = _normalize_db_url(settings.DATABASE_URL)
    return create_async_engine(db_url, echo=settings.DB_ECHO, pool_pre_ping=True)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_all_tables(engine: AsyncEngine) -> None:
    # registers every table on SQLModel.metadata
    import pizzaport.schema.full_schema  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class SingleStatementStore:
    """Base for PostgreSQL stores: each call opens its own session and runs
    exactly one statement, committed immediately. Nothing spans two records."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        self._session_factory = session_factory or async_session_factory

    async def _fetch_one(self, statement: object, params: dict[str, object]) -> object | None:
        async with self._session_factory() as db:
            result = await db.execute(statement, params)  # type: ignore[arg-type]
            row = result.fetchone()
            await db.commit()
        return row

    async def _fetch_all(self, statement: object, params: dict[str, object]) -> list[object]:
        async with self._session_factory() as db:
            result = await db.execute(statement, params)  # type: ignore[arg-type]
            return list(result.fetchall())

    async def _execute(self, statement: object, params: dict[str, object]) -> int:
        async with self._session_factory() as db:
            result = await db.execute(statement, params)  # type: ignore[arg-type]
            await db.commit()
        return result.rowcount  # type: ignore[attr-defined]

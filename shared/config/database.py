import asyncio
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from shared.config import settings
from shared.errors import TransactionTimeout

T = TypeVar("T")

engine_options = {"poolclass": NullPool} if settings.DB_POOL_DISABLED else {}
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, **engine_options)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def _apply_statement_timeout(db: AsyncSession, timeout: float | None) -> None:
    if timeout is None or db.bind.dialect.name != "postgresql":
        return
    # SET LOCAL dies with the transaction, so pooled connections stay clean
    await db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))


async def run_in_transaction(
    db: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
    timeout: float | None = None,
) -> T:
    """
    Runs `work` inside one database transaction.

    Commits when `work` returns, rolls back on any exception. With a timeout,
    the whole unit is cancelled and rolled back once it runs longer than
    `timeout` seconds, surfacing as TransactionTimeout.
    """
    if db.in_transaction():
        # Earlier reads autobegin a transaction; close it so `work` gets its own
        await db.commit()
    try:
        async with db.begin():
            await _apply_statement_timeout(db, timeout)
            if timeout is None:
                return await work(db)
            return await asyncio.wait_for(work(db), timeout)
    except asyncio.TimeoutError as exc:
        raise TransactionTimeout(timeout) from exc

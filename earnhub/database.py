"""
Database engine and session factories.

PostgreSQL runs at the configured isolation level (SERIALIZABLE by
default). SQLite gets BEGIN IMMEDIATE so every transaction holds the
write lock from its first statement, which gives serializable behaviour
between concurrent sessions.
"""

from loguru import logger
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from earnhub.config.settings import settings
from earnhub.config.vip_tiers import DEFAULT_VIP_TIERS, VipTierConfig
from earnhub.models import Base, VipTier


def create_engine(
    database_url: str | None = None, echo: bool | None = None
) -> AsyncEngine:
    """
    Create async engine for the ledger database.

    Args:
        database_url: Override for settings.database_url
        echo: Override for settings.database_echo

    Returns:
        Configured AsyncEngine
    """
    url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo)
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        isolation_level=settings.database_isolation_level,
    )


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Replace pysqlite's deferred BEGIN with BEGIN IMMEDIATE."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ANN001
        # Stop the driver from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables (checkfirst)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.info("Database tables ensured")


def _tier_from_config(config: VipTierConfig) -> VipTier:
    video_a, video_b, video_c, video_d = config.video_commission_percent
    up_a, up_b, up_c, up_d = config.upgrade_commission_percent
    return VipTier(
        rank=config.rank,
        name=config.name,
        investment_threshold=config.investment_threshold,
        daily_task_limit=config.daily_task_limit,
        daily_video_limit=config.daily_video_limit,
        task_reward=config.task_reward,
        video_commission_a=video_a,
        video_commission_b=video_b,
        video_commission_c=video_c,
        video_commission_d=video_d,
        upgrade_commission_a=up_a,
        upgrade_commission_b=up_b,
        upgrade_commission_c=up_c,
        upgrade_commission_d=up_d,
        is_active=True,
    )


async def seed_vip_tiers(
    session_maker: async_sessionmaker[AsyncSession],
    tiers: list[VipTierConfig] | None = None,
) -> int:
    """
    Insert VIP tiers that are not present yet (matched by rank).

    Args:
        session_maker: Session factory
        tiers: Tier rows to seed (defaults to DEFAULT_VIP_TIERS)

    Returns:
        Number of tiers inserted
    """
    tiers = DEFAULT_VIP_TIERS if tiers is None else tiers
    inserted = 0

    async with session_maker() as session, session.begin():
        result = await session.execute(select(VipTier.rank))
        existing = set(result.scalars().all())

        for config in tiers:
            if config.rank in existing:
                continue
            session.add(_tier_from_config(config))
            inserted += 1

    logger.info("VIP tiers seeded", extra={"inserted": inserted})
    return inserted

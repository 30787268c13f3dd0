"""
Async MySQL database engine and session management.

Purpose:
- Create SQLAlchemy async engine for MySQL with aiomysql driver when USE_DB is on
- Provide async session factory for the DB-backed member/fanclub stores
- Provide Base declarative class for ORM models

The proximity pipeline runs outside any request scope, so DB-backed stores
open their own short-lived sessions from async_session_maker instead of
receiving one per request.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config.settings import settings
import logging
from typing import Optional

logger = logging.getLogger(__name__)

Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def db_enabled() -> bool:
	return settings.USE_DB and bool(settings.MYSQL_ASYNC_URL) and settings.MYSQL_ASYNC_URL != "disabled"


def init_engine() -> Optional[async_sessionmaker[AsyncSession]]:
	"""Create the engine/session factory once. Returns None when the DB is disabled."""
	global engine, async_session_maker
	if not db_enabled():
		logger.warning("USE_DB is off or MYSQL_ASYNC_URL is 'disabled' - using in-memory member store.")
		return None
	if async_session_maker is None:
		engine = create_async_engine(
			settings.MYSQL_ASYNC_URL,
			echo=settings.DEBUG,
			future=True,
		)
		async_session_maker = async_sessionmaker(
			engine, expire_on_commit=False, class_=AsyncSession
		)
		logger.info("Async DB engine created: %s", settings.MYSQL_ASYNC_URL)
	return async_session_maker


async def create_tables() -> None:
	"""Create tables for the ORM models (development convenience)."""
	if engine is None:
		return
	import models.db_models  # noqa: F401  (register tables on Base.metadata)
	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
	global engine, async_session_maker
	if engine is not None:
		await engine.dispose()
		logger.info("Async DB engine disposed")
	engine = None
	async_session_maker = None

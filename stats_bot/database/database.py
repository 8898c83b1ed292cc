from typing import Optional, List
from sqlalchemy import event, select, func
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from contextlib import asynccontextmanager

from stats_bot.config import Config
from stats_bot.database.models import (
    Base, Tournament, GameDay, Match, Player, PlayerMatchStat
)
from stats_bot.utils.logger import setup_logger

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    @property
    def session_factory(self):
        return self.async_session

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        # Convert sqlite URL to async if needed
        database_url = self.database_url
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
            future=True
        )

        if self.engine.dialect.name == 'sqlite':
            self._configure_sqlite(self.engine)

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @staticmethod
    def _configure_sqlite(engine):
        """
        Let SQLAlchemy own transaction boundaries on SQLite.

        The sqlite3 driver defers BEGIN until the first DML statement, which
        breaks SAVEPOINT handling used for per-player isolation during
        ingestion. Emit BEGIN ourselves and turn on foreign keys.
        """
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context are committed together on success,
        or rolled back together on failure. Callers pass the yielded session
        to every participating operation.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    # Tournament operations
    async def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        async with self.get_session() as session:
            return await session.get(Tournament, tournament_id)

    async def get_all_tournaments(self) -> List[Tournament]:
        """Get all tournaments, newest first, with their game days"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Tournament)
                .options(selectinload(Tournament.game_days))
                .order_by(Tournament.created_at.desc(), Tournament.id.desc())
            )
            return result.scalars().all()

    # Game day operations
    async def get_game_day(self, game_day_id: int) -> Optional[GameDay]:
        async with self.get_session() as session:
            return await session.get(GameDay, game_day_id)

    async def get_game_day_by_number(self, tournament_id: int, day_number: int) -> Optional[GameDay]:
        async with self.get_session() as session:
            result = await session.execute(
                select(GameDay).where(
                    GameDay.tournament_id == tournament_id,
                    GameDay.day_number == day_number
                )
            )
            return result.scalar_one_or_none()

    async def get_game_days_with_matches(self, tournament_id: int) -> List[GameDay]:
        async with self.get_session() as session:
            result = await session.execute(
                select(GameDay)
                .where(GameDay.tournament_id == tournament_id)
                .options(selectinload(GameDay.matches))
                .order_by(GameDay.day_number)
            )
            return result.scalars().all()

    # Match operations
    async def get_match_by_external_id(self, external_match_id: int) -> Optional[Match]:
        async with self.get_session() as session:
            result = await session.execute(
                select(Match).where(Match.external_match_id == external_match_id)
            )
            return result.scalar_one_or_none()

    # Player operations
    async def get_player(self, player_id: int) -> Optional[Player]:
        async with self.get_session() as session:
            return await session.get(Player, player_id)

    async def get_player_by_name(self, name: str) -> Optional[Player]:
        async with self.get_session() as session:
            result = await session.execute(select(Player).where(Player.name == name))
            return result.scalar_one_or_none()

    async def get_player_stat_rows(self, player_id: int) -> List[PlayerMatchStat]:
        async with self.get_session() as session:
            result = await session.execute(
                select(PlayerMatchStat)
                .where(PlayerMatchStat.player_id == player_id)
                .order_by(PlayerMatchStat.id)
            )
            return result.scalars().all()

    async def get_table_counts(self) -> dict:
        """Row counts per table, for admin diagnostics"""
        async with self.get_session() as session:
            counts = {}
            for label, model in (
                ('tournaments', Tournament),
                ('game_days', GameDay),
                ('matches', Match),
                ('players', Player),
                ('player_match_stats', PlayerMatchStat),
            ):
                counts[label] = await session.scalar(select(func.count(model.id)))
            return counts

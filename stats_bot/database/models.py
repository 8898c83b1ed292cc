from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Boolean, Text, JSON,
    ForeignKey, Float, BigInteger, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

class Tournament(Base):
    __tablename__ = 'tournaments'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    game_days = relationship(
        "GameDay", back_populates="tournament",
        cascade="all, delete", order_by="GameDay.day_number"
    )
    player_stats = relationship("PlayerMatchStat", back_populates="tournament", cascade="all, delete")

    def __repr__(self):
        return f"<Tournament(id={self.id}, name='{self.name}')>"

class GameDay(Base):
    __tablename__ = 'game_days'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id', ondelete='CASCADE'), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    tournament = relationship("Tournament", back_populates="game_days")
    matches = relationship(
        "Match", back_populates="game_day",
        cascade="all, delete", order_by="Match.external_match_id"
    )
    player_stats = relationship("PlayerMatchStat", back_populates="game_day", cascade="all, delete")

    # One game day per day number within a tournament
    __table_args__ = (
        UniqueConstraint('tournament_id', 'day_number', name='uq_game_day_tournament_day'),
        CheckConstraint('day_number >= 1', name='ck_game_day_number_positive'),
    )

    def __repr__(self):
        return f"<GameDay(id={self.id}, tournament_id={self.tournament_id}, day={self.day_number})>"

class Match(Base):
    __tablename__ = 'matches'

    id = Column(Integer, primary_key=True)
    external_match_id = Column(BigInteger, nullable=False, unique=True, index=True)
    game_day_id = Column(Integer, ForeignKey('game_days.id', ondelete='CASCADE'), nullable=True, index=True)

    # Raw game-data payload, kept for later re-derivation
    match_data = Column(JSON, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    game_day = relationship("GameDay", back_populates="matches")
    player_stats = relationship("PlayerMatchStat", back_populates="match", cascade="all, delete")

    def __repr__(self):
        return f"<Match(id={self.id}, external_match_id={self.external_match_id}, game_day_id={self.game_day_id})>"

class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    external_id = Column(BigInteger, nullable=True, unique=True, index=True)  # platform-assigned player id

    # Running totals (cache of PlayerMatchStat; maintained incrementally)
    total_points = Column(Float, nullable=False, default=0.0)
    matches_played = Column(Integer, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    match_stats = relationship("PlayerMatchStat", back_populates="player")

    __table_args__ = (
        CheckConstraint('matches_played >= 0', name='ck_player_matches_played_non_negative'),
    )

    @property
    def average_points(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.total_points / self.matches_played

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}', points={self.total_points}, matches={self.matches_played})>"

class PlayerMatchStat(Base):
    __tablename__ = 'player_match_stats'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    match_id = Column(Integer, ForeignKey('matches.id', ondelete='CASCADE'), nullable=False)
    game_day_id = Column(Integer, ForeignKey('game_days.id', ondelete='CASCADE'), nullable=False)
    tournament_id = Column(Integer, ForeignKey('tournaments.id', ondelete='CASCADE'), nullable=False)

    points = Column(Float, nullable=False, default=0.0)
    position = Column(Integer, nullable=True)  # table position (seat)
    victory = Column(Boolean, nullable=False, default=False)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    player = relationship("Player", back_populates="match_stats")
    match = relationship("Match", back_populates="player_stats")
    game_day = relationship("GameDay", back_populates="player_stats")
    tournament = relationship("Tournament", back_populates="player_stats")

    # One row per player per match per game day
    __table_args__ = (
        UniqueConstraint('player_id', 'match_id', 'game_day_id', name='uq_player_match_game_day'),
        Index('idx_player_match_stats_player', 'player_id'),
        Index('idx_player_match_stats_game_day', 'game_day_id'),
        Index('idx_player_match_stats_tournament', 'tournament_id'),
    )

    def __repr__(self):
        return (
            f"<PlayerMatchStat(player_id={self.player_id}, match_id={self.match_id}, "
            f"points={self.points}, victory={self.victory})>"
        )

"""
Database Models for Decodey

Tracks:
- Quote inventory (difficulty, daily flag, usage count, soft delete)
- The in-progress game session (encrypted text, mappings, progress)
- Aggregate per-player statistics
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Float,
    LargeBinary, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base

from engine.models import utcnow

Base = declarative_base()


class QuoteRecord(Base):
    """
    A quotation that can be dealt as a puzzle.

    Quotes are never physically deleted through normal play; is_active is
    the soft-delete flag.
    """
    __tablename__ = 'quotes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    author = Column(String(200))
    attribution = Column(String(500))
    difficulty = Column(String(10), nullable=False, default='medium')  # 'easy', 'medium', 'hard'
    is_daily = Column(Boolean, nullable=False, default=False)
    daily_date = Column(Date)
    is_active = Column(Boolean, nullable=False, default=True)
    times_used = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index('idx_quote_difficulty', 'difficulty'),
        Index('idx_quote_daily', 'daily_date'),
    )

    def __repr__(self):
        return f"<QuoteRecord({self.id}: {self.text[:30]}... [{self.difficulty}])>"


class GameRecord(Base):
    """
    A persisted game session.

    mapping / reverse_mapping / correctly_guessed hold JSON blobs written by
    persistence.codec.
    """
    __tablename__ = 'games'

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True)
    quote_id = Column(Integer, ForeignKey('quotes.id'))

    original_text = Column(Text, nullable=False)
    encrypted_text = Column(Text, nullable=False)
    current_display = Column(Text, nullable=False)

    mapping = Column(LargeBinary, nullable=False)          # plain -> cipher
    reverse_mapping = Column(LargeBinary, nullable=False)  # cipher -> plain
    correctly_guessed = Column(LargeBinary)                # solved cipher letters

    mistakes = Column(Integer, nullable=False, default=0)
    max_mistakes = Column(Integer, nullable=False, default=7)
    difficulty = Column(String(10), nullable=False, default='medium')

    # Game outcome
    has_won = Column(Boolean, nullable=False, default=False)
    has_lost = Column(Boolean, nullable=False, default=False)
    is_complete = Column(Boolean, nullable=False, default=False)
    score = Column(Integer, default=0)
    time_taken = Column(Integer)  # seconds

    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_updated = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_game_complete_created', 'is_complete', 'created_at'),
    )

    def __repr__(self):
        state = "won" if self.has_won else "lost" if self.has_lost else "active"
        return f"<GameRecord({self.session_id}: {state}, mistakes={self.mistakes}/{self.max_mistakes})>"


class StatisticsRecord(Base):
    """
    Per-player statistics, one row per user.

    Averages are running means; no per-game history is kept.
    """
    __tablename__ = 'statistics'

    user_id = Column(String(100), primary_key=True)

    # Win/loss record
    games_played = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    best_streak = Column(Integer, nullable=False, default=0)

    total_score = Column(Integer, nullable=False, default=0)
    average_mistakes = Column(Float, nullable=False, default=0.0)
    average_time = Column(Float, nullable=False, default=0.0)  # seconds

    last_played_date = Column(Date)

    def __repr__(self):
        return f"<StatisticsRecord({self.user_id}: {self.games_won}/{self.games_played} won)>"

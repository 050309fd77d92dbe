"""
Stats Repository - Data Access Layer

Aggregate per-player statistics, updated once per completed game.
"""

import logging
from datetime import date
from typing import Optional

from engine.models import PlayerStatistics
from .database import Database
from .models import StatisticsRecord

logger = logging.getLogger(__name__)


def _to_statistics(record: StatisticsRecord) -> PlayerStatistics:
    return PlayerStatistics(
        user_id=record.user_id,
        games_played=record.games_played,
        games_won=record.games_won,
        current_streak=record.current_streak,
        best_streak=record.best_streak,
        total_score=record.total_score,
        average_mistakes=record.average_mistakes,
        average_time=record.average_time,
        last_played_date=record.last_played_date,
    )


def running_mean(old_mean: float, old_count: int, value: float) -> float:
    """Mean after adding value to old_count samples averaging old_mean"""
    return (old_mean * old_count + value) / (old_count + 1)


class StatisticsStore:
    """
    Store for player statistics.

    record_completion is a single read-modify-write inside one locked
    transaction; if it fails the existing row is left as it was.
    """

    def __init__(self, database: Database):
        self.database = database

    def get(self, user_id: str) -> Optional[PlayerStatistics]:
        """Get player statistics (returns None if the player has not finished a game)"""
        with self.database.session_scope() as session:
            record = session.get(StatisticsRecord, user_id)
            if record is None:
                return None
            return _to_statistics(record)

    def record_completion(self, user_id: str, won: bool, mistakes: int,
                          time_taken_seconds: int, score: int,
                          played_on: Optional[date] = None) -> PlayerStatistics:
        """
        Record a finished game and update the player's statistics.

        Args:
            user_id: Player identifier
            won: Whether the game was won
            mistakes: Mistakes made (hints included)
            time_taken_seconds: Game duration
            score: Score awarded for the game
            played_on: Date of the game (defaults to today)

        Returns:
            Updated PlayerStatistics
        """
        with self.database.session_scope() as session:
            record = session.query(StatisticsRecord).filter_by(user_id=user_id).first()

            if record is None:
                record = StatisticsRecord(
                    user_id=user_id,
                    games_played=0,
                    games_won=0,
                    current_streak=0,
                    best_streak=0,
                    total_score=0,
                    average_mistakes=0.0,
                    average_time=0.0,
                )
                session.add(record)
                logger.info(f"Created new statistics record: {user_id}")

            previous_count = record.games_played

            # Running averages use the count before this game
            record.average_mistakes = running_mean(record.average_mistakes, previous_count, mistakes)
            record.average_time = running_mean(record.average_time, previous_count, time_taken_seconds)

            record.games_played = previous_count + 1
            if won:
                record.games_won += 1
                record.current_streak += 1
            else:
                record.current_streak = 0
            record.best_streak = max(record.best_streak, record.current_streak)

            record.total_score += score
            record.last_played_date = played_on or date.today()

            session.flush()
            stats = _to_statistics(record)

        logger.info(f"Updated stats for {user_id}: {stats.games_won}/{stats.games_played} won, "
                    f"streak={stats.current_streak}, total_score={stats.total_score}")
        return stats

    def reset(self, user_id: str) -> bool:
        """Delete a player's statistics. Returns True if a row was removed."""
        with self.database.session_scope() as session:
            deleted = session.query(StatisticsRecord).filter_by(user_id=user_id).delete(
                synchronize_session=False
            )
        if deleted:
            logger.info(f"Reset statistics for {user_id}")
        return bool(deleted)

"""
Decodey - Game Service

Entry point for the presentation layer. Owns the database lifecycle and
wires the cipher engine to the quote repository, session store and
statistics store:

- start_session deals a quote and persists the new session, superseding
  any unfinished one
- select_letter / guess / hint run the pure engine transitions and persist
  every change
- when a session reaches Won or Lost the score is computed, statistics are
  recorded exactly once and the stored session is cleared

Usage:
    with GameService() as service:
        game = service.resume() or service.start_session('easy')
        game = service.select_letter(game.puzzle.ciphertext[0])
        game, correct = service.guess('T')
"""

import logging
import os
import random
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

import settings
from config import config
from engine.cipher import CipherEngine
from engine.models import GameSession, PlayerStatistics, Quote
from engine.scoring import compute_score, elapsed_seconds
from errors import DecodeyError
from persistence import Database, QuoteRepository, SessionStore, StatisticsStore

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None, log_to_file: bool = True):
    """Configure root logging for the process (console, plus a file in LOG_DIR)"""
    handlers = [logging.StreamHandler()]
    if log_to_file:
        config.ensure_dirs()
        handlers.append(logging.FileHandler(os.path.join(config.LOG_DIR, 'decodey.log')))

    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=config.LOG_FORMAT,
        handlers=handlers,
    )


class GameService:
    """
    Composition root for the cryptogram core.

    Args:
        database: Database to use (defaults to the configured SQLite file)
        rng: Shared randomness for ciphers, hints and quote dealing
        clock: Naive UTC clock for session timestamps
        user_id: Player id for statistics (defaults to the user setting)
    """

    def __init__(self, database: Optional[Database] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 user_id: Optional[str] = None,
                 seed_quotes: Optional[bool] = None):
        self.database = database or Database()
        rng = rng or random.Random()
        self.engine = CipherEngine(rng=rng, clock=clock)
        self.quotes = QuoteRepository(self.database, rng=rng)
        self.sessions = SessionStore(self.database)
        self.stats = StatisticsStore(self.database)

        self._user_id = user_id
        self._seed_quotes = config.SEED_QUOTES if seed_quotes is None else seed_quotes
        self._recorded: Set[str] = set()
        self.current: Optional[GameSession] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self) -> 'GameService':
        self.database.open()
        if self._seed_quotes:
            self.quotes.seed_defaults()
        return self

    def close(self):
        """Persist the game in progress (app suspension) and close the database"""
        if self.database.is_open:
            try:
                self.suspend()
            finally:
                self.database.close()

    def __enter__(self) -> 'GameService':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def user_id(self) -> str:
        return self._user_id or settings.player_id()

    # =========================================================================
    # Session operations
    # =========================================================================

    def start_session(self, difficulty: Optional[str] = None,
                      quote: Optional[Quote] = None) -> GameSession:
        """
        Start a new game, replacing any unfinished one.

        Args:
            difficulty: Difficulty to deal from (defaults to the user setting)
            quote: Explicit quote to play instead of a dealt one

        Raises:
            NotFoundError: no active quote for the difficulty
            InvalidQuoteError: the quote cannot be encrypted
        """
        if quote is None:
            difficulty = difficulty or settings.preferred_difficulty()
            quote = self.quotes.random_quote(difficulty)

        # Engine errors happen before anything is persisted or replaced
        game = self.engine.start_session(quote)
        self.sessions.save(game)

        if self.current is not None and not self.current.is_terminal:
            logger.info(f"Session {self.current.session_id} superseded by {game.session_id}")
        self.current = game

        logger.info(f"Started session {game.session_id} (quote {quote.id}, {game.difficulty})")
        return game

    def resume(self) -> Optional[GameSession]:
        """Load the most recent unfinished game, if any"""
        game = self.sessions.load_latest_unfinished()
        if game is not None:
            logger.info(f"Resumed session {game.session_id} ({game.mistakes}/{game.max_mistakes} mistakes)")
            self.current = game
        return game

    def select_letter(self, cipher_letter: str) -> GameSession:
        # Selection is transient and not persisted
        self.current = self.engine.select_letter(self._require_current(), cipher_letter)
        return self.current

    def guess(self, plain_letter: str) -> Tuple[GameSession, bool]:
        game = self._require_current()
        updated, correct = self.engine.guess(game, plain_letter)
        if updated is not game:
            self._apply(updated)
        return self.current, correct

    def hint(self) -> Tuple[GameSession, Optional[Tuple[str, str]]]:
        game = self._require_current()
        updated, revealed = self.engine.hint(game)
        if updated is not game:
            self._apply(updated)
        return self.current, revealed

    def suspend(self):
        """Persist the current game if it is still being played"""
        if self.current is not None and not self.current.is_terminal:
            self.sessions.save(self.current)

    def compute_score(self, game: Optional[GameSession] = None) -> int:
        return compute_score(game or self._require_current())

    def finish(self, game: GameSession) -> PlayerStatistics:
        """
        Record a terminal session in the statistics and clear it from storage.

        Safe to retry after a StorageError: statistics are recorded only once
        per session.
        """
        if not game.is_terminal:
            raise ValueError(f"Session {game.session_id} is not finished")

        stats = None
        if game.session_id not in self._recorded:
            stats = self.stats.record_completion(
                self.user_id,
                won=game.has_won,
                mistakes=game.mistakes,
                time_taken_seconds=elapsed_seconds(game),
                score=compute_score(game),
                played_on=game.last_updated_at.date(),
            )
            self._recorded.add(game.session_id)

        self.sessions.clear(game.session_id)
        return stats or self.stats.get(self.user_id)

    def _apply(self, updated: GameSession):
        self.current = updated
        self.sessions.save(updated)
        if updated.is_terminal:
            try:
                self.finish(updated)
            except DecodeyError as e:
                logger.error(f"Failed to record completion of {updated.session_id}: {e}")
                raise

    def _require_current(self) -> GameSession:
        if self.current is None:
            raise ValueError("No game in progress; call start_session() or resume() first")
        return self.current

    # =========================================================================
    # Statistics and quotes
    # =========================================================================

    def statistics(self, user_id: Optional[str] = None) -> Optional[PlayerStatistics]:
        return self.stats.get(user_id or self.user_id)

    def record_completion(self, won: bool, mistakes: int, time_taken_seconds: int,
                          score: int) -> PlayerStatistics:
        return self.stats.record_completion(self.user_id, won, mistakes, time_taken_seconds, score)

    def random_quote(self, difficulty: Optional[str] = None) -> Quote:
        return self.quotes.random_quote(difficulty)

    def add_quote(self, text: str, author: str, attribution: Optional[str] = None,
                  difficulty: str = 'medium') -> Quote:
        return self.quotes.add_quote(text, author, attribution, difficulty)

    def list_quotes(self) -> List[Quote]:
        return self.quotes.list_quotes()

"""
Quote Repository - Data Access Layer

Stores and deals the quotations used as puzzles.
"""

import logging
import random
from datetime import date
from typing import List, Optional

from sqlalchemy import case

from engine.models import Quote, is_cipher_letter, upper_ascii, validate_difficulty
from errors import InvalidQuoteError, NotFoundError
from .database import Database
from .models import QuoteRecord

logger = logging.getLogger(__name__)

# Starter quotes inserted into an empty quotes table
DEFAULT_QUOTES = [
    # Easy quotes (shorter, common words)
    ("Manners maketh man.", "William Horman", "easy"),
    ("The early bird catches the worm.", "John Ray", "easy"),
    ("Actions speak louder than words.", "Abraham Lincoln", "easy"),
    ("Knowledge is power.", "Francis Bacon", "easy"),
    ("Time waits for no one.", "Geoffrey Chaucer", "easy"),

    # Medium quotes (moderate length, some less common words)
    ("Be yourself; everyone else is already taken.", "Oscar Wilde", "medium"),
    ("The only thing we have to fear is fear itself.", "Franklin D. Roosevelt", "medium"),
    ("Life is what happens when you're busy making other plans.", "John Lennon", "medium"),
    ("The journey of a thousand miles begins with a single step.", "Lao Tzu", "medium"),
    ("The unexamined life is not worth living.", "Socrates", "medium"),

    # Hard quotes (longer, more complex words or structure)
    ("The measure of intelligence is the ability to change.", "Albert Einstein", "hard"),
    ("It is during our darkest moments that we must focus to see the light.", "Aristotle", "hard"),
    ("Imagination is more important than knowledge.", "Albert Einstein", "hard"),
    ("The future belongs to those who believe in the beauty of their dreams.", "Eleanor Roosevelt", "hard"),
    ("Be the change that you wish to see in the world.", "Mahatma Gandhi", "hard"),
]

_DIFFICULTY_RANK = case(
    {'easy': 0, 'medium': 1, 'hard': 2},
    value=QuoteRecord.difficulty,
    else_=3,
)


def _to_quote(record: QuoteRecord) -> Quote:
    return Quote(
        id=record.id,
        text=record.text,
        author=record.author or "Unknown",
        attribution=record.attribution,
        difficulty=record.difficulty,
        is_daily=bool(record.is_daily),
        daily_date=record.daily_date,
        is_active=bool(record.is_active),
        times_used=record.times_used or 0,
    )


class QuoteRepository:
    """
    Repository for the quote inventory.

    Provides methods for:
    - Dealing a random active quote (optionally by difficulty)
    - Adding and listing quotes
    - Soft delete (retire / restore)
    - Daily quote selection
    """

    def __init__(self, database: Database, rng: Optional[random.Random] = None):
        """
        Args:
            database: Open Database
            rng: Source of randomness for dealing quotes (seed it in tests)
        """
        self.database = database
        self.rng = rng or random.Random()

    # =========================================================================
    # Dealing
    # =========================================================================

    def random_quote(self, difficulty: Optional[str] = None) -> Quote:
        """
        Deal a random active quote, counting it as used.

        Args:
            difficulty: Optional difficulty filter; None samples across all
                        active quotes uniformly

        Raises:
            NotFoundError: if no active quote matches
        """
        if difficulty is not None:
            difficulty = validate_difficulty(difficulty)

        with self.database.session_scope() as session:
            query = session.query(QuoteRecord.id).filter(QuoteRecord.is_active.is_(True))
            if difficulty is not None:
                query = query.filter(QuoteRecord.difficulty == difficulty)
            ids = [row.id for row in query.order_by(QuoteRecord.id).all()]

            if not ids:
                raise NotFoundError(f"No active quotes (difficulty={difficulty or 'any'})")

            record = session.get(QuoteRecord, self.rng.choice(ids))
            record.times_used = (record.times_used or 0) + 1
            session.flush()

            logger.debug(f"Dealt quote {record.id} ({record.difficulty}), used {record.times_used}x")
            return _to_quote(record)

    def daily_quote(self, day: Optional[date] = None) -> Quote:
        """
        Get the daily quote for a given day (today by default).

        Raises:
            NotFoundError: if no active quote is scheduled for that day
        """
        day = day or date.today()
        with self.database.session_scope() as session:
            record = session.query(QuoteRecord).filter(
                QuoteRecord.is_daily.is_(True),
                QuoteRecord.daily_date == day,
                QuoteRecord.is_active.is_(True),
            ).first()
            if record is None:
                raise NotFoundError(f"No daily quote for {day.isoformat()}")
            return _to_quote(record)

    # =========================================================================
    # Inventory
    # =========================================================================

    def add_quote(self, text: str, author: str, attribution: Optional[str] = None,
                  difficulty: str = 'medium') -> Quote:
        """
        Add a new quote to the inventory.

        Raises:
            InvalidQuoteError: if the text has no letters to encrypt
            ValueError: if the difficulty is unknown
        """
        difficulty = validate_difficulty(difficulty)
        text = (text or '').strip()
        if not any(is_cipher_letter(char) for char in upper_ascii(text)):
            raise InvalidQuoteError(f"Quote has no letters to encrypt: {text!r}")

        with self.database.session_scope() as session:
            record = QuoteRecord(
                text=text,
                author=(author or '').strip() or "Unknown",
                attribution=attribution,
                difficulty=difficulty,
                is_daily=False,
                is_active=True,
                times_used=0,
            )
            session.add(record)
            session.flush()

            logger.info(f"Added quote {record.id} by {record.author} ({difficulty})")
            return _to_quote(record)

    def get(self, quote_id: int) -> Quote:
        """
        Get a quote by id (active or retired).

        Raises:
            NotFoundError: if the quote does not exist
        """
        with self.database.session_scope() as session:
            record = session.get(QuoteRecord, quote_id)
            if record is None:
                raise NotFoundError(f"Quote {quote_id} not found")
            return _to_quote(record)

    def list_quotes(self, include_inactive: bool = True) -> List[Quote]:
        """All quotes ordered by difficulty (easy, medium, hard) then text"""
        with self.database.session_scope() as session:
            query = session.query(QuoteRecord)
            if not include_inactive:
                query = query.filter(QuoteRecord.is_active.is_(True))
            records = query.order_by(_DIFFICULTY_RANK, QuoteRecord.text, QuoteRecord.id).all()
            return [_to_quote(r) for r in records]

    def count(self, active_only: bool = False) -> int:
        with self.database.session_scope() as session:
            query = session.query(QuoteRecord)
            if active_only:
                query = query.filter(QuoteRecord.is_active.is_(True))
            return query.count()

    def retire(self, quote_id: int) -> Quote:
        """Soft-delete a quote so it is no longer dealt"""
        return self._set_active(quote_id, False)

    def restore(self, quote_id: int) -> Quote:
        """Bring a retired quote back into rotation"""
        return self._set_active(quote_id, True)

    def _set_active(self, quote_id: int, active: bool) -> Quote:
        with self.database.session_scope() as session:
            record = session.get(QuoteRecord, quote_id)
            if record is None:
                raise NotFoundError(f"Quote {quote_id} not found")
            record.is_active = active
            session.flush()

            logger.info(f"Quote {quote_id} {'restored' if active else 'retired'}")
            return _to_quote(record)

    def set_daily(self, quote_id: int, day: date) -> Quote:
        """
        Schedule a quote as the daily quote for a day.

        Any other quote scheduled for the same day loses its daily flag.
        """
        with self.database.session_scope() as session:
            record = session.get(QuoteRecord, quote_id)
            if record is None:
                raise NotFoundError(f"Quote {quote_id} not found")

            previous = session.query(QuoteRecord).filter(
                QuoteRecord.daily_date == day,
                QuoteRecord.id != quote_id,
            ).all()
            for other in previous:
                other.is_daily = False
                other.daily_date = None

            record.is_daily = True
            record.daily_date = day
            session.flush()

            logger.info(f"Quote {quote_id} scheduled as daily quote for {day.isoformat()}")
            return _to_quote(record)

    def seed_defaults(self) -> int:
        """
        Insert the starter quotes if the table is empty.

        Returns:
            Number of quotes inserted (0 if the table already had quotes)
        """
        with self.database.session_scope() as session:
            if session.query(QuoteRecord).count() > 0:
                return 0

            for text, author, difficulty in DEFAULT_QUOTES:
                session.add(QuoteRecord(
                    text=text,
                    author=author,
                    difficulty=difficulty,
                    is_daily=False,
                    is_active=True,
                    times_used=0,
                ))

        logger.info(f"Seeded {len(DEFAULT_QUOTES)} starter quotes")
        return len(DEFAULT_QUOTES)

"""
Data models for the cryptogram game.

These are the immutable records the engine passes around: quotes dealt from
the repository, the puzzle derived from a quote, the game session snapshot
the presentation layer renders, and per-user statistics.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Optional

ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'

DIFFICULTIES = ('easy', 'medium', 'hard')


def utcnow() -> datetime:
    """Naive UTC timestamp (what SQLite DateTime columns round-trip)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_cipher_letter(char: str) -> bool:
    """Only A-Z take part in the substitution; everything else passes through"""
    return len(char) == 1 and char in ALPHABET


def upper_ascii(text: str) -> str:
    """Upper-case a-z only, so the text keeps its length (str.upper turns "ß" into "SS")"""
    return ''.join(char.upper() if 'a' <= char <= 'z' else char for char in text)


def validate_difficulty(difficulty: str) -> str:
    """Normalize a difficulty name, raising ValueError for unknown levels"""
    normalized = (difficulty or '').strip().lower()
    if normalized not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty '{difficulty}' (expected one of {', '.join(DIFFICULTIES)})")
    return normalized


@dataclass(frozen=True)
class Quote:
    """A candidate quotation from the quote inventory"""
    id: Optional[int]
    text: str
    author: str
    attribution: Optional[str] = None
    difficulty: str = "medium"  # "easy", "medium", "hard"
    is_daily: bool = False
    daily_date: Optional[date] = None
    is_active: bool = True      # Soft-delete flag
    times_used: int = 0


@dataclass(frozen=True)
class Puzzle:
    """
    A quote encrypted with a monoalphabetic substitution.

    letter_map is a bijection over the whole alphabet (plain -> cipher) and
    reverse_map is its exact inverse (cipher -> plain).
    """
    plaintext: str
    ciphertext: str
    letter_map: Dict[str, str]
    reverse_map: Dict[str, str]


@dataclass(frozen=True)
class GameSession:
    """
    Snapshot of a game in progress.

    Never mutated in place: every engine operation returns a new snapshot,
    so a session being displayed is never aliased with one under change.
    """
    session_id: str
    puzzle: Puzzle
    display: str
    guessed_mappings: Dict[str, str] = field(default_factory=dict)  # cipher -> plain
    selected_letter: Optional[str] = None
    mistakes: int = 0
    max_mistakes: int = 7
    has_won: bool = False
    has_lost: bool = False
    started_at: datetime = field(default_factory=utcnow)
    last_updated_at: datetime = field(default_factory=utcnow)
    difficulty: str = "medium"
    quote_id: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        """Won and lost are absorbing states"""
        return self.has_won or self.has_lost

    @property
    def ciphertext(self) -> str:
        return self.puzzle.ciphertext

    @property
    def mistakes_remaining(self) -> int:
        return max(0, self.max_mistakes - self.mistakes)


@dataclass(frozen=True)
class PlayerStatistics:
    """Aggregate statistics for one player"""
    user_id: str
    games_played: int = 0
    games_won: int = 0
    current_streak: int = 0
    best_streak: int = 0
    total_score: int = 0
    average_mistakes: float = 0.0
    average_time: float = 0.0
    last_played_date: Optional[date] = None

    @property
    def win_percentage(self) -> float:
        """Win rate as percentage"""
        if self.games_played == 0:
            return 0.0
        return (self.games_won / self.games_played) * 100

    @property
    def average_score(self) -> int:
        if self.games_played == 0:
            return 0
        return self.total_score // self.games_played

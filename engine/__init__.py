"""
Engine Module

Pure cryptogram game logic:
- Cipher generation and session transitions (select, guess, hint)
- Score calculation
- Immutable data records shared with the persistence layer
"""

from .models import (
    ALPHABET,
    DIFFICULTIES,
    Quote,
    Puzzle,
    GameSession,
    PlayerStatistics,
)
from .cipher import (
    CipherEngine,
    encrypt,
    decrypt,
    unique_cipher_letters,
    guessed_letters,
    letter_frequency,
)
from .scoring import compute_score, elapsed_seconds

__all__ = [
    # Models
    'ALPHABET',
    'DIFFICULTIES',
    'Quote',
    'Puzzle',
    'GameSession',
    'PlayerStatistics',
    # Cipher
    'CipherEngine',
    'encrypt',
    'decrypt',
    'unique_cipher_letters',
    'guessed_letters',
    'letter_frequency',
    # Scoring
    'compute_score',
    'elapsed_seconds',
]

"""
Score calculation for finished (or in-progress) sessions.

Score = base(difficulty) + length bonus - mistake penalty + time score,
never negative, and always 0 for a lost game. The result only depends on
the session's stored fields, so a saved and reloaded session scores the same.
"""

from engine.cipher import unique_cipher_letters
from engine.models import GameSession

BASE_SCORE = {
    'easy': 100,
    'medium': 200,
    'hard': 300,
}

# Penalty per mistake (more severe at higher difficulties)
MISTAKE_PENALTY = {
    'easy': 5,
    'medium': 10,
    'hard': 15,
}

# Points per distinct cipher letter in the puzzle
LENGTH_BONUS_PER_LETTER = 2

# (upper bound in seconds, exclusive) -> time score; slower than all bounds
# scores SLOW_TIME_SCORE
TIME_BRACKETS = (
    (60, 50),     # Under 1 minute
    (180, 30),    # Under 3 minutes
    (300, 10),    # Under 5 minutes
    (601, 0),     # Up to 10 minutes
)
SLOW_TIME_SCORE = -20


def elapsed_seconds(session: GameSession) -> int:
    """Whole seconds between session start and its last update"""
    delta = session.last_updated_at - session.started_at
    return max(0, int(delta.total_seconds()))


def time_score(seconds: int) -> int:
    for bound, score in TIME_BRACKETS:
        if seconds < bound:
            return score
    return SLOW_TIME_SCORE


def compute_score(session: GameSession) -> int:
    """
    Compute the score for a session.

    Non-increasing in mistakes and in elapsed time. Unknown difficulties are
    scored as medium.
    """
    if session.has_lost:
        return 0

    difficulty = session.difficulty if session.difficulty in BASE_SCORE else 'medium'
    base = BASE_SCORE[difficulty]
    length_bonus = LENGTH_BONUS_PER_LETTER * len(unique_cipher_letters(session))
    penalty = MISTAKE_PENALTY[difficulty] * session.mistakes

    total = base + length_bonus - penalty + time_score(elapsed_seconds(session))
    return max(0, total)

"""
Tests for score calculation.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import random
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from engine.cipher import CipherEngine
from engine.models import Quote
from engine.scoring import compute_score, elapsed_seconds, time_score

START = datetime(2025, 5, 7, 12, 0, 0)


@pytest.fixture
def session():
    engine = CipherEngine(rng=random.Random(5), clock=lambda: START)
    # "MANNERS MAKETH MAN." has 9 distinct letters
    return engine.start_session(Quote(id=1, text="Manners maketh man.", author="William Horman",
                                      difficulty="medium"))


def finished(session, mistakes=0, seconds=0, won=True, lost=False):
    return replace(session, mistakes=mistakes, has_won=won, has_lost=lost,
                   last_updated_at=session.started_at + timedelta(seconds=seconds))


class TestComputeScore:
    """Tests for compute_score"""

    def test_fast_clean_win(self, session):
        # base 200 + 9 letters * 2 + 50 for under a minute
        assert compute_score(finished(session, mistakes=0, seconds=30)) == 268

    def test_mistakes_penalised_by_difficulty(self, session):
        medium = compute_score(finished(session, mistakes=2, seconds=30))
        hard = compute_score(finished(replace(session, difficulty='hard'), mistakes=2, seconds=30))
        easy = compute_score(finished(replace(session, difficulty='easy'), mistakes=2, seconds=30))
        assert medium == 268 - 20
        assert hard == 300 + 18 + 50 - 30
        assert easy == 100 + 18 + 50 - 10

    def test_lost_game_scores_zero(self, session):
        assert compute_score(finished(session, mistakes=7, seconds=10, won=False, lost=True)) == 0

    def test_never_negative(self, session):
        assert compute_score(finished(session, mistakes=50, seconds=3600)) == 0

    def test_non_increasing_in_mistakes(self, session):
        scores = [compute_score(finished(session, mistakes=m, seconds=100)) for m in range(30)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_non_increasing_in_time(self, session):
        scores = [compute_score(finished(session, mistakes=1, seconds=s)) for s in range(0, 1200, 7)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_deterministic(self, session):
        game = finished(session, mistakes=3, seconds=200)
        assert compute_score(game) == compute_score(replace(game))

    def test_unknown_difficulty_scored_as_medium(self, session):
        game = finished(session, mistakes=1, seconds=30)
        assert compute_score(replace(game, difficulty='legendary')) == compute_score(game)


class TestTimeScore:
    """Tests for the time brackets"""

    @pytest.mark.parametrize("seconds,expected", [
        (0, 50), (59, 50), (60, 30), (179, 30), (180, 10),
        (299, 10), (300, 0), (600, 0), (601, -20), (5000, -20),
    ])
    def test_brackets(self, seconds, expected):
        assert time_score(seconds) == expected

    def test_elapsed_seconds(self, session):
        assert elapsed_seconds(finished(session, seconds=95)) == 95

"""
GameService Test Suite

End-to-end tests wiring the engine to the stores through the service.

Run with: python -m pytest tests/test_game_service.py -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import random
from datetime import datetime, timedelta

import pytest

from engine.cipher import unique_cipher_letters
from engine.models import Quote
from errors import InvalidQuoteError, NotFoundError, StorageError
from game_service import GameService
from persistence import Database, DEFAULT_QUOTES


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 5, 7, 20, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database():
    return Database('sqlite://')


@pytest.fixture
def service(database, clock):
    svc = GameService(database=database, rng=random.Random(8), clock=clock,
                      user_id="tester", seed_quotes=True)
    svc.open()
    yield svc
    svc.close()


def solve(service, game):
    for cipher_letter in unique_cipher_letters(game):
        service.select_letter(cipher_letter)
        game, correct = service.guess(game.puzzle.reverse_map[cipher_letter])
        assert correct
    return game


def wrong_letter(game, cipher_letter):
    return next(l for l in "ZQXJ" if l != game.puzzle.reverse_map[cipher_letter])


class TestLifecycle:
    """Opening, seeding and closing"""

    def test_open_seeds_quotes(self, service):
        assert len(service.list_quotes()) == len(DEFAULT_QUOTES)

    def test_context_manager_closes_database(self, clock):
        database = Database('sqlite://')
        with GameService(database=database, clock=clock, user_id="tester") as svc:
            assert database.is_open
            svc.start_session("easy")
        assert not database.is_open

    def test_operations_need_a_game(self, service):
        with pytest.raises(ValueError):
            service.guess('A')


class TestPlay:
    """Playing games through the service"""

    def test_start_session_deals_difficulty(self, service):
        game = service.start_session("hard")
        assert game.difficulty == "hard"
        assert game.max_mistakes == 5
        assert service.current is game

    def test_start_session_no_quotes(self, service):
        for quote in service.list_quotes():
            service.quotes.retire(quote.id)
        with pytest.raises(NotFoundError):
            service.start_session()

    def test_invalid_quote_keeps_previous_session(self, service):
        game = service.start_session("easy")
        with pytest.raises(InvalidQuoteError):
            service.start_session(quote=Quote(id=None, text="...", author="Nobody"))
        assert service.current is game
        assert service.sessions.load_latest_unfinished().session_id == game.session_id

    def test_guess_persists_progress(self, service, database, clock):
        game = service.start_session("medium")
        letter = unique_cipher_letters(game)[0]
        service.select_letter(letter)
        service.guess(wrong_letter(game, letter))

        # A fresh service on the same database resumes where we left off
        other = GameService(database=database, clock=clock, user_id="tester", seed_quotes=False)
        resumed = other.resume()
        assert resumed.session_id == game.session_id
        assert resumed.mistakes == 1

    def test_win_records_statistics_and_clears_session(self, service, clock):
        game = service.start_session("easy")
        clock.advance(45)
        game = solve(service, game)

        assert game.has_won
        stats = service.statistics()
        assert stats.games_played == 1
        assert stats.games_won == 1
        assert stats.total_score == service.compute_score(game)
        assert stats.average_time == 45
        assert service.resume() is None

    def test_loss_records_statistics(self, service):
        game = service.start_session("hard")
        letter = unique_cipher_letters(game)[0]
        for _ in range(game.max_mistakes):
            service.select_letter(letter)
            game, correct = service.guess(wrong_letter(game, letter))
            assert not correct

        assert game.has_lost
        stats = service.statistics()
        assert stats.games_played == 1
        assert stats.games_won == 0
        assert stats.total_score == 0
        assert stats.average_mistakes == 5

        # Further guesses do nothing and do not record again
        service.select_letter(letter)
        again, _ = service.guess(game.puzzle.reverse_map[letter])
        assert again is game
        assert service.statistics().games_played == 1

    def test_hint_persists(self, service):
        game = service.start_session("easy")
        game, revealed = service.hint()
        assert revealed is not None
        assert service.resume().guessed_mappings == {revealed[0]: revealed[1]}

    def test_new_session_supersedes(self, service):
        first = service.start_session("easy")
        second = service.start_session("easy")
        assert service.resume().session_id == second.session_id
        assert first.session_id != second.session_id

    def test_suspend_on_close(self, tmp_path, clock):
        database = Database(f"sqlite:///{tmp_path / 'decodey.db'}")
        svc = GameService(database=database, rng=random.Random(1), clock=clock, user_id="tester").open()
        game = svc.start_session("easy")
        svc.close()

        database.open()
        try:
            assert GameService(database=database, user_id="tester").resume().session_id == game.session_id
        finally:
            database.close()


class TestFailures:
    """Storage failures surface and can be retried"""

    def test_statistics_failure_propagates_and_retry_records_once(self, service, monkeypatch):
        game = service.start_session("easy")
        original = service.stats.record_completion
        calls = []

        def failing(*args, **kwargs):
            calls.append(1)
            raise StorageError("database is locked")

        monkeypatch.setattr(service.stats, "record_completion", failing)
        with pytest.raises(StorageError):
            game = solve_until_error(service, game)
        monkeypatch.setattr(service.stats, "record_completion", original)

        finished = service.current
        assert finished.has_won
        assert service.statistics() is None

        stats = service.finish(finished)
        assert stats.games_played == 1
        stats = service.finish(finished)
        assert stats.games_played == 1
        assert calls == [1]

    def test_finish_rejects_active_session(self, service):
        with pytest.raises(ValueError):
            service.finish(service.start_session("easy"))


def solve_until_error(service, game):
    for cipher_letter in unique_cipher_letters(game):
        service.select_letter(cipher_letter)
        game, _ = service.guess(game.puzzle.reverse_map[cipher_letter])
    return game

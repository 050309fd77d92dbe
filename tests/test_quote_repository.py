"""
Tests for the quote repository.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import random
from collections import Counter
from datetime import date

import pytest

from errors import InvalidQuoteError, NotFoundError
from persistence import Database, QuoteRepository, DEFAULT_QUOTES


@pytest.fixture
def database():
    db = Database('sqlite://').open()
    yield db
    db.close()


@pytest.fixture
def repo(database):
    return QuoteRepository(database, rng=random.Random(3))


class TestAddAndList:
    """Tests for adding and listing quotes"""

    def test_add_quote_returns_stored_quote(self, repo):
        quote = repo.add_quote("Knowledge is power.", "Francis Bacon", difficulty="easy")
        assert quote.id is not None
        assert quote.text == "Knowledge is power."
        assert quote.author == "Francis Bacon"
        assert quote.difficulty == "easy"
        assert quote.is_active
        assert quote.times_used == 0
        assert repo.get(quote.id) == quote

    def test_add_quote_with_attribution(self, repo):
        quote = repo.add_quote("Hello there.", "Obi-Wan", attribution="Revenge of the Sith")
        assert repo.get(quote.id).attribution == "Revenge of the Sith"

    def test_add_quote_without_letters_rejected(self, repo):
        with pytest.raises(InvalidQuoteError):
            repo.add_quote("1, 2, 3!", "Nobody")
        assert repo.count() == 0

    def test_add_quote_with_only_non_ascii_letters_rejected(self, repo):
        with pytest.raises(InvalidQuoteError):
            repo.add_quote("ß", "Nobody")
        assert repo.count() == 0

    def test_add_quote_unknown_difficulty_rejected(self, repo):
        with pytest.raises(ValueError):
            repo.add_quote("Hello", "Nobody", difficulty="impossible")

    def test_list_ordered_by_difficulty_then_text(self, repo):
        repo.add_quote("Zebra crossing", "A", difficulty="hard")
        repo.add_quote("Beta test", "B", difficulty="medium")
        repo.add_quote("Alpha test", "C", difficulty="medium")
        repo.add_quote("Yak shaving", "D", difficulty="easy")

        listed = [(q.difficulty, q.text) for q in repo.list_quotes()]
        assert listed == [
            ("easy", "Yak shaving"),
            ("medium", "Alpha test"),
            ("medium", "Beta test"),
            ("hard", "Zebra crossing"),
        ]

    def test_get_missing_quote(self, repo):
        with pytest.raises(NotFoundError):
            repo.get(404)


class TestRandomQuote:
    """Tests for dealing random quotes"""

    def test_empty_repository_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.random_quote()

    def test_difficulty_filter(self, repo):
        repo.add_quote("Easy one", "A", difficulty="easy")
        hard = repo.add_quote("Hard one", "B", difficulty="hard")
        for _ in range(10):
            assert repo.random_quote("hard").id == hard.id

    def test_no_match_for_difficulty(self, repo):
        repo.add_quote("Easy one", "A", difficulty="easy")
        with pytest.raises(NotFoundError):
            repo.random_quote("hard")

    def test_dealing_increments_times_used(self, repo):
        quote = repo.add_quote("Only one", "A")
        repo.random_quote()
        dealt = repo.random_quote()
        assert dealt.times_used == 2
        assert repo.get(quote.id).times_used == 2

    def test_retired_quotes_not_dealt(self, repo):
        retired = repo.add_quote("Retired", "A")
        active = repo.add_quote("Active", "B")
        repo.retire(retired.id)

        for _ in range(10):
            assert repo.random_quote().id == active.id
        assert repo.get(retired.id).is_active is False
        assert len(repo.list_quotes()) == 2
        assert len(repo.list_quotes(include_inactive=False)) == 1

    def test_restore(self, repo):
        quote = repo.add_quote("Back again", "A")
        repo.retire(quote.id)
        with pytest.raises(NotFoundError):
            repo.random_quote()
        repo.restore(quote.id)
        assert repo.random_quote().id == quote.id

    def test_samples_across_all_active_quotes(self, repo):
        ids = {repo.add_quote(f"Quote number {word}", "A", difficulty=d).id
               for word, d in [("one", "easy"), ("two", "medium"), ("three", "hard")]}
        counts = Counter(repo.random_quote().id for _ in range(300))
        assert set(counts) == ids
        assert min(counts.values()) > 50


class TestDailyAndSeed:
    """Tests for daily quotes and the starter set"""

    def test_daily_quote(self, repo):
        quote = repo.add_quote("Daily wisdom", "A")
        day = date(2025, 5, 7)
        repo.set_daily(quote.id, day)

        daily = repo.daily_quote(day)
        assert daily.id == quote.id
        assert daily.is_daily
        assert daily.daily_date == day

    def test_daily_quote_replaced(self, repo):
        first = repo.add_quote("First", "A")
        second = repo.add_quote("Second", "B")
        day = date(2025, 5, 8)
        repo.set_daily(first.id, day)
        repo.set_daily(second.id, day)

        assert repo.daily_quote(day).id == second.id
        assert repo.get(first.id).is_daily is False

    def test_no_daily_quote(self, repo):
        with pytest.raises(NotFoundError):
            repo.daily_quote(date(2030, 1, 1))

    def test_seed_defaults_only_once(self, repo):
        assert repo.seed_defaults() == len(DEFAULT_QUOTES)
        assert repo.seed_defaults() == 0
        assert repo.count() == len(DEFAULT_QUOTES)
        assert {q.difficulty for q in repo.list_quotes()} == {"easy", "medium", "hard"}

    def test_seed_skipped_when_quotes_exist(self, repo):
        repo.add_quote("Mine", "Me")
        assert repo.seed_defaults() == 0
        assert repo.count() == 1

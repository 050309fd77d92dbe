"""
CipherEngine - Cryptogram Puzzle Engine

Generates the substitution cipher for a quote and evolves a game session
through letter selection, guesses and hints.

State machine:
- Active (no selection) <-> Active (letter selected)
- Correct guess / hint -> Active (no selection), or Won when every cipher
  letter is mapped
- Incorrect guess -> Active (no selection), or Lost when the mistake budget
  is used up
- Won / Lost are absorbing; only start_session leaves them

Every operation is a pure transition: it takes an immutable GameSession and
returns a new one (or the same object when nothing changes). There is no I/O
here, so the engine can be called directly from the presentation thread.
Randomness and time are injected so games are reproducible in tests.
"""

import logging
import random
import uuid
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from config import config
from engine.models import ALPHABET, GameSession, Puzzle, Quote, is_cipher_letter, upper_ascii, utcnow
from errors import InvalidQuoteError

logger = logging.getLogger(__name__)


def encrypt(text: str, letter_map: Dict[str, str]) -> str:
    """Substitute every A-Z character of text through letter_map"""
    return ''.join(letter_map.get(char, char) if is_cipher_letter(char) else char for char in text)


def decrypt(text: str, reverse_map: Dict[str, str]) -> str:
    """Inverse of encrypt, given the cipher -> plain map"""
    return ''.join(reverse_map.get(char, char) if is_cipher_letter(char) else char for char in text)


def invert_mapping(letter_map: Dict[str, str]) -> Dict[str, str]:
    return {cipher: plain for plain, cipher in letter_map.items()}


def is_alphabet_bijection(letter_map: Dict[str, str]) -> bool:
    """True if letter_map is a one-to-one map of A-Z onto A-Z"""
    return (set(letter_map.keys()) == set(ALPHABET) and
            set(letter_map.values()) == set(ALPHABET))


class CipherEngine:
    """
    Pure state transitions for a cryptogram game.

    Args:
        rng: Source of randomness for the cipher alphabet and hint choice.
             Pass a seeded random.Random for reproducible games.
        clock: Returns the current (naive UTC) time, used for timestamps.
        block_glyph: Character shown for letters not yet revealed.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 block_glyph: Optional[str] = None):
        self.rng = rng or random.Random()
        self.clock = clock or utcnow
        self.block_glyph = block_glyph or config.BLOCK_GLYPH

    # =========================================================================
    # Session creation
    # =========================================================================

    def generate_letter_map(self) -> Dict[str, str]:
        """Random plain -> cipher bijection over the whole alphabet"""
        shuffled = list(ALPHABET)
        self.rng.shuffle(shuffled)
        return dict(zip(ALPHABET, shuffled))

    def start_session(self, quote: Quote, max_mistakes: Optional[int] = None,
                      letter_map: Optional[Dict[str, str]] = None,
                      session_id: Optional[str] = None) -> GameSession:
        """
        Encrypt a quote and build a fresh session for it.

        Args:
            quote: Quote to encrypt (text is upper-cased)
            max_mistakes: Mistake budget; defaults to the quote difficulty's budget
            letter_map: Explicit plain -> cipher bijection over A-Z (random if None)
            session_id: Explicit session id (new UUID if None)

        Raises:
            InvalidQuoteError: if the quote has no letters to encrypt
            ValueError: if letter_map is not a bijection or max_mistakes < 1
        """
        plaintext = upper_ascii(quote.text)
        if not any(is_cipher_letter(char) for char in plaintext):
            raise InvalidQuoteError(f"Quote has no letters to encrypt: {quote.text!r}")

        if max_mistakes is None:
            max_mistakes = config.max_mistakes_for(quote.difficulty)
        if max_mistakes < 1:
            raise ValueError(f"max_mistakes must be positive, got {max_mistakes}")

        if letter_map is None:
            letter_map = self.generate_letter_map()
        else:
            letter_map = {plain.upper(): cipher.upper() for plain, cipher in letter_map.items()}
            if not is_alphabet_bijection(letter_map):
                raise ValueError("letter_map must be a bijection over A-Z")

        reverse_map = invert_mapping(letter_map)
        ciphertext = encrypt(plaintext, letter_map)
        puzzle = Puzzle(
            plaintext=plaintext,
            ciphertext=ciphertext,
            letter_map=letter_map,
            reverse_map=reverse_map,
        )

        now = self.clock()
        session = GameSession(
            session_id=session_id or str(uuid.uuid4()),
            puzzle=puzzle,
            display=self.render_display(ciphertext, {}),
            guessed_mappings={},
            selected_letter=None,
            mistakes=0,
            max_mistakes=max_mistakes,
            has_won=False,
            has_lost=False,
            started_at=now,
            last_updated_at=now,
            difficulty=quote.difficulty,
            quote_id=quote.id,
        )
        logger.debug(f"Started session {session.session_id} "
                     f"({len(unique_cipher_letters(session))} letters, max_mistakes={max_mistakes})")
        return session

    def render_display(self, ciphertext: str, guessed_mappings: Dict[str, str]) -> str:
        """Revealed letters in place, block glyph for the rest, punctuation as-is"""
        chars = []
        for char in ciphertext:
            if not is_cipher_letter(char):
                chars.append(char)
            else:
                chars.append(guessed_mappings.get(char, self.block_glyph))
        return ''.join(chars)

    # =========================================================================
    # Transitions
    # =========================================================================

    def select_letter(self, session: GameSession, cipher_letter: str) -> GameSession:
        """
        Select a cipher letter to guess.

        Selecting a letter that is already solved, or that does not occur in
        the ciphertext, clears the selection instead.
        """
        if session.is_terminal:
            return session

        letter = (cipher_letter or '').upper()
        if letter in session.guessed_mappings or letter not in session.puzzle.ciphertext or not is_cipher_letter(letter):
            selected = None
        else:
            selected = letter

        if selected == session.selected_letter:
            return session
        return replace(session, selected_letter=selected)

    def guess(self, session: GameSession, plain_letter: str) -> Tuple[GameSession, bool]:
        """
        Guess the plaintext letter for the selected cipher letter.

        Returns:
            Tuple of (new session, whether the guess was correct). Without a
            selection, or on a finished game, the session comes back unchanged.
        """
        if session.is_terminal or session.selected_letter is None:
            return session, False

        selected = session.selected_letter
        correct = session.puzzle.reverse_map.get(selected) == (plain_letter or '').upper()

        if correct:
            updated = self._reveal(session, selected)
        else:
            mistakes = session.mistakes + 1
            updated = replace(
                session,
                mistakes=mistakes,
                has_lost=mistakes >= session.max_mistakes,
                selected_letter=None,
                last_updated_at=self.clock(),
            )
            if updated.has_lost:
                logger.info(f"Session {session.session_id} lost after {mistakes} mistakes")

        return updated, correct

    def hint(self, session: GameSession) -> Tuple[GameSession, Optional[Tuple[str, str]]]:
        """
        Reveal one random unsolved letter at the cost of one mistake.

        The win check runs before the loss check, so a hint that completes the
        puzzle wins even if it also uses up the last mistake.

        Returns:
            Tuple of (new session, (cipher, plain) revealed) or (session, None)
            if there is nothing left to reveal.
        """
        if session.is_terminal:
            return session, None

        candidates = [letter for letter in unique_cipher_letters(session)
                      if letter not in session.guessed_mappings]
        if not candidates:
            return session, None

        cipher_letter = self.rng.choice(candidates)
        plain_letter = session.puzzle.reverse_map[cipher_letter]

        revealed = self._reveal(session, cipher_letter)
        mistakes = revealed.mistakes + 1
        updated = replace(
            revealed,
            mistakes=mistakes,
            has_lost=not revealed.has_won and mistakes >= session.max_mistakes,
        )
        if updated.has_lost:
            logger.info(f"Session {session.session_id} lost on a hint")

        return updated, (cipher_letter, plain_letter)

    def _reveal(self, session: GameSession, cipher_letter: str) -> GameSession:
        """Record the correct mapping for cipher_letter and re-check the win"""
        guessed = dict(session.guessed_mappings)
        guessed[cipher_letter] = session.puzzle.reverse_map[cipher_letter]

        has_won = set(unique_cipher_letters(session)) <= set(guessed)
        if has_won:
            logger.info(f"Session {session.session_id} won with {session.mistakes} mistakes")

        return replace(
            session,
            guessed_mappings=guessed,
            display=self.render_display(session.puzzle.ciphertext, guessed),
            selected_letter=None,
            has_won=has_won,
            last_updated_at=self.clock(),
        )


# =============================================================================
# Queries
# =============================================================================

def unique_cipher_letters(session: GameSession) -> List[str]:
    """Sorted distinct cipher letters that appear in the ciphertext"""
    return sorted({char for char in session.puzzle.ciphertext if is_cipher_letter(char)})


def guessed_letters(session: GameSession) -> List[str]:
    """Sorted cipher letters that have already been solved"""
    return sorted(session.guessed_mappings)


def letter_frequency(session: GameSession) -> Dict[str, int]:
    """How often each cipher letter occurs in the ciphertext"""
    return dict(Counter(char for char in session.puzzle.ciphertext if is_cipher_letter(char)))


def is_terminal(session: GameSession) -> bool:
    return session.is_terminal

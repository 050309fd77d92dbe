"""
Session Store - Data Access Layer

Persists the single in-progress game so play can resume after the app is
interrupted.
"""

import logging
from typing import Optional

from engine.cipher import decrypt, invert_mapping, is_alphabet_bijection
from engine.models import GameSession, Puzzle, is_cipher_letter
from engine.scoring import compute_score, elapsed_seconds
from errors import SerializationError
from .codec import decode_letters, decode_mapping, encode_letters, encode_mapping
from .database import Database
from .models import GameRecord

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Store for the in-flight game session.

    Exactly one unfinished session exists at a time: saving a session
    removes any other unfinished one.
    """

    def __init__(self, database: Database):
        self.database = database

    def save(self, game: GameSession) -> None:
        """Insert or update the session, superseding any other unfinished one"""
        is_complete = game.is_terminal

        with self.database.session_scope() as session:
            superseded = session.query(GameRecord).filter(
                GameRecord.is_complete.is_(False),
                GameRecord.session_id != game.session_id,
            ).delete(synchronize_session=False)
            if superseded:
                logger.info(f"Discarded {superseded} superseded unfinished session(s)")

            record = session.query(GameRecord).filter_by(session_id=game.session_id).first()
            if record is None:
                record = GameRecord(
                    session_id=game.session_id,
                    quote_id=game.quote_id,
                    original_text=game.puzzle.plaintext,
                    encrypted_text=game.puzzle.ciphertext,
                    mapping=encode_mapping(game.puzzle.letter_map),
                    reverse_mapping=encode_mapping(game.puzzle.reverse_map),
                    max_mistakes=game.max_mistakes,
                    difficulty=game.difficulty,
                    created_at=game.started_at,
                )
                session.add(record)

            record.current_display = game.display
            record.correctly_guessed = encode_letters(game.guessed_mappings.keys())
            record.mistakes = game.mistakes
            record.has_won = game.has_won
            record.has_lost = game.has_lost
            record.is_complete = is_complete
            record.last_updated = game.last_updated_at
            if is_complete:
                record.score = compute_score(game)
                record.time_taken = elapsed_seconds(game)

        logger.debug(f"Saved session {game.session_id} (complete={is_complete})")

    def load_latest_unfinished(self) -> Optional[GameSession]:
        """
        Most recently created session that is neither won nor lost.

        Raises:
            SerializationError: if the stored session cannot be decoded
        """
        with self.database.session_scope() as session:
            record = session.query(GameRecord).filter(
                GameRecord.is_complete.is_(False),
                GameRecord.has_won.is_(False),
                GameRecord.has_lost.is_(False),
            ).order_by(GameRecord.created_at.desc(), GameRecord.id.desc()).first()

            if record is None:
                return None
            return self._to_session(record)

    def clear(self, session_id: str) -> None:
        """Remove a stored session (no-op if it is not stored)"""
        with self.database.session_scope() as session:
            deleted = session.query(GameRecord).filter_by(session_id=session_id).delete(
                synchronize_session=False
            )
        if deleted:
            logger.info(f"Cleared session {session_id}")

    def _to_session(self, record: GameRecord) -> GameSession:
        """Rebuild a GameSession, checking the stored maps agree with the texts"""
        letter_map = decode_mapping(record.mapping, 'mapping')
        reverse_map = decode_mapping(record.reverse_mapping, 'reverse_mapping')
        solved = decode_letters(record.correctly_guessed, 'correctly_guessed')

        if not is_alphabet_bijection(letter_map) or invert_mapping(letter_map) != reverse_map:
            raise SerializationError(f"Session {record.session_id}: mapping and reverse_mapping disagree")
        if decrypt(record.encrypted_text, reverse_map) != record.original_text:
            raise SerializationError(f"Session {record.session_id}: encrypted text does not decrypt")
        if len(record.current_display) != len(record.encrypted_text):
            raise SerializationError(f"Session {record.session_id}: display length mismatch")

        missing = [letter for letter in solved if letter not in record.encrypted_text]
        if missing:
            raise SerializationError(
                f"Session {record.session_id}: solved letters not in puzzle: {''.join(missing)}"
            )

        mistakes, max_mistakes = record.mistakes, record.max_mistakes
        if max_mistakes is None or max_mistakes < 1:
            raise SerializationError(f"Session {record.session_id}: bad mistake budget {max_mistakes}")
        if mistakes is None or not 0 <= mistakes <= max_mistakes:
            raise SerializationError(
                f"Session {record.session_id}: mistakes {mistakes} outside 0..{max_mistakes}"
            )

        has_won, has_lost = bool(record.has_won), bool(record.has_lost)
        if has_won and has_lost:
            raise SerializationError(f"Session {record.session_id}: both won and lost")
        if not has_won and not has_lost:
            # An unfinished game has budget left and letters left to find
            if mistakes == max_mistakes:
                raise SerializationError(f"Session {record.session_id}: mistake budget spent but not lost")
            if set(solved) >= {char for char in record.encrypted_text if is_cipher_letter(char)}:
                raise SerializationError(f"Session {record.session_id}: every letter solved but not won")

        if not _display_matches(record.current_display, record.encrypted_text, reverse_map, set(solved)):
            raise SerializationError(
                f"Session {record.session_id}: display does not match the solved letters"
            )

        return GameSession(
            session_id=record.session_id,
            puzzle=Puzzle(
                plaintext=record.original_text,
                ciphertext=record.encrypted_text,
                letter_map=letter_map,
                reverse_map=reverse_map,
            ),
            display=record.current_display,
            guessed_mappings={letter: reverse_map[letter] for letter in solved},
            selected_letter=None,
            mistakes=mistakes,
            max_mistakes=max_mistakes,
            has_won=has_won,
            has_lost=has_lost,
            started_at=record.created_at,
            last_updated_at=record.last_updated,
            difficulty=record.difficulty,
            quote_id=record.quote_id,
        )


def _display_matches(display: str, ciphertext: str, reverse_map, solved) -> bool:
    """
    Solved positions show the plain letter, other cipher positions hide it
    behind a non-letter glyph, and everything else is copied from the
    ciphertext.
    """
    for shown, char in zip(display, ciphertext):
        if not is_cipher_letter(char):
            if shown != char:
                return False
        elif char in solved:
            if shown != reverse_map[char]:
                return False
        elif is_cipher_letter(shown):
            return False
    return True

"""
Blob encoding for the games table.

Letter maps are stored as UTF-8 JSON objects with sorted keys and the solved
letters as a UTF-8 JSON array. Decoding checks the shape of what comes back
and raises SerializationError for anything that is not a clean letter map or
letter list.
"""

import json
from typing import Dict, Iterable, List

from engine.models import is_cipher_letter
from errors import SerializationError


def encode_mapping(mapping: Dict[str, str]) -> bytes:
    return json.dumps(mapping, sort_keys=True).encode('utf-8')


def decode_mapping(blob: bytes, column: str = 'mapping') -> Dict[str, str]:
    """Decode a letter -> letter map, raising SerializationError if malformed"""
    data = _load(blob, column)
    if not isinstance(data, dict):
        raise SerializationError(f"{column}: expected a JSON object, got {type(data).__name__}")

    for key, value in data.items():
        if not (isinstance(value, str) and is_cipher_letter(key) and is_cipher_letter(value)):
            raise SerializationError(f"{column}: invalid entry {key!r} -> {value!r}")
    return data


def encode_letters(letters: Iterable[str]) -> bytes:
    return json.dumps(sorted(letters)).encode('utf-8')


def decode_letters(blob: bytes, column: str = 'correctly_guessed') -> List[str]:
    """Decode a list of letters; a NULL column decodes as no letters"""
    if blob is None:
        return []

    data = _load(blob, column)
    if not isinstance(data, list):
        raise SerializationError(f"{column}: expected a JSON array, got {type(data).__name__}")

    for letter in data:
        if not (isinstance(letter, str) and is_cipher_letter(letter)):
            raise SerializationError(f"{column}: invalid letter {letter!r}")
    return data


def _load(blob: bytes, column: str):
    if blob is None:
        raise SerializationError(f"{column}: missing blob")
    try:
        return json.loads(bytes(blob).decode('utf-8'))
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise SerializationError(f"{column}: cannot decode blob: {e}") from e

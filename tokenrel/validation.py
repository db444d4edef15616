"""
Input Validation for the Token Relation Engine.

Every instruction parameter passes through one of these functions
before it may touch SystemState. A validator either returns the
cleaned value or raises a ValidationError; there is no partial result.
"""

from __future__ import annotations

import re
import time
from typing import Any, Iterable, Optional

from .domain import ErrorKind, ValidationError


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Token sets larger than this need an explicit force to be generated
TOKEN_COUNT_THRESHOLD = 10_000

# Key under which the key-value store keeps the state snapshot
STATE_KEY = "token_system_state"

# Directory exports are written to, and the default export file name prefix
DOCUMENTS_DIR = "/Documents"
EXPORT_PREFIX = "token-system"

# Whitespace runs inside relation names collapse to one underscore
_WHITESPACE_RUN = re.compile(r"\s+")


# =============================================================================
# LEXICON VALIDATION
# =============================================================================

def dedupe_alphabet(alphabet: Optional[str]) -> str:
    """
    Remove repeated characters, keeping first-occurrence order.

    Raises:
        ValidationError: If the alphabet is missing or empty (EmptyAlphabet)
    """
    if not alphabet:
        raise ValidationError(ErrorKind.EMPTY_ALPHABET, "Alphabet cannot be empty")
    return "".join(dict.fromkeys(str(alphabet)))


def coerce_max_length(value: Any) -> int:
    """
    Accept a positive integer, or a string holding one.

    Booleans and non-integral floats are rejected.

    Raises:
        ValidationError: If value is not a positive integer (InvalidLength)
    """
    error = ValidationError(
        ErrorKind.INVALID_LENGTH,
        "Max length must be a positive integer",
    )
    if isinstance(value, bool) or value is None:
        raise error
    if isinstance(value, float):
        if not value.is_integer():
            raise error
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r"[+]?\d+", value):
            raise error
        try:
            value = int(value)
        except ValueError:
            raise error
    if not isinstance(value, int) or value < 1:
        raise error
    return value


# =============================================================================
# RELATION VALIDATION
# =============================================================================

def normalize_relation_name(name: Optional[str]) -> str:
    """
    Trim, upper-case, and join whitespace runs with underscores.

    Raises:
        ValidationError: If nothing is left after trimming (EmptyName)
    """
    normalized = _WHITESPACE_RUN.sub("_", (name or "").strip().upper())
    if not normalized:
        raise ValidationError(ErrorKind.EMPTY_NAME, "Relation name cannot be empty")
    return normalized


def require_definition(definition: Optional[str]) -> str:
    """
    Trim a predicate body.

    Raises:
        ValidationError: If the body is blank (EmptyBody)
    """
    body = (definition or "").strip()
    if not body:
        raise ValidationError(ErrorKind.EMPTY_BODY, "Relation definition cannot be empty")
    return body


def is_missing(value: Any) -> bool:
    """True for None and for empty strings (form fields left blank)."""
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_relation_id(value: Any) -> int:
    """
    Relation ids are integers but often arrive as strings from forms.

    Raises:
        ValidationError: If the id is missing (MissingId) or not integral
    """
    if is_missing(value):
        raise ValidationError(ErrorKind.MISSING_ID, "Relation ID is required")
    if isinstance(value, bool):
        raise ValidationError(ErrorKind.MISSING_ID, f"Invalid relation ID: {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(ErrorKind.MISSING_ID, f"Invalid relation ID: {value!r}")


# =============================================================================
# ID GENERATION
# =============================================================================

_last_issued_id = 0


def create_relation_id(existing_ids: Iterable[int] = ()) -> int:
    """
    Generate a time-based relation id that cannot collide.

    The millisecond clock is the starting point; the id is bumped past
    the last id issued by this process and skips any id already in use,
    so two relations created within the same tick still differ.
    """
    global _last_issued_id
    taken = set(existing_ids)
    candidate = max(time.time_ns() // 1_000_000, _last_issued_id + 1)
    while candidate in taken:
        candidate += 1
    _last_issued_id = candidate
    return candidate


def default_export_name() -> str:
    """Time-derived export file name, e.g. token-system-1700000000000.json."""
    return f"{EXPORT_PREFIX}-{time.time_ns() // 1_000_000}.json"

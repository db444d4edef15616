"""
JSON snapshot codec for SystemState.

Wire format:
    {
      "lexicon": {"alphabet": str, "maxLength": int},
      "generatedTokens": [str, ...],
      "relationDefinitions": [{"id": int, "name": str, "definition": str}, ...]
    }

Compact encoding is used for the key-value store, pretty encoding
(2-space indent) for files. Both are deterministic for a given state.
"""

from __future__ import annotations

import json
from typing import Any

from ..domain import (
    ErrorKind,
    LexiconConfig,
    RelationDefinition,
    StorageError,
    SystemState,
    TokenRelError,
)

REQUIRED_FIELDS = ("lexicon", "generatedTokens", "relationDefinitions")


def state_to_dict(state: SystemState) -> dict:
    """Render a state as the persisted mapping."""
    return {
        "lexicon": {
            "alphabet": state.lexicon.alphabet,
            "maxLength": state.lexicon.max_length,
        },
        "generatedTokens": list(state.tokens),
        "relationDefinitions": [relation.to_dict() for relation in state.relations],
    }


def encode_state(state: SystemState, pretty: bool = False) -> bytes:
    """Serialize a state to UTF-8 JSON bytes."""
    if pretty:
        text = json.dumps(state_to_dict(state), indent=2, ensure_ascii=False)
    else:
        text = json.dumps(state_to_dict(state), separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def _invalid(reason: str) -> StorageError:
    return StorageError(
        ErrorKind.INVALID_FORMAT,
        f"Invalid token system file format: {reason}",
    )


def _require_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise _invalid(f"{what} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise _invalid(f"{what} must be an integer")
    return value


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise _invalid(f"{what} must be a string")
    return value


def state_from_dict(payload: Any) -> SystemState:
    """
    Build a state from a parsed mapping.

    Raises:
        StorageError: If a required field is absent or malformed (InvalidFormat)
    """
    if not isinstance(payload, dict):
        raise _invalid("top level must be an object")

    missing = [name for name in REQUIRED_FIELDS if payload.get(name) is None]
    if missing:
        raise _invalid(f"missing {', '.join(missing)}")

    lexicon = payload["lexicon"]
    if not isinstance(lexicon, dict):
        raise _invalid("lexicon must be an object")

    tokens = payload["generatedTokens"]
    if not isinstance(tokens, list):
        raise _invalid("generatedTokens must be a list")

    relations = payload["relationDefinitions"]
    if not isinstance(relations, list):
        raise _invalid("relationDefinitions must be a list")

    try:
        config = LexiconConfig(
            alphabet=_require_str(lexicon.get("alphabet"), "lexicon.alphabet"),
            max_length=_require_int(lexicon.get("maxLength"), "lexicon.maxLength"),
        )
    except StorageError:
        raise
    except TokenRelError as e:
        raise _invalid(e.message)

    definitions = []
    for index, entry in enumerate(relations):
        if not isinstance(entry, dict):
            raise _invalid(f"relationDefinitions[{index}] must be an object")
        definitions.append(
            RelationDefinition(
                id=_require_int(entry.get("id"), f"relationDefinitions[{index}].id"),
                name=_require_str(entry.get("name"), f"relationDefinitions[{index}].name"),
                definition=_require_str(
                    entry.get("definition"), f"relationDefinitions[{index}].definition"
                ),
            )
        )

    return SystemState(
        lexicon=config,
        tokens=[_require_str(token, "generatedTokens[]") for token in tokens],
        relations=definitions,
    )


def decode_state(data: bytes) -> SystemState:
    """
    Parse JSON bytes into a state.

    Raises:
        StorageError: If the bytes are not JSON (StorageError) or the
            content does not match the snapshot format (InvalidFormat)
    """
    try:
        payload = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageError(ErrorKind.STORAGE_ERROR, f"Import error: {e}")
    return state_from_dict(payload)

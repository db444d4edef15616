"""
Core Domain Objects for the Token Relation Engine.

All state the engine owns is expressed with these objects. Every
failure the engine can report is expressed with the error taxonomy
below, so callers only ever see one uniform shape.

Domain Objects:
    LexiconConfig       — Alphabet + maximum token length
    RelationDefinition  — A named, user-authored predicate over two tokens
    SystemState         — The single aggregate of lexicon, tokens, relations
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# =============================================================================
# ERROR TAXONOMY
# =============================================================================

class ErrorKind(Enum):
    """
    Failure codes reported in instruction results.

    Grouped by the error family that raises them:
    Validation: empty alphabet, bad length, empty name/body, missing input
    NotFound:   unknown relation id, absent import file
    Conflict:   duplicate relation name
    Definition: malformed or failing user predicate
    Storage:    unreadable, unparseable or unwritable snapshot
    Threshold:  soft warnings that require an explicit force
    """
    UNKNOWN_OPCODE = "UnknownOpcode"
    NO_STATE = "NoState"
    EMPTY_ALPHABET = "EmptyAlphabet"
    INVALID_LENGTH = "InvalidLength"
    EMPTY_NAME = "EmptyName"
    EMPTY_BODY = "EmptyBody"
    INVALID_DEFINITION = "InvalidDefinition"
    MISSING_ID = "MissingId"
    MISSING_ARGUMENT = "MissingArgument"
    MISSING_PATH = "MissingPath"
    NOT_FOUND = "NotFound"
    FILE_NOT_FOUND = "FileNotFound"
    DUPLICATE_NAME = "DuplicateName"
    EVALUATION_ERROR = "EvaluationError"
    INVALID_FORMAT = "InvalidFormat"
    STORAGE_ERROR = "StorageError"
    TOKEN_THRESHOLD = "TokenThreshold"
    FILE_EXISTS = "FileExists"


class TokenRelError(Exception):
    """
    Base for every failure an instruction can report.

    `extras` carries opcode-specific result fields (e.g. token_count,
    file_path) that must reach the caller alongside the message.
    """

    def __init__(self, kind: ErrorKind, message: str, **extras: Any):
        self.kind = kind
        self.message = message
        self.extras = extras
        super().__init__(f"[{kind.value}] {message}")


class ValidationError(TokenRelError):
    """Bad or missing input."""
    pass


class NotFoundError(TokenRelError):
    """A referenced relation or file does not exist."""
    pass


class ConflictError(TokenRelError):
    """A relation name is already taken."""
    pass


class DefinitionError(TokenRelError):
    """A user-authored predicate is malformed or raised while running."""
    pass


class StorageError(TokenRelError):
    """Reading, writing or parsing a persisted snapshot failed."""
    pass


class ThresholdWarning(TokenRelError):
    """
    Not a true error: the operation is allowed but needs confirmation.

    The caller re-issues the instruction with force=True to proceed.
    """
    pass


# =============================================================================
# LEXICON
# =============================================================================

@dataclass
class LexiconConfig:
    """
    Alphabet and maximum token length.

    The alphabet is stored de-duplicated, in first-occurrence order.
    """
    alphabet: str
    max_length: int

    def __post_init__(self):
        if not self.alphabet:
            raise ValidationError(ErrorKind.EMPTY_ALPHABET, "Alphabet cannot be empty")
        if self.max_length < 1:
            raise ValidationError(
                ErrorKind.INVALID_LENGTH,
                "Max length must be a positive integer",
            )


# =============================================================================
# RELATIONS
# =============================================================================

@dataclass
class RelationDefinition:
    """
    A named binary predicate over two tokens.

    `definition` is opaque source text evaluated against the symbolic
    parameters tokenA and tokenB. The name is already normalized.
    """
    id: int
    name: str
    definition: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "definition": self.definition}


# =============================================================================
# SYSTEM STATE
# =============================================================================

@dataclass
class SystemState:
    """
    The single in-memory aggregate owned by a running engine.

    Tokens keep generation order, relations keep insertion order.
    """
    lexicon: LexiconConfig
    tokens: list[str] = field(default_factory=list)
    relations: list[RelationDefinition] = field(default_factory=list)

    def relation_ids(self) -> set[int]:
        return {relation.id for relation in self.relations}


# Default snapshot used on first start and on reset
DEFAULT_STATE = SystemState(
    lexicon=LexiconConfig(alphabet="01", max_length=3),
    tokens=[
        "0", "1",
        "00", "01", "10", "11",
        "000", "001", "010", "011", "100", "101", "110", "111",
    ],
    relations=[
        RelationDefinition(1678886400000, "EQUALS", "return tokenA == tokenB"),
        RelationDefinition(1678886400001, "IS_PREFIX_OF", "return tokenB.startswith(tokenA)"),
        RelationDefinition(1678886400002, "IS_SUFFIX_OF", "return tokenB.endswith(tokenA)"),
        RelationDefinition(1678886400003, "CONTAINS", "return tokenA in tokenB"),
    ],
)


def default_state() -> SystemState:
    """Return a fresh deep copy of the default snapshot."""
    return copy.deepcopy(DEFAULT_STATE)


def find_relation(state: SystemState, relation_id: int) -> Optional[RelationDefinition]:
    """Find a relation by id."""
    for relation in state.relations:
        if relation.id == relation_id:
            return relation
    return None


def find_relation_by_name(state: SystemState, name: str) -> Optional[RelationDefinition]:
    """Find a relation by its exact, already-normalized name."""
    for relation in state.relations:
        if relation.name == name:
            return relation
    return None

"""
State Container lifecycle: initialize, save, import, export.

`initialize` is the one boundary that swallows failures: whatever
goes wrong while loading, the engine ends up with a usable state.
Every other operation raises and leaves the current state untouched.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Optional

from ..context import SystemContext
from ..domain import (
    ErrorKind,
    NotFoundError,
    StorageError,
    ThresholdWarning,
    TokenRelError,
    ValidationError,
    default_state,
)
from ..results import InstructionResult
from ..validation import DOCUMENTS_DIR, STATE_KEY, default_export_name, is_missing
from .snapshot import decode_state, encode_state

logger = logging.getLogger(__name__)


# =============================================================================
# LOAD
# =============================================================================

def initialize(
    context: SystemContext,
    path: Optional[str] = None,
    restore: bool = False,
) -> InstructionResult:
    """
    Load state from a file, else from the key-value store, else defaults.

    Never fails: any read or parse problem falls back to a fresh copy
    of the default snapshot.
    """
    try:
        if path:
            content = context.file_store.read(path)
            if content:
                context.replace_state(decode_state(content))
                logger.info("State loaded from %s", path)
                return InstructionResult.ok("State loaded from file")
        elif restore:
            content = context.kv_store.get(STATE_KEY)
            if content:
                context.replace_state(decode_state(content))
                logger.info("State restored from key-value store")
                return InstructionResult.ok("State restored from local store")

        context.replace_state(default_state())
        return InstructionResult.ok("New state initialized with defaults")

    except (TokenRelError, OSError) as e:
        logger.warning("Falling back to default state: %s", e)

    context.replace_state(default_state())
    return InstructionResult.ok("Error occurred, initialized with defaults")


# =============================================================================
# SAVE
# =============================================================================

def save(context: SystemContext, path: Optional[str] = None) -> InstructionResult:
    """
    Persist to the key-value store, and to `path` when given.

    Raises:
        ValidationError: If there is no state (NoState)
        StorageError: If a collaborator fails to write
    """
    if context.state is None:
        raise ValidationError(ErrorKind.NO_STATE, "No state to save")

    context.kv_store.set(STATE_KEY, encode_state(context.state))

    if path:
        context.file_store.write(path, encode_state(context.state, pretty=True))
        logger.info("State saved to %s", path)
        return InstructionResult.ok(f"State saved to {path}", file_path=path)

    logger.info("State saved to key-value store")
    return InstructionResult.ok("State saved to local store")


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

def import_from(context: SystemContext, path: Optional[str]) -> InstructionResult:
    """
    Replace the state wholesale with the snapshot stored at `path`.

    Raises:
        ValidationError: If no path is given (MissingPath)
        NotFoundError: If the file does not exist (FileNotFound)
        StorageError: If the file is unreadable, not JSON, or lacks
            lexicon / generatedTokens / relationDefinitions (InvalidFormat)
    """
    if is_missing(path):
        raise ValidationError(ErrorKind.MISSING_PATH, "No file path provided")

    if not context.file_store.exists(path):
        raise NotFoundError(ErrorKind.FILE_NOT_FOUND, "File does not exist")

    content = context.file_store.read(path)
    if not content:
        raise StorageError(ErrorKind.STORAGE_ERROR, "Failed to read file")

    imported = decode_state(content)
    context.replace_state(imported)
    context.kv_store.set(STATE_KEY, encode_state(imported))

    logger.info(
        "Imported state from %s (%d tokens, %d relations)",
        path, len(imported.tokens), len(imported.relations),
    )
    return InstructionResult.ok("State imported successfully", file_path=path)


def export_path(file_name: Optional[str] = None) -> str:
    """Destination inside the documents directory."""
    name = file_name.strip() if not is_missing(file_name) else default_export_name()
    return posixpath.join(DOCUMENTS_DIR, name)


def export_to(
    context: SystemContext,
    file_name: Optional[str] = None,
    force: bool = False,
) -> InstructionResult:
    """
    Write a pretty-printed snapshot into the documents directory.

    Raises:
        ValidationError: If there is no state (NoState)
        ThresholdWarning: If the file exists and force is not set
            (FileExists, carries require_confirmation and file_path)
    """
    if context.state is None:
        raise ValidationError(ErrorKind.NO_STATE, "No state to export")

    file_path = export_path(file_name)

    if context.file_store.exists(file_path) and not force:
        raise ThresholdWarning(
            ErrorKind.FILE_EXISTS,
            "File already exists",
            require_confirmation=True,
            file_path=file_path,
        )

    context.file_store.write(file_path, encode_state(context.state, pretty=True))
    logger.info("Exported state to %s", file_path)
    return InstructionResult.ok(f"Exported to {file_path}", file_path=file_path)

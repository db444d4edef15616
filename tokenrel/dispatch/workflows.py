"""
Interactive workflows built on the dispatcher.

Each workflow is a sequence of instructions where some steps wait on
the dialog presenter (confirm / prompt). A cancelled or failed step
ends the workflow; nothing after it runs and the state is left as the
last successful instruction left it.

Workflows return the final InstructionResult, or None when the user
cancelled before any state-changing instruction was issued.

The context is read directly only to fill prompt defaults and to list
import candidates; every change is an instruction.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..domain import find_relation
from ..results import InstructionResult
from ..validation import DOCUMENTS_DIR, default_export_name
from .dispatcher import Dispatcher
from .opcodes import Opcode

logger = logging.getLogger(__name__)

DEFAULT_DEFINITION = "return tokenA == tokenB"


# =============================================================================
# DIALOG STEPS
# =============================================================================

async def _notify(dispatcher: Dispatcher, title: str, message: Optional[str]) -> None:
    await dispatcher.run(Opcode.NOTIFY, {"title": title, "message": message or ""})


async def _report(dispatcher: Dispatcher, result: InstructionResult, title: str) -> InstructionResult:
    await _notify(dispatcher, title if result.success else "Error", result.message)
    return result


async def _confirm(dispatcher: Dispatcher, title: str, message: str) -> bool:
    answer = await dispatcher.run(Opcode.CONFIRM, {"title": title, "message": message})
    return bool(answer.confirmed)


async def _prompt(dispatcher: Dispatcher, title: str, default: str = "") -> Optional[str]:
    answer = await dispatcher.run(Opcode.PROMPT, {"title": title, "default": default})
    if answer.cancelled:
        return None
    return answer.value


# =============================================================================
# LEXICON
# =============================================================================

async def generate_tokens_flow(
    dispatcher: Dispatcher,
    alphabet: str,
    max_length: Any,
) -> Optional[InstructionResult]:
    """Generate; on a size warning ask once, then retry with force."""
    params = {"alphabet": alphabet, "maxLength": max_length}
    result = await dispatcher.run(Opcode.GENERATE_TOKENS, params)

    if not result.success and result.warning:
        if not await _confirm(dispatcher, "Warning", f"{result.message} Continue?"):
            logger.info("Token generation cancelled at %s tokens", result.token_count)
            return None
        result = await dispatcher.run(Opcode.GENERATE_TOKENS, {**params, "force": True})

    return await _report(dispatcher, result, "Success")


# =============================================================================
# RELATIONS
# =============================================================================

async def add_relation_flow(
    dispatcher: Dispatcher,
    name: Optional[str] = None,
    definition: Optional[str] = None,
) -> Optional[InstructionResult]:
    """Ask for whatever is missing, then add the relation."""
    if name is None:
        name = await _prompt(dispatcher, "Enter relation name (e.g. IS_PREFIX_OF)")
        if name is None:
            return None
    if definition is None:
        definition = await _prompt(
            dispatcher,
            "Enter relation definition using tokenA and tokenB",
            DEFAULT_DEFINITION,
        )
        if definition is None:
            return None

    result = await dispatcher.run(
        Opcode.UPSERT_RELATION, {"name": name, "definition": definition}
    )
    return await _report(dispatcher, result, "Success")


async def edit_relation_flow(
    dispatcher: Dispatcher,
    relation_id: Any,
    name: Optional[str] = None,
    definition: Optional[str] = None,
) -> Optional[InstructionResult]:
    """Ask for a new name and body, defaulting to the current ones."""
    current = None
    state = dispatcher.context.state
    if state is not None:
        try:
            current = find_relation(state, int(relation_id))
        except (TypeError, ValueError):
            current = None

    if name is None:
        name = await _prompt(dispatcher, "Edit relation name", current.name if current else "")
        if name is None:
            return None
    if definition is None:
        definition = await _prompt(
            dispatcher,
            "Edit relation definition",
            current.definition if current else DEFAULT_DEFINITION,
        )
        if definition is None:
            return None

    result = await dispatcher.run(
        Opcode.UPSERT_RELATION,
        {"id": relation_id, "name": name, "definition": definition},
    )
    return await _report(dispatcher, result, "Success")


async def delete_relation_flow(dispatcher: Dispatcher, relation_id: Any) -> Optional[InstructionResult]:
    """Confirm, then delete."""
    if not await _confirm(dispatcher, "Delete Relation", "Are you sure you want to delete this relation?"):
        return None
    result = await dispatcher.run(Opcode.DELETE_RELATION, {"id": relation_id})
    return await _report(dispatcher, result, "Success")


async def compare_flow(
    dispatcher: Dispatcher,
    token_a: str,
    token_b: str,
    relation_id: Any,
) -> InstructionResult:
    """Compare and announce the outcome."""
    result = await dispatcher.run(
        Opcode.COMPARE_TOKENS,
        {"tokenA": token_a, "tokenB": token_b, "relationId": relation_id},
    )
    if result.success:
        await _notify(
            dispatcher,
            "Result",
            f"{result.relation}({result.token_a}, {result.token_b}) = {result.result}",
        )
        return result
    return await _report(dispatcher, result, "Result")


# =============================================================================
# STATE
# =============================================================================

async def save_flow(dispatcher: Dispatcher, path: Optional[str] = None) -> InstructionResult:
    result = await dispatcher.run(Opcode.SAVE_STATE, {"path": path} if path else {})
    return await _report(dispatcher, result, "Saved")


async def reset_flow(dispatcher: Dispatcher) -> Optional[InstructionResult]:
    """Confirm, reinitialize with defaults, and persist the fresh state."""
    if not await _confirm(
        dispatcher,
        "Reset System",
        "This will reset all tokens and relations to defaults. Continue?",
    ):
        return None

    result = await dispatcher.run(Opcode.INIT_STATE, {})
    saved = await dispatcher.run(Opcode.SAVE_STATE, {})
    if not saved.success:
        return await _report(dispatcher, saved, "Reset")
    return await _report(dispatcher, result, "Reset")


async def export_flow(
    dispatcher: Dispatcher,
    file_name: Optional[str] = None,
) -> Optional[InstructionResult]:
    """Ask for a file name, export, and confirm before overwriting."""
    if file_name is None:
        file_name = await _prompt(dispatcher, "Export file name", default_export_name())
        if file_name is None:
            return None

    result = await dispatcher.run(Opcode.EXPORT_STATE, {"fileName": file_name})

    if not result.success and result.require_confirmation:
        if not await _confirm(
            dispatcher,
            "File Exists",
            f"{result.file_path} already exists. Overwrite?",
        ):
            return None
        result = await dispatcher.run(
            Opcode.EXPORT_STATE, {"fileName": file_name, "force": True}
        )

    return await _report(dispatcher, result, "Exported")


async def import_flow(dispatcher: Dispatcher, path: Optional[str] = None) -> Optional[InstructionResult]:
    """Offer the exported files, ask for a path, and import it."""
    if path is None:
        candidates = [
            entry.path
            for entry in dispatcher.context.file_store.list(DOCUMENTS_DIR)
            if entry.type == "file" and entry.name.endswith(".json")
        ]
        if candidates:
            await _notify(dispatcher, "Available files", ", ".join(candidates))
        path = await _prompt(
            dispatcher,
            "Path of the file to import",
            candidates[-1] if candidates else "",
        )
        if path is None:
            return None

    result = await dispatcher.run(Opcode.IMPORT_STATE, {"path": path})
    return await _report(dispatcher, result, "Imported")

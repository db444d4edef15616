"""
Instruction Dispatcher for the Token Relation Engine.

The dispatcher is the only way in. Callers hand it an opcode and a
parameter mapping (wire keys: maxLength, tokenA, relationId, ...) and
always get an InstructionResult back, or an awaitable of one for the
dialog instructions. Engine errors never escape `dispatch`.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ..context import SystemContext
from ..dialogs import resolve_answer
from ..domain import ErrorKind, TokenRelError
from ..lexicon.generator import generate
from ..relations.evaluator import compare
from ..relations.store import delete, upsert
from ..results import InstructionResult
from ..storage.lifecycle import export_to, import_from, initialize, save
from .opcodes import Opcode

logger = logging.getLogger(__name__)

Outcome = Union[InstructionResult, Awaitable[InstructionResult]]
Handler = Callable[[Mapping[str, Any], SystemContext], Outcome]


# =============================================================================
# HANDLERS
# =============================================================================

def _init_state(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return initialize(context, path=params.get("path"), restore=bool(params.get("restore")))


def _save_state(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return save(context, path=params.get("path"))


def _generate_tokens(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return generate(
        context,
        alphabet=params.get("alphabet"),
        max_length=params.get("maxLength"),
        force=bool(params.get("force")),
    )


def _upsert_relation(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return upsert(
        context,
        name=params.get("name"),
        definition=params.get("definition"),
        relation_id=params.get("id"),
    )


def _delete_relation(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return delete(context, params.get("id"))


def _compare_tokens(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return compare(
        context,
        token_a=params.get("tokenA"),
        token_b=params.get("tokenB"),
        relation_id=params.get("relationId"),
    )


def _import_state(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return import_from(context, params.get("path"))


def _export_state(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    return export_to(context, file_name=params.get("fileName"), force=bool(params.get("force")))


def _notify(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    title = params.get("title") or "Notification"
    message = params.get("message") or ""
    context.dialogs.notify(f"{title}: {message}")
    return InstructionResult.ok()


async def _confirm(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    title = params.get("title") or "Confirm"
    message = params.get("message") or "Are you sure?"
    confirmed = await resolve_answer(context.dialogs.confirm(f"{title}\n\n{message}"))
    return InstructionResult.ok(confirmed=bool(confirmed))


async def _prompt(params: Mapping[str, Any], context: SystemContext) -> InstructionResult:
    title = params.get("title") or "Input"
    default = params.get("default") or ""
    value = await resolve_answer(context.dialogs.prompt(title, default))
    return InstructionResult.ok(value=value, cancelled=value is None)


HANDLERS: dict[Opcode, Handler] = {
    Opcode.INIT_STATE: _init_state,
    Opcode.SAVE_STATE: _save_state,
    Opcode.GENERATE_TOKENS: _generate_tokens,
    Opcode.UPSERT_RELATION: _upsert_relation,
    Opcode.DELETE_RELATION: _delete_relation,
    Opcode.COMPARE_TOKENS: _compare_tokens,
    Opcode.IMPORT_STATE: _import_state,
    Opcode.EXPORT_STATE: _export_state,
    Opcode.NOTIFY: _notify,
    Opcode.CONFIRM: _confirm,
    Opcode.PROMPT: _prompt,
}


# =============================================================================
# DISPATCHER
# =============================================================================

class Dispatcher:
    """
    Routes opcodes to handlers over one SystemContext.

    Every Opcode member must have exactly one handler; this is checked
    when the dispatcher is built.
    """

    def __init__(
        self,
        context: Optional[SystemContext] = None,
        handlers: Optional[Mapping[Opcode, Handler]] = None,
    ):
        self.context = context if context is not None else SystemContext()
        self.handlers = dict(HANDLERS if handlers is None else handlers)

        missing = [opcode.name for opcode in Opcode if opcode not in self.handlers]
        if missing:
            raise ValueError(f"No handler for opcodes: {', '.join(missing)}")

    def dispatch(self, opcode: Any, params: Optional[Mapping[str, Any]] = None) -> Outcome:
        """
        Run one instruction.

        Returns an InstructionResult, or an awaitable resolving to one
        when the handler waits on a dialog.
        """
        try:
            code = Opcode(int(opcode))
        except (TypeError, ValueError):
            logger.warning("Unknown opcode: %r", opcode)
            return InstructionResult(
                success=False,
                message=f"Unknown instruction: {opcode}",
                error=ErrorKind.UNKNOWN_OPCODE,
            )

        params = params or {}
        logger.debug("dispatch %s %s", code.name, dict(params))

        try:
            outcome = self.handlers[code](params, self.context)
        except TokenRelError as e:
            return self._failed(code, e)

        if inspect.isawaitable(outcome):
            return self._settle(code, outcome)
        return outcome

    async def run(self, opcode: Any, params: Optional[Mapping[str, Any]] = None) -> InstructionResult:
        """Dispatch and await, whatever kind of handler answers."""
        return await resolve_answer(self.dispatch(opcode, params))

    async def _settle(self, code: Opcode, pending: Awaitable[InstructionResult]) -> InstructionResult:
        try:
            return await pending
        except TokenRelError as e:
            return self._failed(code, e)

    @staticmethod
    def _failed(code: Opcode, error: TokenRelError) -> InstructionResult:
        logger.info("%s failed: %s", code.name, error)
        return InstructionResult.from_error(error)

"""
Tests for the interactive workflows.

These tests verify:
1. Warn-then-retry and overwrite confirmation flows
2. Cancellation at any step aborts without mutating state
3. Synchronous and asynchronous dialog presenters behave the same
"""

import asyncio

import pytest

from tokenrel.context import SystemContext
from tokenrel.dispatch.dispatcher import Dispatcher
from tokenrel.dispatch.opcodes import Opcode
from tokenrel.dispatch import workflows
from tokenrel.domain import default_state
from tokenrel.storage.snapshot import encode_state
from tokenrel.validation import STATE_KEY


# =============================================================================
# TEST FIXTURES
# =============================================================================

EQUALS_ID = 1678886400000


class ScriptedDialogs:
    """Dialog presenter answering from queues."""

    def __init__(self, confirms=(), prompts=(), asynchronous=False):
        self.confirms = list(confirms)
        self.prompts = list(prompts)
        self.asynchronous = asynchronous
        self.notifications = []
        self.questions = []

    def notify(self, text):
        self.notifications.append(text)

    def _answer(self, value):
        if not self.asynchronous:
            return value

        async def later():
            await asyncio.sleep(0)
            return value
        return later()

    def confirm(self, text):
        self.questions.append(text)
        return self._answer(self.confirms.pop(0))

    def prompt(self, text, default=""):
        self.questions.append((text, default))
        return self._answer(self.prompts.pop(0))


def make_dispatcher(dialogs: ScriptedDialogs) -> Dispatcher:
    dispatcher = Dispatcher(SystemContext(dialogs=dialogs))
    dispatcher.dispatch(Opcode.INIT_STATE, {})
    return dispatcher


BOTH_MODES = pytest.mark.parametrize("asynchronous", [False, True])


# =============================================================================
# GENERATE FLOW TESTS
# =============================================================================

class TestGenerateFlow:
    """Test generate-with-warning-then-retry."""

    @BOTH_MODES
    def test_small_generation_needs_no_confirmation(self, asynchronous):
        dialogs = ScriptedDialogs(asynchronous=asynchronous)
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.generate_tokens_flow(dispatcher, "ab", 2))

        assert result.success
        assert dialogs.questions == []
        assert dialogs.notifications == ["Success: Generated 6 tokens"]

    @BOTH_MODES
    def test_confirmed_warning_forces_generation(self, asynchronous):
        dialogs = ScriptedDialogs(confirms=[True], asynchronous=asynchronous)
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.generate_tokens_flow(dispatcher, "0123456789", 4))

        assert result.success
        assert len(dispatcher.context.state.tokens) == 11110
        assert "11110 tokens" in dialogs.questions[0]

    @BOTH_MODES
    def test_declined_warning_changes_nothing(self, asynchronous):
        dialogs = ScriptedDialogs(confirms=[False], asynchronous=asynchronous)
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.generate_tokens_flow(dispatcher, "0123456789", 4))

        assert result is None
        assert dispatcher.context.state == default_state()

    def test_invalid_input_reported(self):
        dialogs = ScriptedDialogs()
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.generate_tokens_flow(dispatcher, "", 2))

        assert result.success is False
        assert dialogs.notifications == ["Error: Alphabet cannot be empty"]


# =============================================================================
# RELATION FLOW TESTS
# =============================================================================

class TestRelationFlows:
    """Test add / edit / delete / compare flows."""

    @BOTH_MODES
    def test_add_prompts_for_missing_fields(self, asynchronous):
        dialogs = ScriptedDialogs(
            prompts=["ends with one", "tokenA.endswith('1')"],
            asynchronous=asynchronous,
        )
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.add_relation_flow(dispatcher))

        assert result.success
        assert dispatcher.context.state.relations[-1].name == "ENDS_WITH_ONE"

    def test_add_cancelled_at_definition(self):
        dialogs = ScriptedDialogs(prompts=["name", None])
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.add_relation_flow(dispatcher))

        assert result is None
        assert len(dispatcher.context.state.relations) == 4

    def test_edit_defaults_to_current_values(self):
        dialogs = ScriptedDialogs(prompts=["EQUALS", "tokenA == tokenB"])
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.edit_relation_flow(dispatcher, EQUALS_ID))

        assert result.success
        assert dialogs.questions[0] == ("Edit relation name", "EQUALS")
        assert dialogs.questions[1] == ("Edit relation definition", "return tokenA == tokenB")

    def test_delete_requires_confirmation(self):
        dialogs = ScriptedDialogs(confirms=[False, True])
        dispatcher = make_dispatcher(dialogs)

        declined = asyncio.run(workflows.delete_relation_flow(dispatcher, EQUALS_ID))
        assert declined is None
        assert len(dispatcher.context.state.relations) == 4

        accepted = asyncio.run(workflows.delete_relation_flow(dispatcher, EQUALS_ID))
        assert accepted.success
        assert len(dispatcher.context.state.relations) == 3

    def test_compare_announces_result(self):
        dialogs = ScriptedDialogs()
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.compare_flow(dispatcher, "101", "101", EQUALS_ID))

        assert result.result is True
        assert dialogs.notifications == ["Result: EQUALS(101, 101) = True"]


# =============================================================================
# STATE FLOW TESTS
# =============================================================================

class TestStateFlows:
    """Test save / reset / export / import flows."""

    def test_reset_declined_keeps_state(self):
        dialogs = ScriptedDialogs(confirms=[False])
        dispatcher = make_dispatcher(dialogs)
        dispatcher.dispatch(Opcode.GENERATE_TOKENS, {"alphabet": "ab", "maxLength": 1})

        assert asyncio.run(workflows.reset_flow(dispatcher)) is None
        assert dispatcher.context.state.tokens == ["a", "b"]

    def test_reset_restores_and_persists_defaults(self):
        dialogs = ScriptedDialogs(confirms=[True])
        dispatcher = make_dispatcher(dialogs)
        dispatcher.dispatch(Opcode.GENERATE_TOKENS, {"alphabet": "ab", "maxLength": 1})

        result = asyncio.run(workflows.reset_flow(dispatcher))

        assert result.success
        assert dispatcher.context.state == default_state()
        assert dispatcher.context.kv_store.get(STATE_KEY) == encode_state(default_state())

    @BOTH_MODES
    def test_export_overwrite_confirmed(self, asynchronous):
        dialogs = ScriptedDialogs(confirms=[True], asynchronous=asynchronous)
        dispatcher = make_dispatcher(dialogs)
        dispatcher.context.file_store.write("/Documents/out.json", b"old")

        result = asyncio.run(workflows.export_flow(dispatcher, "out.json"))

        assert result.success
        assert dispatcher.context.file_store.read("/Documents/out.json") != b"old"
        assert "/Documents/out.json already exists" in dialogs.questions[0]

    def test_export_overwrite_declined(self):
        dialogs = ScriptedDialogs(confirms=[False])
        dispatcher = make_dispatcher(dialogs)
        dispatcher.context.file_store.write("/Documents/out.json", b"old")

        assert asyncio.run(workflows.export_flow(dispatcher, "out.json")) is None
        assert dispatcher.context.file_store.read("/Documents/out.json") == b"old"

    def test_export_prompt_cancelled(self):
        dialogs = ScriptedDialogs(prompts=[None])
        dispatcher = make_dispatcher(dialogs)

        assert asyncio.run(workflows.export_flow(dispatcher)) is None
        assert dispatcher.context.file_store.list("/Documents") == []

    def test_import_offers_exported_files(self):
        dialogs = ScriptedDialogs(prompts=["/Documents/saved.json"])
        dispatcher = make_dispatcher(dialogs)
        saved = default_state()
        saved.tokens = ["z"]
        dispatcher.context.file_store.write("/Documents/saved.json", encode_state(saved))

        result = asyncio.run(workflows.import_flow(dispatcher))

        assert result.success
        assert dispatcher.context.state.tokens == ["z"]
        assert dialogs.notifications[0] == "Available files: /Documents/saved.json"
        assert dialogs.questions[0] == ("Path of the file to import", "/Documents/saved.json")

    def test_save_flow_with_path(self):
        dialogs = ScriptedDialogs()
        dispatcher = make_dispatcher(dialogs)

        result = asyncio.run(workflows.save_flow(dispatcher, "/backup.json"))

        assert result.success
        assert dispatcher.context.file_store.exists("/backup.json")

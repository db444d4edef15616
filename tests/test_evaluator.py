"""
Tests for the Relation Evaluator.

These tests verify:
1. Built-in relations give the documented answers
2. Predicate results are passed through uncoerced
3. The sandbox refuses escapes at compile time
4. Runtime failures become per-call EvaluationErrors
"""

import pytest

from tokenrel.context import SystemContext
from tokenrel.domain import (
    DefinitionError,
    ErrorKind,
    NotFoundError,
    RelationDefinition,
    ValidationError,
    default_state,
)
from tokenrel.relations.evaluator import compare, compile_predicate, evaluate
from tokenrel.relations.store import upsert


# =============================================================================
# TEST FIXTURES
# =============================================================================

EQUALS_ID = 1678886400000
IS_PREFIX_OF_ID = 1678886400001
IS_SUFFIX_OF_ID = 1678886400002
CONTAINS_ID = 1678886400003


def make_context(*extra: RelationDefinition) -> SystemContext:
    context = SystemContext()
    context.replace_state(default_state())
    context.state.relations.extend(extra)
    return context


# =============================================================================
# BUILT-IN RELATION TESTS
# =============================================================================

class TestBuiltInRelations:
    """Test the default relations."""

    @pytest.mark.parametrize("relation_id,token_a,token_b,expected", [
        (EQUALS_ID, "101", "101", True),
        (EQUALS_ID, "101", "110", False),
        (IS_PREFIX_OF_ID, "10", "101", True),
        (IS_PREFIX_OF_ID, "01", "101", False),
        (IS_SUFFIX_OF_ID, "01", "101", True),
        (IS_SUFFIX_OF_ID, "10", "101", False),
        (CONTAINS_ID, "0", "101", True),
        (CONTAINS_ID, "00", "101", False),
    ])
    def test_builtin_results(self, relation_id, token_a, token_b, expected):
        result = compare(make_context(), token_a, token_b, relation_id)

        assert result.success
        assert result.result is expected
        assert result.token_a == token_a
        assert result.token_b == token_b

    def test_result_names_relation(self):
        result = compare(make_context(), "1", "1", EQUALS_ID)
        assert result.relation == "EQUALS"

    def test_string_relation_id_accepted(self):
        result = compare(make_context(), "10", "101", str(IS_PREFIX_OF_ID))
        assert result.result is True


# =============================================================================
# ARGUMENT TESTS
# =============================================================================

class TestCompareArguments:
    """Test missing arguments and unknown relations."""

    @pytest.mark.parametrize("token_a,token_b,relation_id", [
        (None, "1", EQUALS_ID),
        ("1", "", EQUALS_ID),
        ("1", "1", None),
    ])
    def test_missing_argument(self, token_a, token_b, relation_id):
        with pytest.raises(ValidationError) as exc:
            compare(make_context(), token_a, token_b, relation_id)
        assert exc.value.kind == ErrorKind.MISSING_ARGUMENT

    @pytest.mark.parametrize("relation_id", [12345, "not-a-number"])
    def test_unknown_relation(self, relation_id):
        with pytest.raises(NotFoundError) as exc:
            compare(make_context(), "1", "1", relation_id)
        assert exc.value.kind == ErrorKind.NOT_FOUND


# =============================================================================
# PREDICATE LANGUAGE TESTS
# =============================================================================

class TestPredicateLanguage:
    """Test expression and statement bodies."""

    def test_expression_body(self):
        assert evaluate("len(tokenA) < len(tokenB)", "1", "10") is True

    def test_statement_body(self):
        body = (
            "if len(tokenA) > len(tokenB):\n"
            "    return False\n"
            "return tokenB.startswith(tokenA)"
        )
        assert evaluate(body, "10", "101") is True
        assert evaluate(body, "101", "10") is False

    def test_loops_and_locals(self):
        body = (
            "count = 0\n"
            "for symbol in tokenB:\n"
            "    if symbol == tokenA:\n"
            "        count += 1\n"
            "return count"
        )
        assert evaluate(body, "1", "10101") == 3

    def test_comprehension(self):
        assert evaluate("sum(1 for a, b in zip(tokenA, tokenB) if a != b)", "101", "110") == 2

    def test_non_boolean_result_passed_through(self):
        """Results are never coerced to bool."""
        assert evaluate("tokenA + tokenB", "10", "01") == "1001"
        assert evaluate("return", "1", "1") is None

    def test_predicate_takes_two_positional_values(self):
        predicate = compile_predicate("tokenA == tokenB")
        assert predicate("x", "x") is True


# =============================================================================
# SANDBOX TESTS
# =============================================================================

class TestSandbox:
    """Test that definitions cannot reach beyond their two inputs."""

    @pytest.mark.parametrize("body", [
        "import os",
        "__import__('os')",
        "open('/etc/passwd').read()",
        "tokenA.__class__",
        "tokenA.__class__.__mro__[1].__subclasses__()",
        "'{0.__class__}'.format(tokenA)",
        "str.format_map('{x}', {})",
        "globals()",
        "getattr(tokenA, 'upper')()",
        "eval('1')",
        "(lambda: 1)()",
        "while True:\n    pass",
        "def inner():\n    return 1\nreturn inner()",
        "class Thing:\n    pass",
        "try:\n    return 1\nexcept Exception:\n    return 2",
        "global tokenA\nreturn tokenA",
        "undefined_name",
        "f'{tokenA.__class__}'",
    ])
    def test_forbidden_constructs_rejected(self, body):
        with pytest.raises(DefinitionError) as exc:
            compile_predicate(body)
        assert exc.value.kind == ErrorKind.INVALID_DEFINITION

    def test_safe_builtins_available(self):
        assert evaluate("sorted(set(tokenB)) == list(tokenA)", "01", "1010") is True

    @pytest.mark.parametrize("body", [
        "g = (h.gi_frame.f_back.f_back.f_locals for x in [1])\nh = g\nreturn list(g)[0]",
        "g = (x for x in [1])\nreturn g.gi_frame.f_globals",
        "g = (x for x in [1])\nreturn g.gi_code",
        "return [x for x in [tokenA]].copy().f_builtins",
    ])
    def test_frame_walking_rejected_at_upsert(self, body):
        """Generator and frame attributes would lead back to the context."""
        context = make_context()
        before = list(context.state.relations)

        with pytest.raises(DefinitionError) as exc:
            upsert(context, "peek", body)

        assert exc.value.kind == ErrorKind.INVALID_DEFINITION
        assert "is not allowed" in exc.value.message
        assert context.state.relations == before

    def test_value_methods_allowed(self):
        body = "parts = tokenB.split(tokenA)\nparts.append('x')\nreturn len(parts)"
        assert evaluate(body, "1", "010") == 3


# =============================================================================
# RUNTIME FAILURE TESTS
# =============================================================================

class TestEvaluationErrors:
    """Test that failing predicates are reported per call."""

    def test_runtime_error_reported(self):
        context = make_context(RelationDefinition(7, "BOOM", "int(tokenA) / 0"))

        with pytest.raises(DefinitionError) as exc:
            compare(context, "1", "1", 7)

        assert exc.value.kind == ErrorKind.EVALUATION_ERROR
        assert "ZeroDivisionError" in exc.value.message

    def test_stored_invalid_body_reported_at_compare(self):
        """A body imported from elsewhere may not compile; compare reports it."""
        context = make_context(RelationDefinition(8, "JS", "return tokenA === tokenB;"))

        with pytest.raises(DefinitionError) as exc:
            compare(context, "1", "1", 8)

        assert exc.value.kind == ErrorKind.EVALUATION_ERROR
        assert exc.value.message.startswith("Error executing relation:")

    def test_failure_does_not_break_later_calls(self):
        context = make_context(RelationDefinition(7, "BOOM", "int(tokenA) / 0"))

        with pytest.raises(DefinitionError):
            compare(context, "1", "1", 7)

        assert compare(context, "1", "1", EQUALS_ID).result is True

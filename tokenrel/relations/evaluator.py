"""
Relation Evaluator for the Token Relation Engine.

Compiles a user-authored relation body into a two-argument predicate
and applies it to a token pair.

Predicate language:
    A body is Python source, either a single expression

        tokenB.startswith(tokenA)

    or a function body that returns a value

        if len(tokenA) > len(tokenB):
            return False
        return tokenB.startswith(tokenA)

Sandbox rules (checked on the syntax tree before anything runs):
    - only tokenA, tokenB, names assigned in the body and SAFE_BUILTINS
      may be referenced
    - statements and expressions outside ALLOWED_NODES are refused:
      no imports, def, class, lambda, while, try, global, await, yield
    - no name starting with an underscore; attributes are limited to
      the public methods of plain values (str, list, dict, ...) minus
      format / format_map
    - the predicate's globals hold nothing but SAFE_BUILTINS, so no
      store, file system or dialog handle is reachable

The return value is passed through untouched; it may be any object.
"""

from __future__ import annotations

import ast
import builtins
import logging
import textwrap
from typing import Any, Callable

from ..context import SystemContext
from ..domain import (
    DefinitionError,
    ErrorKind,
    NotFoundError,
    ValidationError,
    find_relation,
)
from ..results import InstructionResult
from ..validation import is_missing

logger = logging.getLogger(__name__)

Predicate = Callable[[Any, Any], Any]

PARAMETERS = ("tokenA", "tokenB")
_PREDICATE_NAME = "relation_predicate"


# =============================================================================
# SANDBOX TABLES
# =============================================================================

SAFE_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "chr", "dict", "divmod", "enumerate",
        "filter", "float", "frozenset", "int", "isinstance", "len", "list",
        "map", "max", "min", "ord", "range", "reversed", "round", "set",
        "sorted", "str", "sum", "tuple", "zip",
    )
}

_ALLOWED_NODE_NAMES = (
    # statements
    "Expr", "Return", "If", "For", "Break", "Continue", "Pass",
    "Assign", "AugAssign",
    # expressions
    "BoolOp", "BinOp", "UnaryOp", "Compare", "IfExp", "Call", "keyword",
    "Attribute", "Subscript", "Slice", "Name", "Constant", "Starred",
    "List", "Tuple", "Set", "Dict", "JoinedStr", "FormattedValue",
    "ListComp", "SetComp", "DictComp", "GeneratorExp", "comprehension",
    # contexts
    "Load", "Store",
    # operators
    "And", "Or", "Not", "Invert", "UAdd", "USub",
    "Add", "Sub", "Mult", "Div", "FloorDiv", "Mod", "Pow",
    "LShift", "RShift", "BitOr", "BitXor", "BitAnd",
    "Eq", "NotEq", "Lt", "LtE", "Gt", "GtE", "Is", "IsNot", "In", "NotIn",
)
ALLOWED_NODES = tuple(
    getattr(ast, name) for name in _ALLOWED_NODE_NAMES if hasattr(ast, name)
)

FORBIDDEN_ATTRIBUTES = frozenset({"format", "format_map"})

# Attributes are limited to the public methods of plain values; anything
# else (generator, frame or code objects) is unreachable.
VALUE_TYPES = (str, int, float, bool, list, tuple, dict, set, frozenset)
ALLOWED_ATTRIBUTES = frozenset(
    name
    for value_type in VALUE_TYPES
    for name in dir(value_type)
    if not name.startswith("_")
) - FORBIDDEN_ATTRIBUTES


# =============================================================================
# COMPILATION
# =============================================================================

def _wrap_source(body: str) -> str:
    """Turn a body into a module defining the predicate function."""
    try:
        ast.parse(body, mode="eval")
    except SyntaxError:
        pass
    else:
        body = f"return (\n{body}\n)"
    return f"def {_PREDICATE_NAME}({', '.join(PARAMETERS)}):\n{textwrap.indent(body, '    ')}\n"


def _check_sandbox(function: ast.FunctionDef) -> None:
    """Refuse any construct the sandbox rules do not allow."""
    nodes = [node for statement in function.body for node in ast.walk(statement)]

    assigned = {
        node.id
        for node in nodes
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store)
    }
    visible = set(PARAMETERS) | set(SAFE_BUILTINS) | assigned

    for node in nodes:
        if not isinstance(node, ALLOWED_NODES):
            raise SyntaxError(f"{type(node).__name__} is not allowed in a relation")
        if isinstance(node, ast.Name):
            if node.id.startswith("_"):
                raise SyntaxError(f"name '{node.id}' is not allowed in a relation")
            if node.id not in visible:
                raise SyntaxError(f"name '{node.id}' is not defined")
        elif isinstance(node, ast.Attribute):
            if node.attr not in ALLOWED_ATTRIBUTES:
                raise SyntaxError(f"attribute '{node.attr}' is not allowed in a relation")


def compile_predicate(body: str) -> Predicate:
    """
    Compile a relation body into a callable predicate without running it.

    Raises:
        DefinitionError: If the body does not parse or breaks a sandbox
            rule (InvalidDefinition, message carries the parse error)
    """
    try:
        tree = ast.parse(_wrap_source(body), filename="<relation>", mode="exec")
        if len(tree.body) != 1 or not isinstance(tree.body[0], ast.FunctionDef):
            raise SyntaxError("relation body must stay inside the predicate")
        _check_sandbox(tree.body[0])
        code = compile(tree, "<relation>", "exec")
    except SyntaxError as e:
        detail = e.msg
        if e.lineno and e.lineno > 1:
            detail = f"{detail} (line {e.lineno - 1})"
        raise DefinitionError(ErrorKind.INVALID_DEFINITION, f"Invalid definition: {detail}")
    except (ValueError, RecursionError) as e:
        raise DefinitionError(ErrorKind.INVALID_DEFINITION, f"Invalid definition: {e}")

    namespace: dict[str, Any] = {"__builtins__": SAFE_BUILTINS}
    exec(code, namespace)
    return namespace[_PREDICATE_NAME]


def validate_definition(body: str) -> None:
    """Check a body compiles; see compile_predicate for errors."""
    compile_predicate(body)


def evaluate(body: str, token_a: Any, token_b: Any) -> Any:
    """
    Compile and run a body against one token pair.

    Raises:
        DefinitionError: If compilation or the predicate itself fails
            (EvaluationError)
    """
    try:
        predicate = compile_predicate(body)
    except DefinitionError as e:
        raise DefinitionError(
            ErrorKind.EVALUATION_ERROR,
            f"Error executing relation: {e.message}",
        )

    try:
        return predicate(token_a, token_b)
    except Exception as e:
        raise DefinitionError(
            ErrorKind.EVALUATION_ERROR,
            f"Error executing relation: {type(e).__name__}: {e}",
        )


# =============================================================================
# COMPARISON
# =============================================================================

def compare(
    context: SystemContext,
    token_a: Any,
    token_b: Any,
    relation_id: Any,
) -> InstructionResult:
    """
    Apply the relation `relation_id` to (token_a, token_b).

    Raises:
        ValidationError: MissingArgument, NoState
        NotFoundError: If no relation has that id
        DefinitionError: If the predicate fails to compile or run
    """
    state = context.require_state()

    if is_missing(token_a):
        raise ValidationError(ErrorKind.MISSING_ARGUMENT, "Token A is required")
    if is_missing(token_b):
        raise ValidationError(ErrorKind.MISSING_ARGUMENT, "Token B is required")
    if is_missing(relation_id):
        raise ValidationError(ErrorKind.MISSING_ARGUMENT, "Relation ID is required")

    try:
        relation = find_relation(state, int(str(relation_id).strip()))
    except ValueError:
        relation = None
    if relation is None:
        raise NotFoundError(ErrorKind.NOT_FOUND, "Relation not found")

    try:
        outcome = evaluate(relation.definition, token_a, token_b)
    except DefinitionError as e:
        logger.warning("Relation %s failed on (%r, %r): %s", relation.name, token_a, token_b, e.message)
        raise

    logger.debug("%s(%r, %r) -> %r", relation.name, token_a, token_b, outcome)
    return InstructionResult.ok(
        result=outcome,
        token_a=token_a,
        token_b=token_b,
        relation=relation.name,
    )

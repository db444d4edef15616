"""
Relation Store for the Token Relation Engine.

Holds the named predicate definitions in insertion order.

Rules:
    - names are normalized (trimmed, upper-cased, whitespace → "_")
      and unique by exact comparison
    - ids are unique and never change once assigned
    - a body must compile in the sandbox before it is stored
    - editing keeps the relation's position in the sequence
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..context import SystemContext
from ..domain import (
    ConflictError,
    ErrorKind,
    NotFoundError,
    RelationDefinition,
    SystemState,
)
from ..results import InstructionResult
from ..validation import (
    coerce_relation_id,
    create_relation_id,
    is_missing,
    normalize_relation_name,
    require_definition,
)
from .evaluator import validate_definition

logger = logging.getLogger(__name__)


def _index_of(state: SystemState, relation_id: int) -> Optional[int]:
    for index, relation in enumerate(state.relations):
        if relation.id == relation_id:
            return index
    return None


def _name_taken(state: SystemState, name: str, exclude_id: Optional[int] = None) -> bool:
    return any(
        relation.name == name and relation.id != exclude_id
        for relation in state.relations
    )


def upsert(
    context: SystemContext,
    name: Optional[str],
    definition: Optional[str],
    relation_id: Any = None,
) -> InstructionResult:
    """
    Add a relation, or edit one when `relation_id` is given.

    Raises:
        ValidationError: EmptyName, EmptyBody, NoState, bad id
        DefinitionError: If the body does not compile (InvalidDefinition)
        NotFoundError: If editing an id that does not exist
        ConflictError: If another relation already uses the name
    """
    state = context.require_state()

    normalized = normalize_relation_name(name)
    body = require_definition(definition)
    validate_definition(body)

    if not is_missing(relation_id):
        target_id = coerce_relation_id(relation_id)
        index = _index_of(state, target_id)
        if index is None:
            raise NotFoundError(ErrorKind.NOT_FOUND, "Relation not found")
        if _name_taken(state, normalized, exclude_id=target_id):
            raise ConflictError(
                ErrorKind.DUPLICATE_NAME,
                "A relation with this name already exists",
            )

        relation = RelationDefinition(id=target_id, name=normalized, definition=body)
        state.relations[index] = relation
        logger.info("Updated relation %s (%d)", normalized, target_id)
        return InstructionResult.ok("Relation updated", relation=relation)

    if _name_taken(state, normalized):
        raise ConflictError(
            ErrorKind.DUPLICATE_NAME,
            "A relation with this name already exists",
        )

    relation = RelationDefinition(
        id=create_relation_id(state.relation_ids()),
        name=normalized,
        definition=body,
    )
    state.relations.append(relation)
    logger.info("Added relation %s (%d)", normalized, relation.id)
    return InstructionResult.ok("Relation added", relation=relation)


def delete(context: SystemContext, relation_id: Any) -> InstructionResult:
    """
    Remove a relation by id.

    Raises:
        ValidationError: MissingId, NoState
        NotFoundError: If no relation has that id (sequence unchanged)
    """
    state = context.require_state()

    target_id = coerce_relation_id(relation_id)
    index = _index_of(state, target_id)
    if index is None:
        raise NotFoundError(ErrorKind.NOT_FOUND, "Relation not found")

    removed = state.relations.pop(index)
    logger.info("Deleted relation %s (%d)", removed.name, removed.id)
    return InstructionResult.ok(f"Relation {removed.name} deleted", relation=removed)

"""
Token Relation Engine CLI.

Commands:
    tokenrel show                          — Lexicon, token count, relations
    tokenrel tokens                        — List generated tokens
    tokenrel generate <alphabet> <max>     — Regenerate the vocabulary
    tokenrel relations                     — List relations with ids
    tokenrel add-relation <name> [<body>]  — Add a relation
    tokenrel edit-relation <id>            — Rename or redefine a relation
    tokenrel delete-relation <id>          — Delete a relation
    tokenrel compare <a> <relation> <b>    — Apply a relation to two tokens
    tokenrel save [--path P]               — Persist the state
    tokenrel reset                         — Restore the default state
    tokenrel export [<file name>]          — Write a snapshot to /Documents
    tokenrel import [<path>]               — Replace the state from a snapshot
    tokenrel files                         — List /Documents

Every command restores the saved state first. Changes go through the
instruction dispatcher and are saved again; the listing commands (show,
tokens, relations, files) only read the context.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ..dialogs import ConsoleDialogPresenter
from ..context import SystemContext
from ..dispatch.dispatcher import Dispatcher
from ..dispatch.opcodes import DESCRIPTIONS, Opcode
from ..dispatch import workflows
from ..domain import RelationDefinition, SystemState, TokenRelError, find_relation_by_name
from ..results import InstructionResult
from ..storage.collaborators import DirectoryKeyValueStore, LocalFileStore
from ..validation import DOCUMENTS_DIR, normalize_relation_name

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".tokenrel"


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_relation_row(relation: RelationDefinition) -> str:
    """Format a single relation for display."""
    return f"{relation.id:>13} | {relation.name:<20} | {relation.definition}"


def format_tokens(tokens: list[str], per_line: int = 8) -> str:
    """Lay tokens out in rows of `per_line`."""
    if not tokens:
        return "No tokens generated yet."
    width = max(len(token) for token in tokens)
    rows = []
    for start in range(0, len(tokens), per_line):
        rows.append("  ".join(token.ljust(width) for token in tokens[start:start + per_line]))
    return "\n".join(rows)


def format_state(state: SystemState) -> str:
    """Summary of the lexicon and the relations."""
    lines = [
        "Token Relation Engine",
        "=" * 50,
        f"Alphabet:   {state.lexicon.alphabet}",
        f"Max length: {state.lexicon.max_length}",
        f"Tokens:     {len(state.tokens)}",
        "",
        "RELATIONS:",
    ]
    if not state.relations:
        lines.append("  (none)")
    for relation in state.relations:
        lines.append(f"  • {relation.name} (ID: {relation.id})")
    return "\n".join(lines)


def format_opcodes() -> str:
    """Instruction set listing shown at the end of --help."""
    lines = ["instructions:"]
    for opcode in Opcode:
        lines.append(f"  {int(opcode)}  {opcode.name:<16} {DESCRIPTIONS[opcode]}")
    return "\n".join(lines)


# =============================================================================
# SESSION
# =============================================================================

def open_session(args: argparse.Namespace) -> Dispatcher:
    """Build a dispatcher over the home directory and restore the state."""
    home = Path(getattr(args, "home", None) or DEFAULT_HOME)
    context = SystemContext(
        kv_store=DirectoryKeyValueStore(home / "store"),
        file_store=LocalFileStore(home / "files"),
        dialogs=ConsoleDialogPresenter(assume_yes=getattr(args, "yes", False)),
    )
    dispatcher = Dispatcher(context)
    result = dispatcher.dispatch(Opcode.INIT_STATE, {"restore": True})
    logger.debug("init: %s", result.message)
    return dispatcher


def persist(dispatcher: Dispatcher) -> int:
    """Save after a mutation; report a failed save."""
    result = dispatcher.dispatch(Opcode.SAVE_STATE, {})
    if not result.success:
        print(f"ERROR: {result.message}")
        return 1
    return 0


def finish(dispatcher: Dispatcher, result: Optional[InstructionResult], mutates: bool = True) -> int:
    """Turn a workflow outcome into an exit code."""
    if result is None:
        print("Cancelled.")
        return 1
    if not result.success:
        return 1
    if mutates:
        return persist(dispatcher)
    return 0


def resolve_relation_ref(state: Optional[SystemState], ref: str) -> str:
    """Accept either a relation id or a relation name."""
    if ref.strip().lstrip("+-").isdigit() or state is None:
        return ref
    try:
        relation = find_relation_by_name(state, normalize_relation_name(ref))
    except TokenRelError:
        return ref
    return str(relation.id) if relation else ref


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_show(args: argparse.Namespace) -> int:
    """Show the lexicon and relations."""
    dispatcher = open_session(args)
    print(format_state(dispatcher.context.require_state()))
    return 0


def cmd_tokens(args: argparse.Namespace) -> int:
    """List generated tokens."""
    dispatcher = open_session(args)
    print(format_tokens(dispatcher.context.require_state().tokens))
    return 0


def cmd_relations(args: argparse.Namespace) -> int:
    """List relations with their ids and bodies."""
    dispatcher = open_session(args)
    state = dispatcher.context.require_state()
    if not state.relations:
        print("No relations defined.")
        return 0
    for relation in state.relations:
        print(format_relation_row(relation))
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Regenerate the vocabulary."""
    dispatcher = open_session(args)
    result = asyncio.run(
        workflows.generate_tokens_flow(dispatcher, args.alphabet, args.max_length)
    )
    return finish(dispatcher, result)


def cmd_add_relation(args: argparse.Namespace) -> int:
    """Add a relation."""
    dispatcher = open_session(args)
    result = asyncio.run(
        workflows.add_relation_flow(dispatcher, args.name, args.definition)
    )
    return finish(dispatcher, result)


def cmd_edit_relation(args: argparse.Namespace) -> int:
    """Rename or redefine a relation."""
    dispatcher = open_session(args)
    result = asyncio.run(
        workflows.edit_relation_flow(dispatcher, args.relation_id, args.name, args.definition)
    )
    return finish(dispatcher, result)


def cmd_delete_relation(args: argparse.Namespace) -> int:
    """Delete a relation."""
    dispatcher = open_session(args)
    result = asyncio.run(workflows.delete_relation_flow(dispatcher, args.relation_id))
    return finish(dispatcher, result)


def cmd_compare(args: argparse.Namespace) -> int:
    """Apply a relation to two tokens."""
    dispatcher = open_session(args)
    relation_id = resolve_relation_ref(dispatcher.context.state, args.relation)
    result = asyncio.run(
        workflows.compare_flow(dispatcher, args.token_a, args.token_b, relation_id)
    )
    return finish(dispatcher, result, mutates=False)


def cmd_save(args: argparse.Namespace) -> int:
    """Persist the state, optionally to a file as well."""
    dispatcher = open_session(args)
    result = asyncio.run(workflows.save_flow(dispatcher, args.path))
    return finish(dispatcher, result, mutates=False)


def cmd_reset(args: argparse.Namespace) -> int:
    """Restore the default state."""
    dispatcher = open_session(args)
    result = asyncio.run(workflows.reset_flow(dispatcher))
    return finish(dispatcher, result, mutates=False)


def cmd_export(args: argparse.Namespace) -> int:
    """Write a snapshot into /Documents."""
    dispatcher = open_session(args)
    result = asyncio.run(workflows.export_flow(dispatcher, args.file_name))
    return finish(dispatcher, result, mutates=False)


def cmd_import(args: argparse.Namespace) -> int:
    """Replace the state with a snapshot."""
    dispatcher = open_session(args)
    result = asyncio.run(workflows.import_flow(dispatcher, args.path))
    return finish(dispatcher, result, mutates=False)


def cmd_files(args: argparse.Namespace) -> int:
    """List exported snapshots."""
    dispatcher = open_session(args)
    entries = dispatcher.context.file_store.list(DOCUMENTS_DIR)
    if not entries:
        print(f"No files in {DOCUMENTS_DIR}.")
        return 0
    for entry in entries:
        print(f"{entry.type:<9} {entry.path}")
    return 0


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tokenrel",
        description="Token Relation Engine — token vocabularies and relations",
        epilog=format_opcodes(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--home",
        default=os.environ.get("TOKENREL_HOME"),
        help=f"Directory holding the saved state and /Documents (default: {DEFAULT_HOME})",
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Answer yes to every confirmation",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log dispatched instructions",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    subparsers.add_parser("show", help="Show lexicon and relations").set_defaults(func=cmd_show)
    subparsers.add_parser("tokens", help="List generated tokens").set_defaults(func=cmd_tokens)
    subparsers.add_parser("relations", help="List relations").set_defaults(func=cmd_relations)

    generate_parser = subparsers.add_parser("generate", help="Regenerate the token vocabulary")
    generate_parser.add_argument("alphabet", help="Characters tokens are built from")
    generate_parser.add_argument("max_length", help="Maximum token length")
    generate_parser.set_defaults(func=cmd_generate)

    add_parser = subparsers.add_parser("add-relation", help="Add a relation")
    add_parser.add_argument("name", help="Relation name")
    add_parser.add_argument(
        "definition",
        nargs="?",
        help="Predicate over tokenA and tokenB (prompted when omitted)",
    )
    add_parser.set_defaults(func=cmd_add_relation)

    edit_parser = subparsers.add_parser("edit-relation", help="Edit a relation")
    edit_parser.add_argument("relation_id", help="Relation ID")
    edit_parser.add_argument("--name", help="New name (prompted when omitted)")
    edit_parser.add_argument("--definition", help="New predicate (prompted when omitted)")
    edit_parser.set_defaults(func=cmd_edit_relation)

    delete_parser = subparsers.add_parser("delete-relation", help="Delete a relation")
    delete_parser.add_argument("relation_id", help="Relation ID")
    delete_parser.set_defaults(func=cmd_delete_relation)

    compare_parser = subparsers.add_parser("compare", help="Apply a relation to two tokens")
    compare_parser.add_argument("token_a", help="Left token (tokenA)")
    compare_parser.add_argument("relation", help="Relation ID or name")
    compare_parser.add_argument("token_b", help="Right token (tokenB)")
    compare_parser.set_defaults(func=cmd_compare)

    save_parser = subparsers.add_parser("save", help="Persist the state")
    save_parser.add_argument("--path", help="Also write a pretty snapshot to this path")
    save_parser.set_defaults(func=cmd_save)

    subparsers.add_parser("reset", help="Restore the default state").set_defaults(func=cmd_reset)

    export_parser = subparsers.add_parser("export", help=f"Write a snapshot into {DOCUMENTS_DIR}")
    export_parser.add_argument("file_name", nargs="?", help="File name (prompted when omitted)")
    export_parser.set_defaults(func=cmd_export)

    import_parser = subparsers.add_parser("import", help="Replace the state from a snapshot")
    import_parser.add_argument("path", nargs="?", help="Snapshot path (prompted when omitted)")
    import_parser.set_defaults(func=cmd_import)

    subparsers.add_parser("files", help=f"List {DOCUMENTS_DIR}").set_defaults(func=cmd_files)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""
The fixed instruction set.

Ranges:
    100-199  system (state lifecycle)
    300-399  operations on the lexicon and relations
    400-499  dialog helpers
"""

from __future__ import annotations

from enum import IntEnum


class Opcode(IntEnum):
    INIT_STATE = 100
    SAVE_STATE = 101

    GENERATE_TOKENS = 300
    UPSERT_RELATION = 301
    DELETE_RELATION = 302
    COMPARE_TOKENS = 303
    IMPORT_STATE = 304
    EXPORT_STATE = 305

    NOTIFY = 400
    CONFIRM = 401
    PROMPT = 402


DESCRIPTIONS = {
    Opcode.INIT_STATE: "Initialize or restore the token system state",
    Opcode.SAVE_STATE: "Save the current token system state",
    Opcode.GENERATE_TOKENS: "Generate tokens from alphabet and max length",
    Opcode.UPSERT_RELATION: "Add or edit a relation",
    Opcode.DELETE_RELATION: "Delete a relation",
    Opcode.COMPARE_TOKENS: "Compare two tokens using a relation",
    Opcode.IMPORT_STATE: "Import state from file",
    Opcode.EXPORT_STATE: "Export state to file",
    Opcode.NOTIFY: "Show a notification",
    Opcode.CONFIRM: "Show a confirmation dialog",
    Opcode.PROMPT: "Show a prompt dialog",
}

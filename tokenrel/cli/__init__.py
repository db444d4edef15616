# CLI package for the Token Relation Engine
"""
Command-line interface for the Token Relation Engine.

Commands:
    tokenrel show             — Show lexicon and relations
    tokenrel generate         — Regenerate the token vocabulary
    tokenrel compare          — Apply a relation to two tokens
    tokenrel export / import  — Move snapshots in and out of /Documents
"""

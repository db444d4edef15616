# Lexicon package for the Token Relation Engine
"""
Token vocabulary generation from an alphabet and a maximum length.
"""

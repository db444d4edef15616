# Relations package for the Token Relation Engine
"""
User-authored binary predicates over tokens.

The store keeps named definitions; the evaluator compiles them in a
restricted sandbox and applies them to token pairs.
"""

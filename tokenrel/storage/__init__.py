# Storage package for the Token Relation Engine
"""
Persistence for SystemState.

Provides the key-value and file collaborators, the JSON snapshot
codec, and the load/save/import/export lifecycle.
"""

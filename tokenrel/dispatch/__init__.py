# Dispatch package for the Token Relation Engine
"""
Instruction dispatch: the only entry point that touches SystemState.

Provides the opcode set, the dispatcher and the interactive workflows
built on top of it.
"""

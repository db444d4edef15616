# Token Relation Engine
# Instruction-dispatch core for token vocabularies and relations

"""
Core invariant: SystemState is only ever changed through the instruction
dispatcher, and every instruction answers with the same uniform result
shape.

Read-only views (CLI listings, prompt defaults in the workflows) may look
at the context directly; they never mutate it.
"""

"""
Lexicon Generator for the Token Relation Engine.

Enumerates every token over an alphabet up to a maximum length.

Order:
    Tokens are grouped by length, shortest first. Within a length they
    are lexicographic by alphabet-symbol order (the order characters
    appear in the de-duplicated alphabet, not code-point order).
    For "01" and length 3 this is 0, 1, 00, 01, 10, 11, 000, ... 111.

This order is persisted and displayed, so it must never change.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from ..context import SystemContext
from ..domain import ErrorKind, LexiconConfig, ThresholdWarning
from ..results import InstructionResult
from ..validation import TOKEN_COUNT_THRESHOLD, coerce_max_length, dedupe_alphabet

logger = logging.getLogger(__name__)


def count_tokens(
    alphabet_size: int,
    max_length: int,
    limit: Optional[int] = None,
) -> tuple[int, bool]:
    """
    Vocabulary size: sum of alphabet_size**i for i in 1..max_length.

    Returns (count, exact). With `limit`, summing stops as soon as the
    running total passes it; count is then a lower bound and exact is
    False unless the last length was already reached.
    """
    if alphabet_size <= 1:
        return alphabet_size * max_length, True

    total = 0
    level = 1
    for length in range(1, max_length + 1):
        level *= alphabet_size
        total += level
        if limit is not None and total > limit:
            return total, length == max_length
    return total, True


def iter_tokens(alphabet: str, max_length: int) -> Iterator[str]:
    """
    Lazily yield tokens in canonical order.

    Each length is built by extending every token of the previous
    length with each symbol in turn, which keeps symbol order.
    """
    previous = [""]
    for _ in range(max_length):
        current = [prefix + symbol for prefix in previous for symbol in alphabet]
        yield from current
        previous = current


def generate(
    context: SystemContext,
    alphabet: Any,
    max_length: Any,
    force: bool = False,
) -> InstructionResult:
    """
    Regenerate the vocabulary and update the lexicon config.

    Raises:
        ValidationError: EmptyAlphabet, InvalidLength, NoState
        ThresholdWarning: If the vocabulary would exceed
            TOKEN_COUNT_THRESHOLD and force is not set (carries warning
            and token_count; nothing is mutated). Counting stops once
            the threshold is passed, so for huge lengths token_count is
            a lower bound.
    """
    state = context.require_state()

    symbols = dedupe_alphabet(alphabet)
    length = coerce_max_length(max_length)

    token_count, exact = count_tokens(len(symbols), length, limit=TOKEN_COUNT_THRESHOLD)
    if token_count > TOKEN_COUNT_THRESHOLD and not force:
        amount = str(token_count) if exact else f"at least {token_count}"
        raise ThresholdWarning(
            ErrorKind.TOKEN_THRESHOLD,
            f"This will generate {amount} tokens, which may slow down your system.",
            warning=True,
            token_count=token_count,
        )

    tokens = list(iter_tokens(symbols, length))

    state.lexicon = LexiconConfig(alphabet=symbols, max_length=length)
    state.tokens = tokens

    logger.info("Generated %d tokens over %r up to length %d", len(tokens), symbols, length)
    return InstructionResult.ok(f"Generated {len(tokens)} tokens", token_count=len(tokens))

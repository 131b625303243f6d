"""Token-budget chunking of source file summaries.

Greedy bin-packing algorithm:
  budget = max_tokens * ratio   (headroom for prompt scaffolding + response)
  1. Walk summaries in order, adding each to the current chunk while the
     running estimate stays within budget
  2. When the next summary does not fit, close the chunk and start a new one
  3. A summary that alone exceeds the budget is truncated to fit and
     becomes its own chunk (never dropped)
"""

import logging
import math
from typing import List, Sequence

from .models import DegradedCondition
from .tokens import DEFAULT_AVG_CHARS_PER_TOKEN, estimate_tokens

logger = logging.getLogger(__name__)


def chunk_by_token_limit(
    items: Sequence[str],
    max_tokens: int,
    ratio: float,
    avg_chars_per_token: float = DEFAULT_AVG_CHARS_PER_TOKEN,
) -> List[List[str]]:
    """Split items into ordered chunks whose estimated size fits the budget.

    Args:
        items: Source file summaries, consumed in order and never mutated
        max_tokens: Context window of the completion model
        ratio: Fraction of max_tokens usable for content, in (0, 1]
        avg_chars_per_token: Characters per token for the size estimate

    Returns:
        List of non-empty chunks. Concatenated in order they reproduce
        items, except that an oversized item appears truncated.
    """
    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")
    if not 0 < ratio <= 1:
        raise ValueError(f"ratio must be in (0, 1], got {ratio}")
    if avg_chars_per_token <= 0:
        raise ValueError(f"avg_chars_per_token must be positive, got {avg_chars_per_token}")

    budget = max_tokens * ratio
    chunks: List[List[str]] = []
    current: List[str] = []
    running = 0.0

    for index, item in enumerate(items):
        item_tokens = estimate_tokens(item, avg_chars_per_token)

        if item_tokens > budget:
            max_chars = math.floor(budget * avg_chars_per_token)
            logger.warning(
                "%s: summary %d is ~%d tokens, over the %d token chunk budget; "
                "truncating to %d chars",
                DegradedCondition.CHUNK_OVERSIZE.value,
                index,
                int(item_tokens),
                int(budget),
                max_chars,
            )
            if current:
                chunks.append(current)
                current, running = [], 0.0
            chunks.append([item[:max_chars]])
            continue

        if current and running + item_tokens > budget:
            chunks.append(current)
            current, running = [], 0.0

        current.append(item)
        running += item_tokens

    if current:
        chunks.append(current)

    # Guarantee forward progress
    if items and not chunks:
        chunks = [list(items)]

    logger.debug(
        f"Chunked {len(items)} summaries into {len(chunks)} chunks "
        f"(budget={int(budget)} tokens)"
    )
    return chunks

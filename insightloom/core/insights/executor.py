"""MAP phase: one completion call per chunk under the shared limiter."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from .completion import CompletionService
from .limiter import ConcurrencyLimiter
from .models import DegradedCondition, InsightCategory
from .prompts import PromptBuilder, join_summaries
from .schemas import schema_for

logger = logging.getLogger(__name__)


class MapExecutor:
    """Run partial-insight completions for every chunk of a category.

    Args:
        completion: CompletionService used for each chunk
        prompt_builder: Builds the partial-analysis prompt per chunk
        limiter: Process-wide gate shared with every other category
    """

    def __init__(
        self,
        completion: CompletionService,
        prompt_builder: PromptBuilder,
        limiter: ConcurrencyLimiter,
    ):
        self._completion = completion
        self._prompt_builder = prompt_builder
        self._limiter = limiter

    async def run(
        self,
        category: InsightCategory,
        chunks: Sequence[Sequence[str]],
    ) -> List[Dict[str, Any]]:
        """Generate partial results for all chunks.

        Chunk calls run concurrently and settle independently; a failed
        chunk is dropped without cancelling its siblings.

        Returns:
            Non-null partials in chunk submission order (possibly empty)
        """
        total = len(chunks)
        results = await asyncio.gather(
            *(self._map_chunk(category, chunk, i, total) for i, chunk in enumerate(chunks))
        )
        return [r for r in results if r is not None]

    async def _map_chunk(
        self,
        category: InsightCategory,
        chunk: Sequence[str],
        index: int,
        total: int,
    ) -> Optional[Dict[str, Any]]:
        label = schema_for(category).display_name
        task_id = f"{category.value}-chunk"

        try:
            async with self._limiter.slot():
                logger.info(f"  - [MAP {index + 1}/{total}] Processing chunk for {label}...")
                prompt = self._prompt_builder.build_insight_prompt(
                    category, join_summaries(chunk), partial=True
                )
                result = await self._completion.complete(
                    task_id, prompt, schema_for(category).model
                )
        except Exception as e:
            logger.warning(
                "%s: chunk %d/%d for %s raised %s: %s",
                DegradedCondition.CHUNK_COMPLETION_FAILURE.value,
                index + 1, total, label, type(e).__name__, e,
            )
            return None

        if not result.ok:
            message = result.error.message if result.error else "empty response"
            logger.warning(
                "%s: chunk %d/%d for %s failed: %s",
                DegradedCondition.CHUNK_COMPLETION_FAILURE.value,
                index + 1, total, label, message,
            )
            return None

        return result.value

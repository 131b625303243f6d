"""REDUCE phase: consolidate combined partials with one completion call."""

import json
import logging
from typing import Any, Dict, Optional

from .completion import CompletionService
from .limiter import ConcurrencyLimiter
from .models import DegradedCondition, InsightCategory
from .prompts import PromptBuilder
from .schemas import schema_for

logger = logging.getLogger(__name__)


class ReduceConsolidator:
    """Issue the final consolidating completion for a category.

    Args:
        completion: CompletionService validating against the category model
        prompt_builder: Builds the reduce prompt around the serialised data
        limiter: Shared gate; the reduce call counts toward the global bound
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

    async def reduce(
        self,
        category: InsightCategory,
        intermediate: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """De-duplicate and merge intermediate data into one final result.

        Returns:
            Schema-valid result, or None on provider/validation failure
        """
        category_schema = schema_for(category)
        label = category_schema.display_name

        try:
            content = json.dumps(intermediate, indent=2, ensure_ascii=False)
            prompt = self._prompt_builder.build_reduce_prompt(category, content)
            async with self._limiter.slot():
                result = await self._completion.complete(
                    f"{category.value}-reduce", prompt, category_schema.model
                )
        except Exception as e:
            logger.warning(
                "%s: failed to consolidate partial insights for %s: %s",
                DegradedCondition.REDUCE_COMPLETION_FAILURE.value, label, e,
            )
            return None

        if not result.ok:
            message = result.error.message if result.error else "empty response"
            logger.warning(
                "%s: LLM completion failed for %s reduce: %s",
                DegradedCondition.REDUCE_COMPLETION_FAILURE.value, label, message,
            )
            return None

        return result.value

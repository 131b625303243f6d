"""Insight generation strategies.

Selection algorithm (AdaptiveInsightStrategy):
  total = estimated tokens of all summaries joined
  total <= max_tokens  -> SinglePassInsightStrategy (one call, no reduce)
  total >  max_tokens  -> MapReduceInsightStrategy  (chunk, map, combine, reduce)

Every strategy resolves failures to None; only UnsupportedSchemaShapeError
escapes, since a category registered with an unknown shape cannot be
worked around.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from .chunker import chunk_by_token_limit
from .combiner import combine_partial_results
from .completion import CompletionService
from .executor import MapExecutor
from .limiter import ConcurrencyLimiter
from .models import DegradedCondition, InsightCategory, UnsupportedSchemaShapeError
from .prompts import PromptBuilder, join_summaries
from .reducer import ReduceConsolidator
from .schemas import schema_for
from .tokens import DEFAULT_AVG_CHARS_PER_TOKEN, TokenCounter, estimate_tokens

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_TOKEN_LIMIT_RATIO = 0.7


class InsightGenerationStrategy(ABC):
    """Contract shared by all strategies."""

    @abstractmethod
    async def generate_insights(
        self,
        category: InsightCategory,
        summaries: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        """Return the category's consolidated insight, or None when absent."""


class SinglePassInsightStrategy(InsightGenerationStrategy):
    """Send all summaries in one completion call."""

    def __init__(
        self,
        completion: CompletionService,
        prompt_builder: PromptBuilder,
        limiter: ConcurrencyLimiter,
    ):
        self._completion = completion
        self._prompt_builder = prompt_builder
        self._limiter = limiter

    async def generate_insights(
        self,
        category: InsightCategory,
        summaries: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        category_schema = schema_for(category)
        label = category_schema.display_name

        try:
            prompt = self._prompt_builder.build_insight_prompt(
                category, join_summaries(summaries)
            )
            async with self._limiter.slot():
                result = await self._completion.complete(
                    category.value, prompt, category_schema.model
                )
        except Exception as e:
            logger.warning(
                "%s: %s for %s",
                DegradedCondition.SINGLE_PASS_COMPLETION_FAILURE.value, e, label,
            )
            return None

        if not result.ok:
            message = result.error.message if result.error else "empty response"
            logger.warning(
                "%s: LLM completion failed for %s: %s",
                DegradedCondition.SINGLE_PASS_COMPLETION_FAILURE.value, label, message,
            )
            return None

        return result.value


class MapReduceInsightStrategy(InsightGenerationStrategy):
    """Chunk summaries, generate partials per chunk, then consolidate.

    Args:
        completion: CompletionService for MAP and REDUCE calls
        prompt_builder: PromptBuilder for both phases
        limiter: Shared process-wide ConcurrencyLimiter
        max_tokens: Context window used for chunk budgeting
        chunk_token_limit_ratio: Fraction of max_tokens per chunk
        avg_chars_per_token: Characters per token for size estimates
    """

    def __init__(
        self,
        completion: CompletionService,
        prompt_builder: PromptBuilder,
        limiter: ConcurrencyLimiter,
        max_tokens: int,
        chunk_token_limit_ratio: float = DEFAULT_CHUNK_TOKEN_LIMIT_RATIO,
        avg_chars_per_token: float = DEFAULT_AVG_CHARS_PER_TOKEN,
    ):
        self.max_tokens = max_tokens
        self.chunk_token_limit_ratio = chunk_token_limit_ratio
        self.avg_chars_per_token = avg_chars_per_token
        self._executor = MapExecutor(completion, prompt_builder, limiter)
        self._reducer = ReduceConsolidator(completion, prompt_builder, limiter)

    async def generate_insights(
        self,
        category: InsightCategory,
        summaries: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        """Run the map-reduce pipeline.

        Steps:
        1. Chunk summaries by token budget
        2. MAP: partial insights per chunk under the shared limiter
        3. Combine partials by schema shape
        4. REDUCE: one consolidating call
        """
        category_schema = schema_for(category)
        label = category_schema.display_name

        try:
            logger.info(f"  - Using map-reduce strategy for {label}")

            # Step 1: Chunk
            chunks = chunk_by_token_limit(
                summaries,
                max_tokens=self.max_tokens,
                ratio=self.chunk_token_limit_ratio,
                avg_chars_per_token=self.avg_chars_per_token,
            )
            logger.info(
                f"  - Split summaries into {len(chunks)} chunks for map-reduce processing"
            )

            # Step 2: MAP
            partials = await self._executor.run(category, chunks)
            if not partials:
                logger.warning(
                    "%s: no partial insights were generated for %s. "
                    "Skipping final consolidation.",
                    DegradedCondition.ALL_CHUNKS_FAILED.value, label,
                )
                return None

            # Step 3: Combine
            logger.info(
                f"  - [REDUCE] Consolidating {len(partials)} partial results for {label}..."
            )
            intermediate = combine_partial_results(category_schema, partials)

            # Step 4: REDUCE
            final = await self._reducer.reduce(category, intermediate)
        except UnsupportedSchemaShapeError:
            raise
        except Exception as e:
            logger.warning(f"{type(e).__name__}: {e} for {label}")
            return None

        if final is None:
            logger.warning(f"Failed to generate final consolidated summary for {label}.")
        return final


class AdaptiveInsightStrategy(InsightGenerationStrategy):
    """Pick single-pass or map-reduce per call from the estimated input size.

    Args:
        single_pass: Strategy used when everything fits one call
        map_reduce: Strategy used otherwise
        max_tokens: Context window the total estimate is compared against
        avg_chars_per_token: Characters per token for the estimate
        token_counter: Optional exact counter used instead of the estimate
    """

    def __init__(
        self,
        single_pass: InsightGenerationStrategy,
        map_reduce: InsightGenerationStrategy,
        max_tokens: int,
        avg_chars_per_token: float = DEFAULT_AVG_CHARS_PER_TOKEN,
        token_counter: Optional[TokenCounter] = None,
    ):
        self.single_pass = single_pass
        self.map_reduce = map_reduce
        self.max_tokens = max_tokens
        self.avg_chars_per_token = avg_chars_per_token
        self._tc = token_counter

    def estimate_total_tokens(self, summaries: Sequence[str]) -> float:
        content = join_summaries(summaries)
        if self._tc is not None:
            return self._tc.count(content)
        return estimate_tokens(content, self.avg_chars_per_token)

    def select(self, summaries: Sequence[str]) -> InsightGenerationStrategy:
        """Return the strategy that should handle these summaries."""
        total = self.estimate_total_tokens(summaries)
        logger.debug(
            f"Summaries chars length: {sum(len(s) for s in summaries)}, "
            f"estimated prompt tokens: {int(total)}, max tokens: {self.max_tokens}"
        )
        if total <= self.max_tokens:
            return self.single_pass
        return self.map_reduce

    async def generate_insights(
        self,
        category: InsightCategory,
        summaries: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        return await self.select(summaries).generate_insights(category, summaries)

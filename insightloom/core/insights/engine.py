"""Insights Engine — runs insight generation across categories.

Owns the single ConcurrencyLimiter shared by every category, so nested
parallelism (categories x chunks) never exceeds the configured bound.
The caller decides which categories to run and owns persistence.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Sequence

from ..config.config_loader import InsightsConfig, get_insights_config
from .completion import CompletionService, LLMCompletionService
from .limiter import ConcurrencyLimiter
from .models import InsightCategory
from .prompts import InsightPromptBuilder, PromptBuilder
from .schemas import schema_for
from .strategies import (
    AdaptiveInsightStrategy,
    InsightGenerationStrategy,
    MapReduceInsightStrategy,
    SinglePassInsightStrategy,
)
from .tokens import TokenCounter

logger = logging.getLogger(__name__)


class InsightsEngine:
    """Generate app-level insights from source file summaries.

    Public API:
        generate(category, summaries) -> result dict or None
        generate_all(categories, summaries) -> {category: result}
        generate_all_sync(categories, summaries) -> {category: result}

    Args:
        completion: CompletionService (defaults to LLMCompletionService on Settings.llm)
        max_tokens: Model context window; falls back to config
        config: InsightsConfig; loaded from config/insightloom.yaml when None
        limiter: Shared limiter; built from config.max_concurrency when None
        prompt_builder: PromptBuilder; InsightPromptBuilder when None
        token_counter: Optional exact counter for strategy selection
    """

    def __init__(
        self,
        completion: Optional[CompletionService] = None,
        max_tokens: Optional[int] = None,
        config: Optional[InsightsConfig] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        self.config = config or get_insights_config()
        if max_tokens is None:
            max_tokens = self.config.max_tokens
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        self.max_tokens = max_tokens
        self.limiter = limiter or ConcurrencyLimiter(self.config.max_concurrency)
        self._completion = completion or LLMCompletionService()
        self._prompt_builder = prompt_builder or InsightPromptBuilder()

        single_pass = SinglePassInsightStrategy(
            self._completion, self._prompt_builder, self.limiter
        )
        map_reduce = MapReduceInsightStrategy(
            self._completion,
            self._prompt_builder,
            self.limiter,
            max_tokens=self.max_tokens,
            chunk_token_limit_ratio=self.config.chunk_token_limit_ratio,
            avg_chars_per_token=self.config.avg_chars_per_token,
        )
        self.strategy: InsightGenerationStrategy = AdaptiveInsightStrategy(
            single_pass,
            map_reduce,
            max_tokens=self.max_tokens,
            avg_chars_per_token=self.config.avg_chars_per_token,
            token_counter=token_counter,
        )

    async def generate(
        self,
        category: InsightCategory,
        summaries: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        """Generate one category's insight. None when it could not be produced."""
        return await self.strategy.generate_insights(category, summaries)

    async def generate_all(
        self,
        categories: Iterable[InsightCategory],
        summaries: Sequence[str],
    ) -> Dict[InsightCategory, Dict[str, Any]]:
        """Generate several categories concurrently.

        Absent categories are left out of the result; the rest still return.
        UnsupportedSchemaShapeError propagates once the other categories
        have been cancelled, so no further completion calls are issued.
        """
        categories = list(categories)
        logger.info(
            f"Generating {len(categories)} insight categories from "
            f"{len(summaries)} summaries (max_concurrency={self.limiter.max_concurrent})"
        )

        tasks = [
            asyncio.ensure_future(self.generate(category, summaries))
            for category in categories
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # A fatal error in one category stops the rest before re-raising
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        insights: Dict[InsightCategory, Dict[str, Any]] = {}
        for category, result in zip(categories, results):
            if result is None:
                logger.info(f"No insight produced for {schema_for(category).display_name}")
                continue
            insights[category] = result

        logger.info(
            f"Generated {len(insights)}/{len(categories)} insight categories "
            f"(peak in-flight calls: {self.limiter.peak_in_flight})"
        )
        return insights

    def generate_all_sync(
        self,
        categories: Iterable[InsightCategory],
        summaries: Sequence[str],
    ) -> Dict[InsightCategory, Dict[str, Any]]:
        """Blocking wrapper around generate_all for non-async callers."""
        return asyncio.run(self.generate_all(categories, summaries))

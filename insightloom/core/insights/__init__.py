"""Insight consolidation engine — turn file summaries into app-level insights.

Public API:
    InsightsEngine             — orchestrator (generate, generate_all)
    AdaptiveInsightStrategy    — single-pass vs map-reduce selection
    MapReduceInsightStrategy   — chunk, map, combine, reduce
    SinglePassInsightStrategy  — one call with everything
    chunk_by_token_limit       — token-budget chunker
    combine_partial_results    — schema-shape combiner
    ConcurrencyLimiter         — shared gate for completion calls
"""

from .chunker import chunk_by_token_limit
from .combiner import combine_partial_results
from .completion import LLMCompletionService
from .engine import InsightsEngine
from .limiter import ConcurrencyLimiter
from .models import (
    CategorySchema,
    CompletionResult,
    InsightCategory,
    SchemaShape,
    UnsupportedSchemaShapeError,
)
from .schemas import schema_for
from .strategies import (
    AdaptiveInsightStrategy,
    InsightGenerationStrategy,
    MapReduceInsightStrategy,
    SinglePassInsightStrategy,
)

__all__ = [
    "InsightsEngine",
    "AdaptiveInsightStrategy",
    "InsightGenerationStrategy",
    "MapReduceInsightStrategy",
    "SinglePassInsightStrategy",
    "chunk_by_token_limit",
    "combine_partial_results",
    "LLMCompletionService",
    "ConcurrencyLimiter",
    "CategorySchema",
    "CompletionResult",
    "InsightCategory",
    "SchemaShape",
    "UnsupportedSchemaShapeError",
    "schema_for",
]

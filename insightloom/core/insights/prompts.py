"""Prompt assembly for insight generation.

Two templates:
1. insight prompt - summaries in, category-shaped JSON out (MAP and single-pass)
2. reduce prompt - combined partial JSON in, one consolidated object out

Only the scaffolding lives here; category wording comes from the registry
label and the pydantic model's JSON schema.
"""

import json
from typing import Any, Dict, Protocol, Sequence

from .models import CategorySchema, InsightCategory
from .schemas import schema_for

PERSONA_INTRODUCTION = (
    "Act as a senior developer analyzing the code in a legacy application."
)
FILE_SUMMARIES_DATA_BLOCK_HEADER = "FILE_SUMMARIES"
FRAGMENTED_DATA_BLOCK_HEADER = "FRAGMENTED_DATA"


class PromptBuilder(Protocol):
    """Contract consumed by the map executor, reducer and single-pass strategy."""

    def build_insight_prompt(
        self, category: InsightCategory, content: str, partial: bool = False
    ) -> str: ...

    def build_reduce_prompt(self, category: InsightCategory, content: str) -> str: ...


def join_summaries(summaries: Sequence[str]) -> str:
    """Join source file summaries into one data block."""
    return "\n".join(summaries)


def _partial_analysis_note(data_block_header: str) -> str:
    formatted = data_block_header.lower().replace("_", " ")
    return (
        f"Note, this is a partial analysis of what is a much larger set of {formatted}; "
        f"focus on extracting insights from this subset of {formatted} only.\n\n"
    )


def _json_schema_text(category_schema: CategorySchema) -> str:
    schema: Dict[str, Any] = category_schema.model.model_json_schema(by_alias=True)
    return json.dumps(schema, indent=2)


class InsightPromptBuilder:
    """Default PromptBuilder rendering plain-text prompts."""

    def __init__(self, persona_introduction: str = PERSONA_INTRODUCTION):
        self._persona = persona_introduction

    def build_insight_prompt(
        self, category: InsightCategory, content: str, partial: bool = False
    ) -> str:
        category_schema = schema_for(category)
        header = FILE_SUMMARIES_DATA_BLOCK_HEADER
        context_note = _partial_analysis_note(header) if partial else ""

        return (
            f"{self._persona} Based on the source file summaries shown below in the section "
            f"marked '{header}', return a JSON response that captures the "
            f"{category_schema.display_name} of the application.\n\n"
            f"{context_note}"
            f"The JSON response must follow this JSON schema:\n"
            f"```json\n{_json_schema_text(category_schema)}\n```\n\n"
            f"Respond only with JSON. Do not include any explanation or markdown outside the JSON.\n\n"
            f"{header}:\n{content}"
        )

    def build_reduce_prompt(self, category: InsightCategory, content: str) -> str:
        category_schema = schema_for(category)
        header = FRAGMENTED_DATA_BLOCK_HEADER
        key = category_schema.field_name

        return (
            f"{self._persona} The data in the section marked '{header}' holds several "
            f"lists of '{key}' generated from different parts of a codebase. Consolidate "
            f"them into a single, de-duplicated list. Merge items that are semantically "
            f"the same, even when their names differ slightly, and keep the most complete "
            f"description for each. Where the data holds several candidate texts instead "
            f"of lists, merge them into one coherent text.\n\n"
            f"The JSON response must follow this JSON schema:\n"
            f"```json\n{_json_schema_text(category_schema)}\n```\n\n"
            f"Respond only with JSON. Do not include any explanation or markdown outside the JSON.\n\n"
            f"{header}:\n{content}"
        )

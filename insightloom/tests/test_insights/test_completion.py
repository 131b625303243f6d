"""Unit tests for the completion adapter and JSON output parsing."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from llama_index.core.base.llms.types import CompletionResponse

from insightloom.core.insights.completion import LLMCompletionService, parse_json_output
from insightloom.core.insights.schemas import (
    InferredArchitectureInsight,
    TechnologiesInsight,
)


def _make_llm(text=None, side_effect=None):
    llm = MagicMock()
    if side_effect is not None:
        llm.acomplete = AsyncMock(side_effect=side_effect)
    else:
        llm.acomplete = AsyncMock(return_value=CompletionResponse(text=text))
    return llm


# ── Tests: parse_json_output ──────────────────────────────────────────────


class TestParseJsonOutput:

    def test_plain_json(self):
        assert parse_json_output('{"a": 1}') == {"a": 1}

    def test_json_fence(self):
        raw = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nThanks'
        assert parse_json_output(raw) == {"a": [1, 2]}

    def test_bare_fence(self):
        assert parse_json_output('```\n{"a": true}\n```') == {"a": True}

    def test_outermost_braces_recovered(self):
        raw = 'Result: {"a": {"b": 2}} -- end'
        assert parse_json_output(raw) == {"a": {"b": 2}}

    def test_no_json_raises(self):
        with pytest.raises(ValueError):
            parse_json_output("I could not analyze this code.")

    def test_broken_json_raises(self):
        with pytest.raises(ValueError):
            parse_json_output('{"a": [1, 2}')

    def test_non_object_raises(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_json_output("[1, 2, 3]")


# ── Tests: LLMCompletionService ───────────────────────────────────────────


class TestLLMCompletionService:

    @pytest.mark.asyncio
    async def test_valid_response(self):
        llm = _make_llm('{"technologies": [{"name": "Java", "description": "JVM"}]}')
        service = LLMCompletionService(llm=llm)

        result = await service.complete("technologies", "prompt", TechnologiesInsight)

        assert result.ok
        assert result.value == {"technologies": [{"name": "Java", "description": "JVM"}]}
        assert result.metadata["task_id"] == "technologies"
        assert "latency_ms" in result.metadata
        llm.acomplete.assert_awaited_once_with("prompt")

    @pytest.mark.asyncio
    async def test_dump_uses_camel_case_aliases(self):
        raw = (
            '```json\n{"inferredArchitecture": {'
            '"internalComponents": [{"name": "Loans", "description": "d"}],'
            '"dependencies": [{"from": "Loans", "to": "Oracle", "description": "reads"}]'
            '}}\n```'
        )
        service = LLMCompletionService(llm=_make_llm(raw))

        result = await service.complete(
            "inferredArchitecture", "prompt", InferredArchitectureInsight
        )

        arch = result.value["inferredArchitecture"]
        assert arch["dependencies"][0]["from"] == "Loans"
        assert arch["externalDependencies"] == []
        assert "internal_components" not in arch

    @pytest.mark.asyncio
    async def test_extra_keys_preserved(self):
        raw = '{"technologies": [{"name": "Go", "description": "d", "version": "1.22"}]}'
        service = LLMCompletionService(llm=_make_llm(raw))

        result = await service.complete("technologies", "prompt", TechnologiesInsight)

        assert result.value["technologies"][0]["version"] == "1.22"

    @pytest.mark.asyncio
    async def test_schema_violation_is_failure(self):
        service = LLMCompletionService(llm=_make_llm('{"technologies": "Java"}'))

        result = await service.complete("technologies-chunk", "prompt", TechnologiesInsight)

        assert not result.ok
        assert result.value is None
        assert result.error.task_id == "technologies-chunk"
        assert result.error.message.startswith("Invalid response for technologies-chunk")

    @pytest.mark.asyncio
    async def test_unparseable_output_is_failure(self):
        service = LLMCompletionService(llm=_make_llm("Sorry, no."))

        result = await service.complete("technologies", "prompt", TechnologiesInsight)

        assert not result.ok
        assert isinstance(result.error.cause, ValueError)

    @pytest.mark.asyncio
    async def test_provider_exception_is_failure(self):
        service = LLMCompletionService(llm=_make_llm(side_effect=ConnectionError("reset")))

        result = await service.complete("technologies", "prompt", TechnologiesInsight)

        assert not result.ok
        assert "ConnectionError" in result.error.message
        assert isinstance(result.error.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_falls_back_to_settings_llm(self):
        llm = _make_llm('{"technologies": []}')
        with patch("insightloom.core.insights.completion.Settings") as mock_settings:
            mock_settings.llm = llm
            result = await LLMCompletionService().complete(
                "technologies", "prompt", TechnologiesInsight
            )

        assert result.ok
        llm.acomplete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_llm_configured_is_failure(self):
        with patch("insightloom.core.insights.completion.Settings") as mock_settings:
            mock_settings.llm = None
            result = await LLMCompletionService().complete(
                "technologies", "prompt", TechnologiesInsight
            )

        assert not result.ok
        assert "No LLM configured" in result.error.message

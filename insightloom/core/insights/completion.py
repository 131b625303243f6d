"""Completion collaborator: prompt in, schema-validated dict out.

LLMCompletionService adapts any LlamaIndex LLM to the CompletionService
contract. It never raises for provider, parse or validation failures;
those come back as CompletionResult.failure(). Retry belongs to the LLM
wrapper configured by the host application, not here.
"""

import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Type

from llama_index.core import Settings
from pydantic import BaseModel, ValidationError

from .models import CompletionResult

logger = logging.getLogger(__name__)


class CompletionService(Protocol):
    """Contract for the completion collaborator."""

    async def complete(
        self, task_id: str, prompt: str, model: Type[BaseModel]
    ) -> CompletionResult: ...


def parse_json_output(raw: str) -> Dict[str, Any]:
    """Parse a JSON object from LLM output, stripping markdown fences.

    Raises:
        ValueError: if no JSON object can be recovered
    """
    cleaned = raw
    if "```json" in cleaned:
        cleaned = cleaned.split("```json", 1)[1]
    elif cleaned.lstrip().startswith("```"):
        cleaned = cleaned.lstrip()[3:]
    if "```" in cleaned:
        cleaned = cleaned.split("```", 1)[0]
    cleaned = cleaned.strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        # Try the outermost { }
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            raise ValueError(f"No JSON object in LLM output: {e}") from e
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as inner:
            raise ValueError(f"Unparseable JSON in LLM output: {inner}") from inner

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class LLMCompletionService:
    """CompletionService backed by a LlamaIndex LLM.

    Args:
        llm: LlamaIndex LLM (or gateway wrapper). Resolved lazily from
            Settings.llm when None.
    """

    def __init__(self, llm: Any = None):
        self._llm = llm

    def _resolve_llm(self) -> Any:
        llm = self._llm or Settings.llm
        if llm is None:
            raise RuntimeError("No LLM configured")
        return llm

    async def complete(
        self, task_id: str, prompt: str, model: Type[BaseModel]
    ) -> CompletionResult:
        t0 = time.time()
        try:
            llm = self._resolve_llm()
            response = await llm.acomplete(prompt)
        except Exception as e:
            return CompletionResult.failure(
                f"LLM call failed for {task_id}: {type(e).__name__}: {e}",
                task_id=task_id,
                cause=e,
            )

        latency_ms = (time.time() - t0) * 1000
        raw_output = (response.text or "").strip()

        try:
            parsed = parse_json_output(raw_output)
            validated = model.model_validate(parsed)
        except (ValueError, ValidationError) as e:
            first_line = str(e).splitlines()[0] if str(e) else type(e).__name__
            return CompletionResult.failure(
                f"Invalid response for {task_id}: {first_line}",
                task_id=task_id,
                cause=e,
            )

        logger.debug(
            f"Completion ok: task={task_id} prompt_chars={len(prompt)} "
            f"response_chars={len(raw_output)} latency={latency_ms:.0f}ms"
        )
        return CompletionResult.success(
            validated.model_dump(by_alias=True),
            task_id=task_id,
            latency_ms=latency_ms,
        )

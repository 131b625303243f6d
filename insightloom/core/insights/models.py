"""Data contracts for the insight consolidation engine.

All structured types shared across the insights subsystem.
Kept as dataclasses and enums; category payloads travel as plain dicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel


class InsightCategory(Enum):
    """Kinds of app-level insight. Values are the response JSON keys."""
    APP_DESCRIPTION = "appDescription"
    TECHNOLOGIES = "technologies"
    BUSINESS_PROCESSES = "businessProcesses"
    BOUNDED_CONTEXTS = "boundedContexts"
    POTENTIAL_MICROSERVICES = "potentialMicroservices"
    INFERRED_ARCHITECTURE = "inferredArchitecture"


class SchemaShape(Enum):
    """Structural pattern of a category response, drives combination."""
    ARRAY = "array"     # {key: [...]}
    NESTED = "nested"   # {key: {sub1: [...], sub2: [...]}}
    SCALAR = "scalar"   # {key: "..."}


class DegradedCondition(Enum):
    """Non-fatal conditions. Each one is logged once and never raised."""
    CHUNK_OVERSIZE = "ChunkOversizeWarning"
    CHUNK_COMPLETION_FAILURE = "ChunkCompletionFailure"
    ALL_CHUNKS_FAILED = "AllChunksFailed"
    REDUCE_COMPLETION_FAILURE = "ReduceCompletionFailure"
    SINGLE_PASS_COMPLETION_FAILURE = "SinglePassCompletionFailure"


class UnsupportedSchemaShapeError(ValueError):
    """A category was registered with a shape the combiner cannot handle.

    This is a programming/configuration error and must abort loudly.
    """

    def __init__(self, category: Any, shape: Any):
        self.category = category
        self.shape = shape
        super().__init__(
            f"Unhandled schema shape {shape!r} for category {category!r}. "
            f"Map-reduce requires explicit handling for ARRAY, NESTED or SCALAR shapes."
        )


@dataclass(frozen=True)
class CategorySchema:
    """Registry entry describing one category's response.

    The shape is declared at registration time; nothing inspects the
    pydantic model at runtime to guess it.
    """
    category: InsightCategory
    shape: SchemaShape
    model: Type[BaseModel]
    field_name: str
    nested_field_names: Tuple[str, ...] = ()
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.field_name


@dataclass
class CompletionError:
    """Structured failure from the completion collaborator."""
    message: str
    task_id: Optional[str] = None
    cause: Optional[BaseException] = None


@dataclass
class CompletionResult:
    """Result of one completion call: a validated value or an error."""
    value: Optional[Dict[str, Any]] = None
    error: Optional[CompletionError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: Dict[str, Any], **metadata: Any) -> "CompletionResult":
        return cls(value=value, metadata=dict(metadata))

    @classmethod
    def failure(
        cls,
        message: str,
        task_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "CompletionResult":
        return cls(error=CompletionError(message=message, task_id=task_id, cause=cause))

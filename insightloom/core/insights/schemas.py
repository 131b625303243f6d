"""Category response schemas and the static category registry.

Each category maps to a pydantic model (the canonical response schema) and
an explicit SchemaShape tag. Models use snake_case attributes with camelCase
aliases so responses round-trip with the JSON keys the prompts ask for.
Unknown keys are kept (extra="allow") so nothing the LLM adds is lost.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import CategorySchema, InsightCategory, SchemaShape


class InsightModel(BaseModel):
    """Base for all insight payload models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# ── Shared item models ────────────────────────────────────────────────────


class NameDescription(InsightModel):
    name: str = Field(description="The name of the item.")
    description: str = Field(
        description="A detailed description of the item in at least 5 sentences."
    )


class BusinessActivity(InsightModel):
    activity: str = Field(description="The name of the business activity step.")
    description: str = Field(
        description="A detailed description of the business activity step using business language."
    )


class BusinessProcess(NameDescription):
    key_business_activities: List[BusinessActivity] = Field(
        default_factory=list,
        description="Key business activity steps that are linearly conducted by this process.",
    )


# ── Domain model (bounded contexts) ───────────────────────────────────────


class NestedEntity(NameDescription):
    pass


class NestedRepository(NameDescription):
    pass


class NestedAggregate(NameDescription):
    repository: Optional[NestedRepository] = Field(
        default=None,
        description="The repository that provides persistence for this aggregate.",
    )
    entities: List[NestedEntity] = Field(
        default_factory=list,
        description="The domain entities managed by this aggregate.",
    )


class BoundedContext(NameDescription):
    aggregates: List[NestedAggregate] = Field(
        default_factory=list,
        description="The aggregates within this bounded context.",
    )


# ── Potential microservices ───────────────────────────────────────────────


class MicroserviceEntity(InsightModel):
    name: str
    description: str
    attributes: Optional[List[str]] = None


class RestEndpoint(InsightModel):
    path: str = Field(description="REST endpoint path, e.g. /api/users/{id}.")
    method: str = Field(description="The HTTP method (GET, POST, PUT, DELETE, PATCH).")
    description: str


class CrudOperation(InsightModel):
    operation: str = Field(description="CRUD operation name, e.g. Create User.")
    method: str
    description: str


class PotentialMicroservice(NameDescription):
    entities: List[MicroserviceEntity] = Field(default_factory=list)
    endpoints: List[RestEndpoint] = Field(default_factory=list)
    operations: List[CrudOperation] = Field(default_factory=list)


# ── Inferred architecture ─────────────────────────────────────────────────


class InferredComponent(InsightModel):
    name: str = Field(
        description="A business domain component (e.g. 'Loan Manager'), not a technical layer."
    )
    description: str


class ExternalDependency(InsightModel):
    name: str
    type: str = Field(description="Database, Message Queue, External API, Cache, ...")
    description: str


class ComponentDependency(InsightModel):
    from_: str = Field(alias="from", description="The source business component.")
    to: str = Field(description="The target component or external system.")
    description: str


class InferredArchitecture(InsightModel):
    internal_components: List[InferredComponent] = Field(default_factory=list)
    external_dependencies: List[ExternalDependency] = Field(default_factory=list)
    dependencies: List[ComponentDependency] = Field(default_factory=list)


# ── Category response models ──────────────────────────────────────────────


class AppDescriptionInsight(InsightModel):
    app_description: str = Field(
        description="A detailed description of the application's purpose and implementation."
    )


class TechnologiesInsight(InsightModel):
    technologies: List[NameDescription] = Field(
        description="Key external and host platform technologies depended on by the application."
    )


class BusinessProcessesInsight(InsightModel):
    business_processes: List[BusinessProcess] = Field(
        description="The application's main business processes with their key activities."
    )


class BoundedContextsInsight(InsightModel):
    bounded_contexts: List[BoundedContext] = Field(
        description="Domain-driven design bounded contexts with their aggregates and entities."
    )


class PotentialMicroservicesInsight(InsightModel):
    potential_microservices: List[PotentialMicroservice] = Field(
        description="Recommended microservices to modernize the monolithic application."
    )


class InferredArchitectureInsight(InsightModel):
    inferred_architecture: InferredArchitecture = Field(
        description="The inferred business architecture of the application."
    )


# ── Registry ──────────────────────────────────────────────────────────────

CATEGORY_SCHEMAS: Dict[InsightCategory, CategorySchema] = {
    InsightCategory.APP_DESCRIPTION: CategorySchema(
        category=InsightCategory.APP_DESCRIPTION,
        shape=SchemaShape.SCALAR,
        model=AppDescriptionInsight,
        field_name="appDescription",
        label="Application Description",
    ),
    InsightCategory.TECHNOLOGIES: CategorySchema(
        category=InsightCategory.TECHNOLOGIES,
        shape=SchemaShape.ARRAY,
        model=TechnologiesInsight,
        field_name="technologies",
        label="Technologies",
    ),
    InsightCategory.BUSINESS_PROCESSES: CategorySchema(
        category=InsightCategory.BUSINESS_PROCESSES,
        shape=SchemaShape.ARRAY,
        model=BusinessProcessesInsight,
        field_name="businessProcesses",
        label="Business Processes",
    ),
    InsightCategory.BOUNDED_CONTEXTS: CategorySchema(
        category=InsightCategory.BOUNDED_CONTEXTS,
        shape=SchemaShape.ARRAY,
        model=BoundedContextsInsight,
        field_name="boundedContexts",
        label="Bounded Contexts",
    ),
    InsightCategory.POTENTIAL_MICROSERVICES: CategorySchema(
        category=InsightCategory.POTENTIAL_MICROSERVICES,
        shape=SchemaShape.ARRAY,
        model=PotentialMicroservicesInsight,
        field_name="potentialMicroservices",
        label="Potential Microservices",
    ),
    InsightCategory.INFERRED_ARCHITECTURE: CategorySchema(
        category=InsightCategory.INFERRED_ARCHITECTURE,
        shape=SchemaShape.NESTED,
        model=InferredArchitectureInsight,
        field_name="inferredArchitecture",
        nested_field_names=("internalComponents", "externalDependencies", "dependencies"),
        label="Inferred Architecture",
    ),
}


def schema_for(category: InsightCategory) -> CategorySchema:
    """Return the registered schema for a category.

    Raises:
        KeyError: if the category has no registry entry
    """
    try:
        return CATEGORY_SCHEMAS[category]
    except KeyError:
        raise KeyError(f"No schema registered for category {category!r}") from None

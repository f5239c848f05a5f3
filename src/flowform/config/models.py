"""Root configuration model for flow documents."""

from pydantic import BaseModel, Field, model_validator

from flowform.config.settings import Settings
from flowform.flow.models import FlowDefinition

# DSL Version constants
SUPPORTED_VERSIONS = frozenset({"1.0"})
CURRENT_VERSION = "1.0"


class FlowFormConfig(BaseModel):
    """A flow document: flow definitions plus runtime settings."""

    version: str = Field(default=CURRENT_VERSION, description="DSL version")
    flows: list[FlowDefinition] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)

    @model_validator(mode="after")
    def _check_document(self) -> "FlowFormConfig":
        if self.version not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"Unsupported DSL version: {self.version}. "
                f"Supported: {', '.join(sorted(SUPPORTED_VERSIONS))}"
            )
        seen: set[str] = set()
        for flow in self.flows:
            if flow.id in seen:
                raise ValueError(f"Flow '{flow.id}' is defined more than once")
            seen.add(flow.id)
        return self

    def get_flow(self, flow_id: str) -> FlowDefinition | None:
        for flow in self.flows:
            if flow.id == flow_id:
                return flow
        return None

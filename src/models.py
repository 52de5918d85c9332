"""
Data model for ARCH.

Two kinds of records live here:
- Session-side records (Message, SeedTurn, WizardData, SamplePoint) are plain
  dataclasses owned by the session layer.
- Wire records produced by the extraction collaborator or read from disk
  (SimulationConfig, DiagramData, ProjectSummary) are pydantic models, so that
  PydanticOutputParser can describe and validate their JSON shape.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    """Author of a message or seed turn."""
    USER = "user"
    ASSISTANT = "assistant"


_message_ids = itertools.count(1)


def next_message_id(prefix: str = "msg") -> str:
    """Unique, increasing message id for this process."""
    return f"{prefix}-{next(_message_ids):06d}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """
    One entry in the visible message log.

    Only `text` and `streaming` change after creation, and only while the
    message is the target of the active stream.
    """
    role: Role
    text: str = ""
    streaming: bool = False
    local: bool = False  # shown to the user, never sent as model context
    id: str = field(default_factory=next_message_id)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, text=text)

    @classmethod
    def assistant(cls, text: str = "", streaming: bool = False) -> "Message":
        return cls(role=Role.ASSISTANT, text=text, streaming=streaming)

    @classmethod
    def banner(cls, text: str) -> "Message":
        return cls(role=Role.ASSISTANT, text=text, local=True)


@dataclass(frozen=True)
class SeedTurn:
    """A turn supplied to initialize a new conversation's context."""
    role: Role
    text: str

    @classmethod
    def from_message(cls, message: Message) -> "SeedTurn":
        return cls(role=message.role, text=message.text)


@dataclass(frozen=True)
class WizardData:
    """Answers collected by the guided start."""
    field: str
    phenomenon: str
    hypothesis: str


@dataclass(frozen=True)
class SamplePoint:
    """One point of the hypothesis curve."""
    x: float
    null_y: float
    alt_y: float


# =============================================================================
# Wire models
# =============================================================================

class SimulationVariable(BaseModel):
    """An independent variable the user can move within [min, max]."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(description="Identifier used inside the formulas, e.g. sleepHours")
    label: str = Field(description="Human readable label")
    min: float = Field(description="Lower bound of the variable")
    max: float = Field(description="Upper bound of the variable")
    default_value: float = Field(alias="defaultValue", description="Initial value, between min and max")
    description: str = Field(default="", description="What the variable represents")

    @model_validator(mode="after")
    def _check_bounds(self) -> "SimulationVariable":
        if not self.min <= self.default_value <= self.max:
            raise ValueError(
                f"variable '{self.name}': expected min <= defaultValue <= max, "
                f"got {self.min} <= {self.default_value} <= {self.max}"
            )
        return self


class SimulationConfig(BaseModel):
    """Null and alternative hypothesis formulas over the independent variables."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    variables: list[SimulationVariable] = Field(
        alias="independentVariables",
        description="Independent variables; the first one is the free axis of the chart",
    )
    dependent_label: str = Field(alias="dependentVariableLabel", description="Label of the dependent variable")
    null_formula: str = Field(
        alias="h0_formula",
        description="Arithmetic expression for H0 using the variable names, e.g. 35",
    )
    alt_formula: str = Field(
        alias="h1_formula",
        description="Arithmetic expression for H1 using the variable names, e.g. 20 + 3 * sleepHours",
    )
    explanation: str = Field(description="Short explanation of the model")

    @property
    def primary(self) -> SimulationVariable | None:
        return self.variables[0] if self.variables else None

    def default_values(self) -> dict[str, float]:
        return {v.name: v.default_value for v in self.variables}


NodeStatus = Literal["pending", "active", "completed"]


class DiagramNode(BaseModel):
    """One component of the project map."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier unique within the diagram")
    label: str = Field(description="Short label")
    status: NodeStatus = Field(description="pending, active or completed")
    details: str = Field(default="", description="One sentence of detail")
    connections: list[str] = Field(default_factory=list, description="Ids of connected nodes")


class DiagramData(BaseModel):
    """Project map, read as a linear sequence of nodes."""
    model_config = ConfigDict(frozen=True)

    nodes: list[DiagramNode] = Field(description="Key components: question, hypothesis, variables, methodology")

    def node(self, node_id: str) -> DiagramNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def connected(self, node: DiagramNode) -> list[DiagramNode]:
        """Targets of a node's connections, skipping ids that don't exist."""
        targets = []
        for node_id in node.connections:
            target = self.node(node_id)
            if target is not None:
                targets.append(target)
        return targets

    def counts(self) -> dict[str, int]:
        totals = {"pending": 0, "active": 0, "completed": 0}
        for node in self.nodes:
            totals[node.status] += 1
        return totals


PHASE_FIELDS = (
    ("phase1_structure", "F1 STRUCTURE"),
    ("phase2_variables", "F2 VARIABLES"),
    ("phase3_resources", "F3 RESOURCES"),
    ("phase4_execution", "F4 EXECUTION"),
)


class ProjectSummary(BaseModel):
    """Consolidated project state, exported to and restored from disk."""
    model_config = ConfigDict(populate_by_name=True)

    project_title: str = Field(alias="projectTitle", description="Working title of the project")
    phase1_structure: str | None = Field(default=None, description="Question, hypotheses and objectives")
    phase2_variables: str | None = Field(default=None, description="Independent, dependent and confounding variables")
    phase3_resources: str | None = Field(default=None, description="Inputs and outputs")
    phase4_execution: str | None = Field(default=None, description="Work breakdown and validation points")
    last_active_phase: str = Field(alias="lastActivePhase", description="Phase the conversation was in")
    timestamp: str | None = Field(default=None, description="ISO 8601 time of export")

    def phases(self) -> list[tuple[str, str]]:
        """(heading, text) for every phase that has content, in phase order."""
        filled = []
        for attr, heading in PHASE_FIELDS:
            text = getattr(self, attr)
            if text:
                filled.append((heading, text))
        return filled

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)

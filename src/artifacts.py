"""
ArtifactOrchestrator: structured artifacts derived from the conversation.

Each request is one call to the extraction model. The prompt carries the
JSON shape through PydanticOutputParser.get_format_instructions(), and the
same parser validates the reply. Nothing here touches the message log, so
these calls may run while a chat stream is in flight.

Usage:
    orchestrator = ArtifactOrchestrator(llm)
    simulation = await orchestrator.request_simulation_config(controller.transcript())
    simulation.set_value("sleepHours", 6)
    points = simulation.sample()
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence, TypeVar

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import PydanticOutputParser
from pydantic import BaseModel

import formula
import prompts
from errors import ArtifactGenerationError, CollaboratorError
from llm import LLMClient
from logging_utils import get_logger
from models import DiagramData, Message, ProjectSummary, SamplePoint, SimulationConfig

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def format_transcript(messages: Sequence[Message]) -> str:
    """Render messages as 'ROLE: text' blocks, skipping local banners."""
    return "\n\n".join(
        f"{m.role.value.upper()}: {m.text}"
        for m in messages
        if not m.local
    )


@dataclass
class SimulationState:
    """A simulation config plus the values the user has set for its variables."""
    config: SimulationConfig
    values: dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.values:
            self.values = self.config.default_values()

    @property
    def usable(self) -> bool:
        return self.config.primary is not None

    def set_value(self, name: str, value: float) -> float:
        """Set a variable, clamped to its range. Returns the stored value."""
        for variable in self.config.variables:
            if variable.name == name:
                clamped = min(max(float(value), variable.min), variable.max)
                self.values[name] = clamped
                return clamped
        raise KeyError(f"Unknown variable: {name}")

    def reset_values(self) -> None:
        self.values = self.config.default_values()

    def sample(self) -> list[SamplePoint]:
        """
        Raises:
            NoPrimaryVariableError: if the config has no variables.
        """
        return formula.sample(self.values, self.config)


class ArtifactOrchestrator:
    """Requests simulation configs, diagrams and summaries from the extraction model."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def request_simulation_config(self, transcript: Sequence[Message]) -> SimulationState:
        """Extract hypothesis variables and formulas; values start at their defaults."""
        config = await self._request(
            SimulationConfig,
            prompts.SIMULATION_PROMPT,
            prompts.SIMULATION_SYSTEM_PROMPT,
            conversation=format_transcript(transcript),
        )
        logger.info(f"Simulation config with {len(config.variables)} variables")
        return SimulationState(config)

    async def request_diagram(self, transcript: Sequence[Message], language: str = "es") -> DiagramData:
        """Extract the project map, labelled in the requested language."""
        diagram = await self._request(
            DiagramData,
            prompts.DIAGRAM_PROMPT,
            prompts.DIAGRAM_SYSTEM_PROMPT,
            conversation=format_transcript(transcript),
            language_name=prompts.LANGUAGE_NAMES.get(language, prompts.LANGUAGE_NAMES["es"]),
        )
        logger.info(f"Diagram with {len(diagram.nodes)} nodes")
        return diagram

    async def request_project_summary(self, transcript: Sequence[Message]) -> ProjectSummary:
        """Extract the consolidated project state, stamped with the current time."""
        summary = await self._request(
            ProjectSummary,
            prompts.SUMMARY_PROMPT,
            prompts.SUMMARY_SYSTEM_PROMPT,
            conversation=format_transcript(transcript),
        )
        return summary.model_copy(update={"timestamp": datetime.now(timezone.utc).isoformat()})

    async def _request(self, model: type[M], template: str, system_prompt: str, **fields) -> M:
        parser = PydanticOutputParser(pydantic_object=model)
        prompt = template.format(format_instructions=parser.get_format_instructions(), **fields)

        try:
            raw = await self.llm.generate_json(prompt, system_prompt=system_prompt)
        except CollaboratorError as e:
            logger.error(f"{model.__name__} request failed: {e}")
            raise ArtifactGenerationError(f"Could not generate {model.__name__}: {e}") from e

        try:
            return parser.parse(raw)
        except OutputParserException as e:
            logger.error(f"{model.__name__} reply did not match the schema: {e}")
            raise ArtifactGenerationError(f"Invalid {model.__name__} reply") from e

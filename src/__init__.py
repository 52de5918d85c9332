"""
ARCH: conversational research architect.

Guides a user through structuring a research project and derives two
artifacts from the conversation: a hypothesis simulation and a project map.

Key design principles:
1. No global mutable state - the collaborator is injected everywhere
2. Session lifecycle as an explicit state machine
3. Untrusted formulas are evaluated by a whitelist walker, never executed
4. Errors local to one message or one sample point are absorbed there

Modules:
- models.py: Message, SeedTurn, SimulationConfig, DiagramData, ProjectSummary
- config.py: Immutable AppConfig, PathConfig, LLMConfig
- llm.py: LLMClient, Conversation, TextDelta
- stream.py: StreamAccumulator
- session.py: SessionController and session origins
- formula.py: restricted evaluator and curve sampling
- artifacts.py: ArtifactOrchestrator, SimulationState
- persistence.py: project summary export/import
- main.py: CLI and programmatic entry points
"""

from models import Message, Role, SeedTurn, SimulationConfig, DiagramData, ProjectSummary
from config import AppConfig, load_config
from llm import LLMClient
from stream import StreamAccumulator
from session import SessionController, SessionStatus, Blank, WizardSeeded, Restored, Demo
from artifacts import ArtifactOrchestrator, SimulationState
from formula import sample, evaluate
from persistence import export_summary, import_summary

__all__ = [
    # Models
    "Message",
    "Role",
    "SeedTurn",
    "SimulationConfig",
    "DiagramData",
    "ProjectSummary",
    # Config
    "AppConfig",
    "load_config",
    # LLM
    "LLMClient",
    # Session
    "StreamAccumulator",
    "SessionController",
    "SessionStatus",
    "Blank",
    "WizardSeeded",
    "Restored",
    "Demo",
    # Artifacts
    "ArtifactOrchestrator",
    "SimulationState",
    "sample",
    "evaluate",
    # Persistence
    "export_summary",
    "import_summary",
]

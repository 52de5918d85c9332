"""
Shared test fixtures and utilities for ARCH tests.

This module provides:
- Config fixtures
- A scripted fake of the generation collaborator
- Summary / simulation payloads as the extraction model returns them
- Temporary directory fixtures
"""

import asyncio
import json
import os
import shutil
import sys
import tempfile
from typing import Sequence

import pytest

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import CollaboratorError, SessionInitError
from llm import Conversation, TextDelta
from models import SeedTurn


# =============================================================================
# Fake collaborator
# =============================================================================

class FakeLLM:
    """
    Scripted stand-in for LLMClient.

    Attributes to script before use:
        chunks: fragments yielded by every stream_reply() call
        fail_after: raise after yielding this many fragments (None = never)
        gate: optional asyncio.Event awaited after the first fragment
        init_error: raise SessionInitError from create_conversation
        json_replies: queue of strings (or exceptions) for generate_json
    """

    def __init__(self, chunks: Sequence[str] = ("Hola", ", ", "mundo")):
        self.chunks = list(chunks)
        self.fail_after: int | None = None
        self.gate: asyncio.Event | None = None
        self.init_error = False
        self.json_replies: list = []
        self.seeds: list[tuple[SeedTurn, ...]] = []
        self.sent: list[str] = []
        self.prompts: list[str] = []
        self.closed = 0

    async def create_conversation(self, seed_history):
        if self.init_error:
            raise SessionInitError("invalid API key")
        self.seeds.append(tuple(seed_history))
        return Conversation.from_seed(seed_history, system_prompt="test")

    async def stream_reply(self, conversation, user_text):
        self.sent.append(user_text)
        try:
            for i, chunk in enumerate(self.chunks):
                if self.fail_after is not None and i == self.fail_after:
                    raise ConnectionError("connection reset")
                yield TextDelta(chunk)
                if i == 0 and self.gate is not None:
                    await self.gate.wait()
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise ConnectionError("connection reset")
        except GeneratorExit:
            self.closed += 1
            raise
        conversation.record_exchange(user_text, "".join(self.chunks))

    async def generate_json(self, prompt, system_prompt=None):
        self.prompts.append(prompt)
        if not self.json_replies:
            raise CollaboratorError("no scripted reply")
        reply = self.json_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_llm():
    """A FakeLLM streaming 'Hola, mundo' in three fragments."""
    return FakeLLM()


# =============================================================================
# Payloads
# =============================================================================

SIMULATION_PAYLOAD = {
    "independentVariables": [
        {
            "name": "sleepHours",
            "label": "Horas de Sueño",
            "min": 0,
            "max": 10,
            "defaultValue": 4,
            "description": "Horas de descanso",
        },
        {
            "name": "caffeine",
            "label": "Cafeína (mg)",
            "min": 0,
            "max": 400,
            "defaultValue": 100,
        },
    ],
    "dependentVariableLabel": "Puntaje Raven (0-60)",
    "h0_formula": "35",
    "h1_formula": "20 + 3 * sleepHours + caffeine / 100",
    "explanation": "Modelo lineal",
}

DIAGRAM_PAYLOAD = {
    "nodes": [
        {"id": "n1", "label": "Problema", "status": "completed", "details": "d1", "connections": ["n2"]},
        {"id": "n2", "label": "Hipótesis", "status": "active", "details": "d2", "connections": ["n3", "ghost"]},
        {"id": "n3", "label": "Variables", "status": "pending", "details": "d3", "connections": []},
    ]
}

SUMMARY_PAYLOAD = {
    "projectTitle": "Sueño y Cognición",
    "phase1_structure": "Pregunta: ¿afecta el sueño al razonamiento?",
    "phase2_variables": "VI: horas de sueño. VD: puntaje Raven.",
    "phase3_resources": "",
    "phase4_execution": None,
    "lastActivePhase": "Fase 2",
}


@pytest.fixture
def simulation_payload():
    return json.loads(json.dumps(SIMULATION_PAYLOAD))


@pytest.fixture
def diagram_payload():
    return json.loads(json.dumps(DIAGRAM_PAYLOAD))


@pytest.fixture
def summary_payload():
    return json.loads(json.dumps(SUMMARY_PAYLOAD))


@pytest.fixture
def summary(summary_payload):
    from models import ProjectSummary
    return ProjectSummary.model_validate(summary_payload)


# =============================================================================
# Fixtures: Temporary Files and Directories
# =============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory that's cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="arch_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


# =============================================================================
# Fixtures: Config
# =============================================================================

@pytest.fixture
def mock_path_config(temp_dir):
    """Create a PathConfig rooted in a temporary directory."""
    from config import PathConfig
    return PathConfig.from_defaults(temp_dir)


@pytest.fixture
def mock_llm_config():
    """Create a mock LLMConfig for testing."""
    from config import LLMConfig
    return LLMConfig(
        base_url="https://test.api.com",
        chat_model="test-chat",
        extraction_model="test-extraction",
        api_key="test-key",
    )


@pytest.fixture
def mock_app_config(mock_path_config, mock_llm_config):
    """Create a mock AppConfig for testing."""
    from config import AppConfig
    return AppConfig(paths=mock_path_config, llm=mock_llm_config)


@pytest.fixture
def clean_env(monkeypatch):
    """
    Blank every environment variable load_config reads.

    Keys load_config may write are set to "" so monkeypatch restores them.
    """
    for key in (
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "CHAT_MODEL_NAME",
        "EXTRACTION_MODEL_NAME",
        "ARCH_LANGUAGE",
    ):
        monkeypatch.setenv(key, "")
    for key in ("CHAT_TEMPERATURE", "EXTRACTION_TEMPERATURE"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch

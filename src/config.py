"""
AppConfig: Immutable application configuration.

This module contains ONLY static configuration that doesn't change during execution.
Conversation state lives in SessionController (see session.py).

Design principles:
- Frozen dataclasses prevent accidental mutation
- Configuration loaded once at startup
- Environment variables can override config file values
- No global mutable state
"""

import os
import json
from dataclasses import dataclass

from logging_utils import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = ("es", "en")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_CHAT_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class PathConfig:
    """Immutable path configuration."""
    root_dir: str
    inputs_dir: str
    export_dir: str
    log_dir: str

    @classmethod
    def from_defaults(cls, root_dir: str | None = None) -> "PathConfig":
        """Create PathConfig with default paths based on root directory."""
        if root_dir is None:
            src_dir = os.path.dirname(os.path.abspath(__file__))
            root_dir = os.path.dirname(src_dir)

        return cls(
            root_dir=root_dir,
            inputs_dir=os.path.join(root_dir, "inputs"),
            export_dir=os.path.join(root_dir, "projects"),
            log_dir=os.path.join(root_dir, "logs"),
        )


@dataclass(frozen=True)
class LLMConfig:
    """Immutable LLM configuration."""
    base_url: str
    chat_model: str
    extraction_model: str
    api_key: str = ""
    chat_temperature: float = 0.7
    extraction_temperature: float = 0.2

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create LLMConfig from environment variables."""
        chat_model = os.environ.get("CHAT_MODEL_NAME") or DEFAULT_CHAT_MODEL
        return cls(
            base_url=os.environ.get("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
            chat_model=chat_model,
            extraction_model=os.environ.get("EXTRACTION_MODEL_NAME") or chat_model,
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            chat_temperature=float(os.environ.get("CHAT_TEMPERATURE", "0.7")),
            extraction_temperature=float(os.environ.get("EXTRACTION_TEMPERATURE", "0.2")),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class AppConfig:
    """
    Complete immutable application configuration.

    This is the single source of truth for all static configuration.
    Create once at startup and pass to functions that need it.
    """
    paths: PathConfig
    llm: LLMConfig
    language: str = "es"
    llm_log_path: str | None = None


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from JSON file and environment variables.

    Priority: Environment variables > Config file > Defaults

    Args:
        config_path: Path to JSON config file. If None, uses default location.

    Returns:
        Immutable AppConfig instance.
    """
    paths = PathConfig.from_defaults()

    if config_path is None:
        config_path = os.path.join(paths.inputs_dir, "arch_config.json")

    # Load from JSON if exists
    config_data = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")

    # Set environment variables from config (env vars take priority)
    _set_env_if_not_exists("OPENAI_API_KEY", config_data.get("OPENAI_API_KEY", ""))
    _set_env_if_not_exists("OPENAI_BASE_URL", config_data.get("OPENAI_BASE_URL", ""))
    _set_env_if_not_exists("CHAT_MODEL_NAME", config_data.get("CHAT_MODEL_NAME", ""))
    _set_env_if_not_exists("EXTRACTION_MODEL_NAME", config_data.get("EXTRACTION_MODEL_NAME", ""))

    export_dir = config_data.get("export_dir")
    if export_dir:
        paths = PathConfig(
            root_dir=paths.root_dir,
            inputs_dir=paths.inputs_dir,
            export_dir=export_dir,
            log_dir=paths.log_dir,
        )

    language = os.environ.get("ARCH_LANGUAGE") or config_data.get("language", "es")
    if language not in SUPPORTED_LANGUAGES:
        logger.warning(f"Unsupported language '{language}', falling back to 'es'")
        language = "es"

    return AppConfig(
        paths=paths,
        llm=LLMConfig.from_env(),
        language=language,
        llm_log_path=config_data.get("llm_log_path"),
    )


def _set_env_if_not_exists(key: str, value: str) -> None:
    """Set environment variable only if not already set and value is non-empty."""
    if key not in os.environ or not os.environ[key]:
        if value:
            os.environ[key] = value


def ensure_directories(config: AppConfig) -> None:
    """Ensure all required directories exist."""
    directories = [
        config.paths.export_dir,
        config.paths.log_dir,
    ]
    for directory in directories:
        if not os.path.exists(directory):
            os.makedirs(directory)
            logger.info(f"Created directory: {directory}")

"""
LLM Client: the generation collaborator.

This module provides a dependency-injectable LLM client that doesn't rely on globals.
All configuration is passed explicitly.

Two contracts are exposed:
- Conversations: create_conversation(seed) -> Conversation, then
  stream_reply(conversation, text) yields TextDelta fragments.
- Structured extraction: generate_json(prompt) -> raw JSON text.

Design principles:
- No global state, no module-level client
- Configuration passed via constructor
- Works against any OpenAI-compatible endpoint (Gemini included)
- Optional JSONL logging of every call
"""

import asyncio
import json
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Literal, Sequence

import tiktoken
from openai import AsyncOpenAI, OpenAIError

from config import LLMConfig
from errors import CollaboratorError, SessionInitError
from logging_utils import get_logger
from models import SeedTurn
from prompts import SYSTEM_INSTRUCTION

logger = get_logger(__name__)


@dataclass(frozen=True)
class TextDelta:
    """One fragment of a streaming reply."""
    text: str


@dataclass
class LLMStats:
    """Statistics for LLM usage tracking."""
    chat_calls: int = 0
    chat_prompt_tokens: int = 0
    chat_completion_tokens: int = 0
    extraction_calls: int = 0
    extraction_prompt_tokens: int = 0
    extraction_completion_tokens: int = 0

    def record_chat(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.chat_calls += 1
        self.chat_prompt_tokens += prompt_tokens
        self.chat_completion_tokens += completion_tokens

    def record_extraction(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.extraction_calls += 1
        self.extraction_prompt_tokens += prompt_tokens
        self.extraction_completion_tokens += completion_tokens


def estimate_tokens(text: str) -> int:
    """Estimate token count using tiktoken cl100k_base encoding."""
    encoding = tiktoken.get_encoding("cl100k_base")
    return len(encoding.encode(text))


@dataclass
class Conversation:
    """
    Handle for one ongoing conversation.

    Holds the system prompt and every completed exchange. A reply that fails
    mid-stream leaves the history untouched.
    """
    system_prompt: str
    history: list[dict[str, str]] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_seed(cls, seed: Sequence[SeedTurn], system_prompt: str = SYSTEM_INSTRUCTION) -> "Conversation":
        history = [{"role": turn.role.value, "content": turn.text} for turn in seed]
        return cls(system_prompt=system_prompt, history=history)

    def messages_for(self, user_text: str) -> list[dict[str, str]]:
        """Full message list for the next request."""
        return (
            [{"role": "system", "content": self.system_prompt}]
            + self.history
            + [{"role": "user", "content": user_text}]
        )

    def record_exchange(self, user_text: str, reply: str) -> None:
        self.history.append({"role": "user", "content": user_text})
        self.history.append({"role": "assistant", "content": reply})

    def get_history(self) -> list[dict[str, str]]:
        """Get a copy of the conversation history."""
        return [dict(m) for m in self.history]


class LLMClient:
    """
    Clean LLM client with explicit configuration.

    Usage:
        config = LLMConfig.from_env()
        client = LLMClient(config)

        conversation = await client.create_conversation(seed)
        async for delta in client.stream_reply(conversation, "Hola"):
            print(delta.text, end="")

        raw = await client.generate_json(prompt)
    """

    def __init__(
        self,
        config: LLMConfig,
        log_path: str | None = None,
    ):
        """
        Initialize LLM client.

        The underlying AsyncOpenAI client is created lazily, so a missing API
        key surfaces as SessionInitError when a session starts.

        Args:
            config: LLM configuration (models, temperatures, credentials).
            log_path: Optional path to write logs. If None, no logging.
        """
        self.config = config
        self.log_path = log_path
        self.stats = LLMStats()
        self._client: AsyncOpenAI | None = None

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.config.has_credentials:
                raise OpenAIError("OPENAI_API_KEY is missing")
            self._client = AsyncOpenAI(api_key=self.config.api_key, base_url=self.config.base_url)
        return self._client

    async def create_conversation(self, seed_history: Sequence[SeedTurn]) -> Conversation:
        """
        Open a conversation seeded with the given turns.

        Raises:
            SessionInitError: if the client cannot be configured.
        """
        try:
            self._ensure_client()
        except OpenAIError as e:
            raise SessionInitError(f"Failed to initialize LLM client: {e}") from e

        conversation = Conversation.from_seed(seed_history)
        logger.debug(f"Created conversation {conversation.id} with {len(seed_history)} seed turns")
        return conversation

    async def stream_reply(self, conversation: Conversation, user_text: str) -> AsyncIterator[TextDelta]:
        """
        Stream the assistant's reply to `user_text`.

        Yields non-empty fragments in arrival order. On normal completion the
        exchange is appended to the conversation history. Any failure from the
        API propagates out of the iteration.
        """
        client = self._ensure_client()
        messages = conversation.messages_for(user_text)

        stream = await client.chat.completions.create(
            messages=messages,
            model=self.config.chat_model,
            temperature=self.config.chat_temperature,
            stream=True,
        )

        content_parts = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                content_parts.append(content)
                yield TextDelta(content)

        reply = "".join(content_parts)
        conversation.record_exchange(user_text, reply)
        await self._record_chat(messages, reply)

    async def _record_chat(self, messages: list[dict[str, str]], reply: str) -> None:
        """Stats and call log for a finished stream. Never raises."""
        # Streaming doesn't report usage
        prompt_text = json.dumps(messages, ensure_ascii=False)
        try:
            prompt_tokens = await asyncio.to_thread(estimate_tokens, prompt_text)
            completion_tokens = await asyncio.to_thread(estimate_tokens, reply)
        except Exception as e:
            logger.warning(f"Token estimation failed ({e}); using a rough estimate")
            prompt_tokens = len(prompt_text) // 4
            completion_tokens = len(reply) // 4
        self.stats.record_chat(prompt_tokens, completion_tokens)

        try:
            self._log("chat", messages, reply, prompt_tokens, completion_tokens)
        except OSError as e:
            logger.warning(f"Could not write LLM log {self.log_path}: {e}")

    async def generate_json(self, prompt: str, system_prompt: str | None = None) -> str:
        """
        Ask the extraction model for a JSON object.

        Returns:
            The raw JSON text of the reply.

        Raises:
            CollaboratorError: if the request fails or returns nothing.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            client = self._ensure_client()
            completion = await client.chat.completions.create(
                messages=messages,
                model=self.config.extraction_model,
                temperature=self.config.extraction_temperature,
                response_format={"type": "json_object"},
                stream=False,
            )
        except OpenAIError as e:
            raise CollaboratorError(f"Structured request failed: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise CollaboratorError("Structured request returned no content")

        prompt_tokens = completion.usage.prompt_tokens if completion.usage else 0
        completion_tokens = completion.usage.completion_tokens if completion.usage else 0
        self.stats.record_extraction(prompt_tokens, completion_tokens)
        self._log("extraction", messages, content, prompt_tokens, completion_tokens)

        return content

    def _log(
        self,
        call_type: Literal["chat", "extraction"],
        messages: list[dict[str, str]],
        response: str,
        prompt_tokens: int,
        completion_tokens: int,
    ) -> None:
        """Write log entry to file if log_path is set."""
        if not self.log_path:
            return

        log_entry = {
            "call_type": call_type,
            "model": self.config.chat_model if call_type == "chat" else self.config.extraction_model,
            "messages": messages,
            "response": response,
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "timestamp": datetime.now().isoformat(),
        }

        # Ensure directory exists
        log_dir = os.path.dirname(self.log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        with open(self.log_path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(log_entry, ensure_ascii=False) + '\n')

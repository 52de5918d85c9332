"""
SessionController: the conversation lifecycle.

Owns the visible message log and the single active conversation handle.
Every assistant turn is produced by a StreamAccumulator driving a
placeholder message in place.

State machine:

    UNINITIALIZED --start--> ACTIVE --send--> STREAMING --done--> ACTIVE
                                                        --fail--> ERROR --send--> STREAMING
    any state --reset--> UNINITIALIZED

Four origins open a session, all through begin():

    await controller.begin(Blank())
    await controller.begin(WizardSeeded(WizardData(...)))
    await controller.begin(Restored(summary))
    await controller.begin(Demo())

Cancellation is coarse. reset() (or a new start) bumps an epoch; callbacks
of a stream opened under an older epoch are dropped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence, Union

import demo
import prompts
from errors import SessionInitError, StreamError
from llm import Conversation, LLMClient
from logging_utils import get_logger
from models import Message, ProjectSummary, Role, SeedTurn, WizardData
from persistence import restoration_context
from stream import StreamAccumulator

logger = get_logger(__name__)

Listener = Callable[[Message], None]


class SessionStatus(str, Enum):
    """Lifecycle state of a SessionController."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    STREAMING = "streaming"
    ERROR = "error"


# =============================================================================
# Session origins
# =============================================================================

@dataclass(frozen=True)
class Blank:
    """Empty conversation with the default opening."""


@dataclass(frozen=True)
class WizardSeeded:
    """Conversation seeded with the guided-start answers."""
    data: WizardData


@dataclass(frozen=True)
class Restored:
    """Conversation rebuilt from an exported project summary."""
    summary: ProjectSummary


@dataclass(frozen=True)
class Demo:
    """Canned demo transcript."""


SessionOrigin = Union[Blank, WizardSeeded, Restored, Demo]


@dataclass
class Session:
    """One conversation: its handle, the turns it was seeded with, its origin."""
    handle: Conversation
    origin_history: tuple[SeedTurn, ...]
    origin: SessionOrigin | None = None


# =============================================================================
# Controller
# =============================================================================

class SessionController:
    """
    Message log plus the active conversation.

    The generation collaborator is injected, so tests can pass a fake that
    implements create_conversation() and stream_reply().
    """

    def __init__(self, llm: LLMClient, language: str = "es"):
        self.llm = llm
        self.language = language
        self.messages: list[Message] = []
        self.status = SessionStatus.UNINITIALIZED
        self.session: Session | None = None
        self.last_error: StreamError | None = None
        self._epoch = 0
        self._accumulator: StreamAccumulator | None = None
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def handle(self) -> Conversation | None:
        return self.session.handle if self.session else None

    @property
    def is_streaming(self) -> bool:
        return self.status == SessionStatus.STREAMING

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for appended and updated messages. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def transcript(self) -> list[Message]:
        """Messages that are part of the model context, in log order."""
        return [m for m in self.messages if not m.local]

    def set_language(self, language: str) -> None:
        if language not in prompts.STRINGS:
            raise ValueError(f"Unsupported language: {language}")
        self.language = language

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, seed_history: Sequence[SeedTurn] | None = None) -> Session:
        """
        Open a new conversation, replacing any previous one.

        The log is cleared and any in-flight stream is abandoned before the
        collaborator is asked for a handle.

        Raises:
            SessionInitError: the controller is left UNINITIALIZED.
        """
        self._abandon()
        epoch = self._epoch
        seed = tuple(seed_history) if seed_history is not None else prompts.DEFAULT_OPENING

        try:
            handle = await self.llm.create_conversation(seed)
        except SessionInitError as e:
            logger.error(f"Failed to start session: {e}")
            raise

        if self._epoch != epoch:
            raise SessionInitError("Session start was superseded by a reset")

        self.session = Session(handle=handle, origin_history=seed)
        self.status = SessionStatus.ACTIVE
        logger.info(f"Session started with {len(seed)} seed turns")
        return self.session

    def reset(self) -> None:
        """Drop log, handle and any in-flight stream. Back to UNINITIALIZED."""
        self._abandon()
        logger.info("Session reset")

    def _abandon(self) -> None:
        self._epoch += 1
        if self._accumulator is not None:
            self._accumulator.cancel()
            self._accumulator = None
        self.messages = []
        self.session = None
        self.status = SessionStatus.UNINITIALIZED
        self.last_error = None

    async def begin(self, origin: SessionOrigin) -> Session:
        """Open a session from one of the four origins."""
        if isinstance(origin, Blank):
            session = await self.start_blank()
        elif isinstance(origin, WizardSeeded):
            session = await self.start_wizard(origin.data)
        elif isinstance(origin, Restored):
            session = await self.restore_from_summary(origin.summary)
        elif isinstance(origin, Demo):
            session = await self.load_demo()
        else:
            raise TypeError(f"Unknown session origin: {origin!r}")
        session.origin = origin
        return session

    async def start_blank(self) -> Session:
        session = await self.start()
        self._append(Message.banner(prompts.text(self.language, "welcome")))
        return session

    async def start_wizard(self, data: WizardData) -> Session:
        """Seed with the wizard answers and stream the Phase 1 kickoff."""
        context = prompts.WIZARD_CONTEXT_TEMPLATE.format(
            language=self.language.upper(),
            field=data.field,
            phenomenon=data.phenomenon,
            hypothesis=data.hypothesis,
        )
        seed = prompts.WIZARD_OPENING + (SeedTurn(Role.USER, context),)
        session = await self.start(seed)
        await self._stream_reply(prompts.WIZARD_KICKOFF)
        return session

    async def restore_from_summary(self, summary: ProjectSummary) -> Session:
        """
        Rebuild a conversation from an exported summary.

        The visible log becomes a restoration banner followed by the streamed
        answer to a fixed "where did we leave off" directive. The directive
        itself is not shown.
        """
        title_heading = prompts.text(self.language, "restore_title")
        seed = (
            SeedTurn(Role.USER, prompts.RESTORE_START),
            SeedTurn(Role.ASSISTANT, prompts.RESTORE_READY),
            SeedTurn(Role.USER, restoration_context(summary, title_heading)),
            SeedTurn(Role.ASSISTANT, prompts.RESTORE_LOADED),
        )
        session = await self.start(seed)

        banner = (
            f"**{title_heading}**: {summary.project_title}\n\n"
            f"*{prompts.text(self.language, 'restore_msg')}*"
        )
        self._append(Message.banner(banner))
        await self._stream_reply(prompts.text(self.language, "restore_action"))
        return session

    async def load_demo(self) -> Session:
        """Install the canned transcript. No streaming call is made."""
        messages = demo.demo_messages()
        session = await self.start([SeedTurn.from_message(m) for m in messages])
        for message in messages:
            self._append(message)
        return session

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_user_message(self, text: str) -> Message | None:
        """
        Send a user turn and stream the reply into a new assistant message.

        Ignored (returns None) while streaming, before a session exists, or
        for blank text. Returns the assistant message otherwise, complete or
        holding the partial text of a failed stream.
        """
        if self.status in (SessionStatus.STREAMING, SessionStatus.UNINITIALIZED):
            logger.debug(f"Ignoring message while {self.status.value}")
            return None
        if not text or not text.strip():
            return None

        self._append(Message.user(text))
        return await self._stream_reply(text)

    async def _stream_reply(self, user_text: str) -> Message:
        session = self.session
        epoch = self._epoch

        placeholder = Message.assistant(streaming=True)
        self._append(placeholder)
        self.status = SessionStatus.STREAMING
        self.last_error = None

        def current() -> bool:
            return self._epoch == epoch and self.session is session

        def on_update(text: str) -> None:
            if not current():
                return
            placeholder.text = text
            self._notify(placeholder)

        def on_done(text: str) -> None:
            if not current():
                return
            placeholder.text = text
            placeholder.streaming = False
            self.status = SessionStatus.ACTIVE
            self._notify(placeholder)

        def on_error(text: str, cause: BaseException) -> None:
            if not current():
                return
            placeholder.text = text
            placeholder.streaming = False
            self.status = SessionStatus.ERROR
            self.last_error = StreamError(f"Stream failed: {cause}", partial_text=text, cause=cause)
            self._notify(placeholder)

        accumulator = StreamAccumulator(on_update, on_done, on_error)
        self._accumulator = accumulator
        try:
            await accumulator.consume(self.llm.stream_reply(session.handle, user_text))
        except BaseException as e:
            # A callback raised mid-stream
            if current() and placeholder.streaming:
                placeholder.streaming = False
                self.status = SessionStatus.ERROR
                self.last_error = StreamError(
                    f"Stream aborted: {e!r}", partial_text=placeholder.text, cause=e
                )
                logger.error(f"Stream aborted after {len(placeholder.text)} characters: {e!r}")
            raise
        finally:
            if self._accumulator is accumulator:
                self._accumulator = None
        return placeholder

    def _append(self, message: Message) -> None:
        self.messages.append(message)
        self._notify(message)

    def _notify(self, message: Message) -> None:
        for listener in list(self._listeners):
            listener(message)

"""
StreamAccumulator: fold one streaming reply into a growing buffer.

The accumulator knows nothing about messages. The caller passes three
callbacks and decides what to mutate in them:

    acc = StreamAccumulator(
        on_update=lambda text: ...,      # after every non-empty delta
        on_done=lambda text: ...,        # once, at normal end of stream
        on_error=lambda text, exc: ...,  # once, if the stream raises
    )
    final_text = await acc.consume(llm.stream_reply(conversation, "Hola"))

Deltas are concatenated in arrival order, never reordered or deduplicated.
After cancel() no callback fires again.
"""

from typing import AsyncIterable, AsyncIterator, Callable, Protocol

from logging_utils import get_logger

logger = get_logger(__name__)

UpdateCallback = Callable[[str], None]
ErrorCallback = Callable[[str, BaseException], None]


class Delta(Protocol):
    text: str


def _noop_error(partial: str, cause: BaseException) -> None:
    pass


class StreamAccumulator:
    """Consumes one async sequence of text deltas."""

    def __init__(
        self,
        on_update: UpdateCallback,
        on_done: UpdateCallback,
        on_error: ErrorCallback = _noop_error,
    ):
        self.on_update = on_update
        self.on_done = on_done
        self.on_error = on_error
        self._buffer = ""
        self._cancelled = False
        self._consumed = False

    @property
    def text(self) -> str:
        return self._buffer

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def consumed(self) -> bool:
        return self._consumed

    def cancel(self) -> None:
        """Stop consuming. Pending and future deltas are dropped silently."""
        self._cancelled = True

    async def consume(self, deltas: AsyncIterable[Delta]) -> str:
        """
        Drain the delta sequence, firing callbacks as it goes.

        A failure raised by the sequence is reported through on_error and
        not re-raised. Returns the text accumulated so far.
        """
        if self._consumed:
            raise RuntimeError("StreamAccumulator can only consume one stream")
        self._consumed = True

        iterator = deltas.__aiter__()
        while True:
            try:
                delta = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                if self._cancelled:
                    logger.debug(f"Ignoring failure of abandoned stream: {e}")
                    return self._buffer
                logger.error(f"Stream failed after {len(self._buffer)} characters: {e}")
                self.on_error(self._buffer, e)
                return self._buffer

            if self._cancelled:
                await _close(iterator)
                logger.debug("Stream abandoned")
                return self._buffer
            if not delta.text:
                continue
            self._buffer += delta.text
            try:
                self.on_update(self._buffer)
            except BaseException:
                await _close(iterator)
                raise

        if not self._cancelled:
            self.on_done(self._buffer)
        return self._buffer


async def _close(deltas: AsyncIterator[Delta]) -> None:
    aclose = getattr(deltas, "aclose", None)
    if aclose is not None:
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"Error while closing abandoned stream: {e}")

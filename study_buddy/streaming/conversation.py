"""
Conversation - Streams chat turns into a message list.

A Conversation owns the ordered message history. Sending a message:
1. Appends the user message right away (the next render already sees it)
2. Returns a Turn; iterating the Turn reads the chat stream and grows a
   single assistant message in place, yielding its content after each delta
3. On any failure, appends one fallback assistant message and logs the error

Only one turn may stream at a time. The conversation is either IDLE or
STREAMING, and send() while STREAMING raises ConversationBusyError.

Example:
    conversation = Conversation(StudyBuddyClient())
    turn = conversation.send("What is backpropagation?")
    for content in turn:
        render(content)
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from study_buddy.client import StudyBuddyClient
from study_buddy.config import FALLBACK_ASSISTANT_MESSAGE, MAX_LINE_BUFFER
from study_buddy.errors import ConversationBusyError
from study_buddy.models import Message
from study_buddy.streaming.events import EventDecoder

logger = logging.getLogger(__name__)


class ConversationState(Enum):
    IDLE = "idle"
    STREAMING = "streaming"


class Conversation:
    """
    Message history plus the single-flight streaming state.

    Attributes:
        client: Client used to open chat streams
        language: Response language code sent with each turn
        messages: The ordered history; the tail assistant message is the one
            being streamed while state is STREAMING
        state: IDLE or STREAMING
    """

    def __init__(
        self,
        client: StudyBuddyClient,
        language: str | None = None,
        max_buffer: int = MAX_LINE_BUFFER,
    ):
        self.client = client
        self.language = language
        self.max_buffer = max_buffer
        self.messages: list[Message] = []
        self.state = ConversationState.IDLE

    @property
    def is_streaming(self) -> bool:
        return self.state is ConversationState.STREAMING

    def send(self, text: str) -> "Turn":
        """
        Start a new turn.

        The user message is appended before this returns; nothing is read
        from the network until the returned Turn is iterated.

        Raises:
            ConversationBusyError: If the previous turn is still streaming
        """
        if self.is_streaming:
            raise ConversationBusyError()

        self.messages.append(Message(role="user", content=text))
        self.state = ConversationState.STREAMING
        return Turn(self, list(self.messages))

    def clear(self) -> None:
        """Forget the history."""
        if self.is_streaming:
            raise ConversationBusyError()
        self.messages = []


@dataclass
class TurnProgress:
    """Mutable state of one turn, shared by the Turn and its stream generator."""

    content: str = ""
    error: Exception | None = None
    finished: bool = False
    reply: Message | None = None


class Turn:
    """
    One streamed assistant reply.

    Iterate to drive the stream; each step yields the accumulated assistant
    content. close() stops early and leaves the partial reply in place.
    Dropping the last reference to a turn closes it the same way.

    Attributes:
        content: Assistant text accumulated so far
        error: The exception that ended the turn, if any
        finished: True once the turn is over (completed, failed or closed)
    """

    def __init__(self, conversation: Conversation, history: list[Message]):
        self.conversation = conversation
        self.history = history
        self._progress = TurnProgress()
        # The generator must not reference the Turn, or an abandoned turn
        # would only be freed by the cycle collector
        self._steps = _stream_turn(conversation, history, self._progress)

    @property
    def content(self) -> str:
        return self._progress.content

    @property
    def error(self) -> Exception | None:
        return self._progress.error

    @property
    def finished(self) -> bool:
        return self._progress.finished

    def __iter__(self) -> Iterator[str]:
        return self._steps

    def run(self) -> Message | None:
        """
        Consume the whole stream and return the final assistant message.

        Returns the fallback message when the turn failed, and None when the
        stream ended without any content.
        """
        for _ in self._steps:
            pass
        return self._progress.reply

    def close(self) -> None:
        """Stop reading. The conversation goes back to IDLE."""
        self._steps.close()
        _release(self.conversation, self._progress)

    def __del__(self):
        _release(self.conversation, self._progress)


def _stream_turn(
    conversation: Conversation,
    history: list[Message],
    progress: TurnProgress,
) -> Iterator[str]:
    try:
        decoder = EventDecoder(conversation.max_buffer)
        with conversation.client.open_chat_stream(
            history, language=conversation.language
        ) as chunks:
            for chunk in chunks:
                for event in decoder.feed(chunk):
                    if event.is_delta:
                        _apply(conversation, progress, event.content)
                        yield progress.content
                if decoder.done:
                    break

        for event in decoder.finish():
            if event.is_delta:
                _apply(conversation, progress, event.content)
                yield progress.content

    except Exception as e:
        logger.error("Chat error: %s", e, exc_info=True)
        progress.error = e
        progress.reply = Message(role="assistant", content=FALLBACK_ASSISTANT_MESSAGE)
        conversation.messages.append(progress.reply)
        _release(conversation, progress)
        yield FALLBACK_ASSISTANT_MESSAGE
    finally:
        _release(conversation, progress)


def _apply(conversation: Conversation, progress: TurnProgress, delta: str) -> None:
    """Grow the one assistant message of this turn."""
    progress.content += delta
    if progress.reply is None:
        progress.reply = Message(role="assistant", content=progress.content)
        conversation.messages.append(progress.reply)
    else:
        progress.reply.content = progress.content


def _release(conversation: Conversation, progress: TurnProgress) -> None:
    if not progress.finished:
        progress.finished = True
        conversation.state = ConversationState.IDLE

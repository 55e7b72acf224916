"""
Events - Decodes a chat-completion event stream into content deltas.

Wire format (one event per line):

    : keep-alive                                             <- comment, ignored
    data: {"choices":[{"delta":{"content":"Hel"}}]}          <- delta "Hel"
    data: {"choices":[{"delta":{"content":"lo"}}]}           <- delta "lo"
    data: [DONE]                                             <- end of stream

Bytes go in, events come out. Decoding is byte-split safe: a multi-byte
character or a JSON frame may be cut anywhere by the network and the result
is the same as if everything had arrived in one read.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum

from study_buddy.config import (
    MAX_LINE_BUFFER,
    SSE_COMMENT_PREFIX,
    SSE_DATA_PREFIX,
    SSE_DONE_TOKEN,
)
from study_buddy.errors import StreamFramingError
from study_buddy.streaming.framer import LineFramer

logger = logging.getLogger(__name__)


class EventKind(Enum):
    DELTA = "delta"
    DONE = "done"
    IGNORED = "ignored"


@dataclass(frozen=True)
class StreamEvent:
    """A single decoded frame of the stream."""

    kind: EventKind
    content: str = ""

    @property
    def is_delta(self) -> bool:
        return self.kind is EventKind.DELTA


DONE_EVENT = StreamEvent(EventKind.DONE)
IGNORED_EVENT = StreamEvent(EventKind.IGNORED)


def extract_delta(data: object) -> str | None:
    """Pull choices[0].delta.content out of a parsed frame, if present."""
    try:
        content = data["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content if isinstance(content, str) else None


class EventDecoder:
    """
    Turns raw response bytes into StreamEvents.

    A data line whose JSON does not parse is held back rather than dropped:
    the next line is appended to it and parsing is retried, which recovers a
    frame that was split by a stray line break. If the next line turns out to
    be a valid frame of its own, the held fragment is unrecoverable and is
    discarded with a warning.

    Example:
        decoder = EventDecoder()
        for chunk in response.iter_bytes():
            for event in decoder.feed(chunk):
                if event.is_delta:
                    print(event.content, end="")
            if decoder.done:
                break
        decoder.finish()
    """

    def __init__(self, max_buffer: int = MAX_LINE_BUFFER):
        self.max_buffer = max_buffer
        self.done = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._framer = LineFramer(max_buffer)
        self._held: str | None = None

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Decode one network read and return the complete events it finished."""
        if self.done:
            return []
        self._framer.feed(self._decoder.decode(chunk))
        return self._drain(self._framer.lines())

    def finish(self) -> list[StreamEvent]:
        """
        Flush everything at end of stream.

        An unterminated last line is still decoded. A fragment that never
        completed is logged and dropped.
        """
        if self.done:
            return []

        self._framer.feed(self._decoder.decode(b"", final=True))
        lines = list(self._framer.lines())
        remainder = self._framer.flush()
        if remainder is not None:
            lines.append(remainder)

        events = self._drain(lines)
        if self._held is not None and not self.done:
            logger.warning("Dropping incomplete stream frame: %.80s", self._held)
            self._held = None
        self.done = True
        return events

    def _drain(self, lines) -> list[StreamEvent]:
        events = []
        for line in lines:
            event = self._decode_line(line)
            if event.kind is EventKind.IGNORED:
                continue
            events.append(event)
            if event.kind is EventKind.DONE:
                self.done = True
                break
        return events

    def _decode_line(self, line: str) -> StreamEvent:
        # Comments and blank lines never join a held fragment
        if (
            self._held is not None
            and line.strip()
            and not line.startswith(SSE_COMMENT_PREFIX)
        ):
            event = self._parse_payload(self._held + line)
            if event is not None:
                self._held = None
                return event
            if not line.startswith(SSE_DATA_PREFIX):
                self._hold(self._held + line)
                return IGNORED_EVENT
            logger.warning("Dropping unparseable stream frame: %.80s", self._held)
            self._held = None

        if not line.strip() or line.startswith(SSE_COMMENT_PREFIX):
            return IGNORED_EVENT
        if not line.startswith(SSE_DATA_PREFIX):
            return IGNORED_EVENT

        # Held fragments keep their whitespace: it may sit inside a JSON string
        payload = line[len(SSE_DATA_PREFIX):]
        if payload.strip() == SSE_DONE_TOKEN:
            return DONE_EVENT

        event = self._parse_payload(payload)
        if event is None:
            self._hold(payload)
            return IGNORED_EVENT
        return event

    def _parse_payload(self, payload: str) -> StreamEvent | None:
        """Parse a frame; None means the JSON is incomplete."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None

        content = extract_delta(data)
        if content:
            return StreamEvent(EventKind.DELTA, content)
        return IGNORED_EVENT

    def _hold(self, fragment: str) -> None:
        if len(fragment) > self.max_buffer:
            raise StreamFramingError()
        self._held = fragment

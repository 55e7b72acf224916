"""
Line Framer - Splits a growing text buffer into complete lines.

Network reads arrive in arbitrary pieces. The framer keeps whatever has not
yet been terminated by a newline and hands out complete lines only:

    framer = LineFramer()
    framer.feed("data: {\"a\"")
    framer.next_line()        # None - no newline yet, wait for more text
    framer.feed(": 1}\n")
    framer.next_line()        # 'data: {"a": 1}'

The buffer is bounded: a line that grows beyond max_buffer without a newline
means the stream is broken, not slow.
"""

from collections.abc import Iterator

from study_buddy.config import MAX_LINE_BUFFER
from study_buddy.errors import StreamFramingError


class LineFramer:
    """
    Incremental newline framer with a bounded buffer.

    State is the unterminated text plus the offset already scanned for a
    delimiter, so each character is searched once per line.
    """

    def __init__(self, max_buffer: int = MAX_LINE_BUFFER):
        self.max_buffer = max_buffer
        self._buffer = ""
        self._scanned = 0

    @property
    def pending(self) -> int:
        """Number of buffered characters not yet returned as a line."""
        return len(self._buffer)

    def feed(self, text: str) -> None:
        """Append decoded text to the buffer."""
        if text:
            self._buffer += text

    def next_line(self) -> str | None:
        """
        Return the next complete line without its terminator.

        A trailing carriage return is trimmed. Returns None when no complete
        line is buffered yet.

        Raises:
            StreamFramingError: If the unterminated text exceeds max_buffer
        """
        index = self._buffer.find("\n", self._scanned)
        if index == -1:
            self._scanned = len(self._buffer)
            if self._scanned > self.max_buffer:
                raise StreamFramingError()
            return None

        line = self._buffer[:index]
        self._buffer = self._buffer[index + 1:]
        self._scanned = 0
        return _trim_cr(line)

    def lines(self) -> Iterator[str]:
        """Yield every complete line currently buffered."""
        while True:
            line = self.next_line()
            if line is None:
                return
            yield line

    def flush(self) -> str | None:
        """Return the unterminated remainder (end of stream) and reset."""
        if not self._buffer:
            return None
        remainder = _trim_cr(self._buffer)
        self._buffer = ""
        self._scanned = 0
        return remainder


def _trim_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line

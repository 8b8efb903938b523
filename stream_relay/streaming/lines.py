from __future__ import annotations

import codecs


class LineAssembler:
    """Reassembles newline-terminated lines from arbitrarily split byte chunks.

    Upstream bytes are not aligned to line (or UTF-8 character) boundaries, so
    the trailing fragment of every chunk is carried over until the next
    ``feed`` completes it. Returned lines are stripped of surrounding
    whitespace, which also removes the ``\\r`` of CRLF-terminated streams.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[str]:
        self._buffer += self._decoder.decode(data)
        if "\n" not in self._buffer:
            return []

        *complete, self._buffer = self._buffer.split("\n")
        return [line.strip() for line in complete]

    def flush(self) -> list[str]:
        """Return the unterminated final line, if any, and reset the buffer."""

        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        tail = tail.strip()
        return [tail] if tail else []

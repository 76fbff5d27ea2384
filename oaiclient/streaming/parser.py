"""
Incremental server-sent-events parser.

Bytes are fed as they arrive; complete events are returned in order. An event
ends at a blank line. Lines end at LF, CRLF or a lone CR. Partial events stay
buffered until more bytes arrive, so the output does not depend on where chunk
boundaries fall.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    data: str
    event: str | None = None
    id: str | None = None
    retry: int | None = None


class ServerSentEventsParser:
    def __init__(self) -> None:
        self._buffer = bytearray()
        self._data_lines: list[str] = []
        self._event: str | None = None
        self._id: str | None = None
        self._retry: int | None = None
        self._has_data = False
        # A CR ended the previous chunk; an LF at the start of the next one belongs to it.
        self._pending_cr = False

    @property
    def buffered(self) -> int:
        """Bytes received but not yet part of a complete line."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[ServerSentEvent]:
        events: list[ServerSentEvent] = []
        if not chunk:
            return events
        if self._pending_cr:
            self._pending_cr = False
            if chunk.startswith(b"\n"):
                chunk = chunk[1:]
        self._buffer.extend(chunk)

        start = 0
        size = len(self._buffer)
        while start < size:
            lf = self._buffer.find(b"\n", start)
            cr = self._buffer.find(b"\r", start)
            if lf == -1 and cr == -1:
                break
            if cr != -1 and (lf == -1 or cr < lf):
                end = cr
                if cr + 1 < size:
                    next_start = cr + 2 if self._buffer[cr + 1] == 0x0A else cr + 1
                else:
                    next_start = cr + 1
                    self._pending_cr = True
            else:
                end = lf
                next_start = lf + 1
            line = bytes(self._buffer[start:end]).decode("utf-8", errors="replace")
            event = self._process_line(line)
            if event is not None:
                events.append(event)
            start = next_start
        del self._buffer[:start]
        return events

    def flush(self) -> ServerSentEvent | None:
        """Dispatch a trailing unterminated event, if it has data."""
        if self._buffer:
            line = bytes(self._buffer).decode("utf-8", errors="replace")
            self._buffer.clear()
            self._process_line(line)
        return self._dispatch()

    def _process_line(self, line: str) -> ServerSentEvent | None:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None
        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data_lines.append(value)
            self._has_data = True
        elif name == "event":
            self._event = value
        elif name == "id":
            if "\x00" not in value:
                self._id = value
        elif name == "retry":
            if value.isdigit():
                self._retry = int(value)
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        event: ServerSentEvent | None = None
        if self._has_data:
            event = ServerSentEvent(
                data="\n".join(self._data_lines),
                event=self._event,
                id=self._id,
                retry=self._retry,
            )
        self._data_lines = []
        self._event = None
        self._has_data = False
        return event

"""Incremental Server-Sent Events parser.

Network reads split the stream at arbitrary points, so the parser keeps the
unterminated tail of the last chunk and only acts on complete lines. Only the
`id`, `event` and `data` fields are interpreted; everything else (`retry`,
unknown fields) is accepted and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class Frame:
    """One dispatched SSE event, before any application-level decoding."""

    id: str | None = None
    event: str | None = None
    data: str = ""


FrameCallback = Callable[[Frame], None]


@dataclass
class _PartialFrame:
    id: str | None = None
    event: str | None = None
    data_lines: list[str] = field(default_factory=list)

    def has_content(self) -> bool:
        return bool(self.data_lines) or bool(self.event) or bool(self.id)

    def to_frame(self) -> Frame:
        return Frame(id=self.id, event=self.event, data="\n".join(self.data_lines))


class SseParser:
    """Turns a sequence of decoded text chunks into `Frame`s.

    A parser instance owns its buffer; drive it from a single task only.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._current = _PartialFrame()

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a newline."""
        return self._buffer

    def push(self, chunk: str, on_frame: FrameCallback) -> None:
        """Consume `chunk`, calling `on_frame` for every completed frame."""
        self._buffer += chunk

        while True:
            idx = self._buffer.find("\n")
            if idx == -1:
                return
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1 :]
            if line.endswith("\r"):
                line = line[:-1]
            self._handle_line(line, on_frame)

    def feed(self, chunk: str) -> list[Frame]:
        """Consume `chunk` and return the frames it completed, in order."""
        frames: list[Frame] = []
        self.push(chunk, frames.append)
        return frames

    def _handle_line(self, line: str, on_frame: FrameCallback) -> None:
        # Comment / keep-alive.
        if line.startswith(":"):
            return

        if line == "":
            if self._current.has_content():
                on_frame(self._current.to_frame())
            self._current = _PartialFrame()
            return

        name, sep, value = line.partition(":")
        if sep:
            value = value.lstrip()

        if name == "id":
            self._current.id = value
        elif name == "event":
            self._current.event = value
        elif name == "data":
            self._current.data_lines.append(value)

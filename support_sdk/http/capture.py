"""
Response header capture.

The transport hands every received header line (status lines included) to
a HeaderCapture. Only the final header block is kept: the block sent with
an interim ``100 Continue`` response is discarded.
"""

from __future__ import annotations

from enum import Enum

CONTINUE_STATUS_LINE = "http/1.1 100 continue"


class CaptureState(str, Enum):
    NORMAL = "normal"
    CONTINUE_BLOCK = "continue_block"


class HeaderCapture:
    """
    State machine fed one raw header line at a time.

    Usage:
        capture = HeaderCapture()
        transport.perform(request, capture.feed)
        capture.lines  # ("HTTP/1.1 200 OK", "Content-Type: text/html", ...)
    """

    def __init__(self) -> None:
        self.state = CaptureState.NORMAL
        self._lines: list[str] = []

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def feed(self, line: str | bytes) -> int:
        """
        Consume one header line.

        Returns the length in bytes of the line as received, which the
        transport checks to decide whether to keep reading.
        """
        if isinstance(line, bytes):
            raw_length = len(line)
            text = line.decode("iso-8859-1")
        else:
            raw_length = len(line.encode("utf-8"))
            text = line

        trimmed = text.strip("\r\n")

        if trimmed == "":
            # end of a header block, interim or final
            self.state = CaptureState.NORMAL
        elif trimmed.lower() == CONTINUE_STATUS_LINE:
            self.state = CaptureState.CONTINUE_BLOCK
        elif self.state is CaptureState.NORMAL:
            self._lines.append(trimmed)

        return raw_length


def parse_header_lines(lines) -> dict[str, str]:
    """
    Split raw header lines on the first colon.

    Names are lower-cased and trimmed, values trimmed. A line without a
    colon (the status line) maps to an empty value. Later duplicates win.
    """
    headers: dict[str, str] = {}
    for line in lines:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return headers

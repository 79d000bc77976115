"""Content-Length framed message transport used by language-server clients."""

from __future__ import annotations

import re
import sys
from typing import BinaryIO

_LENGTH_RE = re.compile(r"\+?[0-9]+")


class ProtocolError(ValueError):
    """Raised when incoming data does not follow the framing protocol."""


def _parse_length(value: str) -> int:
    if not _LENGTH_RE.fullmatch(value):
        raise ProtocolError(f"invalid Content-Length: {value!r}")
    return int(value)


def read_message(stream: BinaryIO | None = None) -> str | None:
    """Read one framed message from ``stream``; return ``None`` at end of input."""
    if stream is None:
        stream = sys.stdin.buffer

    size: int | None = None
    while True:
        raw = stream.readline()
        if not raw:
            return None
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolError(f"malformed header: {raw!r}") from exc
        if not line.endswith("\r\n"):
            raise ProtocolError(f"malformed header: {line!r}")
        line = line[:-2]
        if not line:
            break
        name, sep, value = line.partition(": ")
        if not sep:
            raise ProtocolError(f"malformed header: {line!r}")
        if name.lower() == "content-length":
            size = _parse_length(value)

    if size is None:
        raise ProtocolError("no Content-Length")

    body = stream.read(size)
    if len(body) < size:
        raise EOFError(f"expected {size} bytes of content, got {len(body)}")
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ProtocolError(str(exc)) from exc


def send(message: str, stream: BinaryIO | None = None) -> None:
    """Write ``message`` to ``stream`` with a Content-Length header."""
    if stream is None:
        stream = sys.stdout.buffer
    body = message.encode("utf-8")
    stream.write(f"Content-Length: {len(body)}\r\n\r\n".encode("ascii"))
    stream.write(body)
    try:
        stream.flush()
    except OSError:
        pass
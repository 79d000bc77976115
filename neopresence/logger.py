"""Logging to the editor through window/logMessage notifications and to a file."""

from __future__ import annotations

import json
import os
from enum import IntEnum
from typing import BinaryIO

from neopresence.protocol import send


class MessageType(IntEnum):
    """Severity of a window/logMessage notification."""

    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4
    DEBUG = 5


def log(message: str, message_type: MessageType, stream: BinaryIO | None = None) -> None:
    """Send ``message`` to the editor as a window/logMessage notification."""
    notification = {
        "method": "window/logMessage",
        "params": {"type": int(message_type), "message": message},
    }
    send(json.dumps(notification, separators=(",", ":"), ensure_ascii=False), stream)


def log_to_file(message: str, path: str | os.PathLike[str]) -> None:
    """Append ``message`` as a line to the existing file at ``path``."""
    fd = os.open(path, os.O_WRONLY | os.O_APPEND)
    with os.fdopen(fd, "a", encoding="utf-8") as handle:
        handle.write(f"{message}\n")
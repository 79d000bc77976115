"""Handling of the language-server messages that the editor sends."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, BinaryIO, Union
from urllib.parse import urlsplit

from neopresence.logger import MessageType, log
from neopresence.protocol import ProtocolError, send

SERVER_NAME = "neopresence"
SERVER_VERSION = "1.0.0"

IGNORED_LANGUAGE_IDS = frozenset(
    {"cmp_docs", "TelescopeResults", "TelescopePrompt", "cmp_menu"}
)


@dataclass(frozen=True)
class FileOpened:
    """The editor opened a file."""

    filename: str


@dataclass(frozen=True)
class FileChanged:
    """The full contents of a file changed in the editor."""

    filename: str
    contents: str


@dataclass(frozen=True)
class Shutdown:
    """The editor asked the server to shut down."""


@dataclass(frozen=True)
class NvimError:
    """The connection to the editor failed."""

    message: str


NvimMessage = Union[FileOpened, FileChanged, Shutdown, NvimError]


def _decode(message: str) -> Any:
    try:
        return json.loads(message.strip())
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc


def _field(obj: Any, key: str, kind: type) -> Any:
    if not isinstance(obj, dict) or key not in obj:
        raise ProtocolError(f"missing field `{key}`")
    value = obj[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ProtocolError(f"invalid type for field `{key}`")
    return value


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def get_method(message: str) -> str:
    """Return the ``method`` of a JSON-RPC message."""
    return _field(_decode(message), "method", str)


def get_file_name(uri: str) -> str:
    """Return the last path segment of ``uri``."""
    return urlsplit(uri).path.rsplit("/", 1)[-1]


def initialize(message: str) -> dict[str, Any]:
    """Build the response to an ``initialize`` request."""
    request = _decode(message)
    _field(request, "jsonrpc", str)
    _field(request, "method", str)
    request_id = _field(request, "id", int)
    if not 0 <= request_id < 2**32:
        raise ProtocolError(f"request id out of range: {request_id}")
    return {
        "id": request_id,
        "result": {
            "capabilities": {
                "positionEncoding": "utf-8",
                "textDocumentSync": {"openClose": True, "change": 1, "save": {}},
            },
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        },
    }


def did_open(message: str) -> FileOpened | None:
    """Interpret a ``textDocument/didOpen`` notification; ``None`` if it is ignored."""
    try:
        notification = _decode(message)
        _field(notification, "method", str)
        params = _field(notification, "params", dict)
        document = _field(params, "textDocument", dict)
        uri = _field(document, "uri", str)
        language_id = _field(document, "languageId", str)
        _field(document, "version", int)
        _field(document, "text", str)
    except ProtocolError:
        return None

    if language_id in IGNORED_LANGUAGE_IDS:
        return None
    filename = get_file_name(uri)
    if not filename:
        return None
    return FileOpened(filename)


def did_change(message: str, stream: BinaryIO | None = None) -> FileChanged | None:
    """Interpret a ``textDocument/didChange`` notification; errors are logged to the editor."""
    try:
        notification = _decode(message)
        _field(notification, "method", str)
        params = _field(notification, "params", dict)
        document = _field(params, "textDocument", dict)
        uri = _field(document, "uri", str)
        _field(document, "version", int)
        changes = _field(params, "contentChanges", list)
        if not changes:
            raise ProtocolError("contentChanges is empty")
        contents = _field(changes[0], "text", str)
    except ProtocolError as exc:
        log(str(exc), MessageType.ERROR, stream)
        return None

    filename = get_file_name(uri)
    if not filename:
        return None
    return FileChanged(filename, contents)


async def message_handler(
    message: str, queue: asyncio.Queue, stream: BinaryIO | None = None
) -> None:
    """Dispatch one editor message, replying on ``stream`` and queueing events."""
    method = get_method(message)
    if method == "initialize":
        send(_dumps(initialize(message)), stream)
    elif method == "textDocument/didOpen":
        event = did_open(message)
        if event is not None:
            await queue.put(event)
    elif method == "textDocument/didChange":
        event = did_change(message, stream)
        if event is not None:
            await queue.put(event)
    elif method == "shutdown":
        await queue.put(Shutdown())
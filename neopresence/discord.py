"""Discord rich presence over Discord's local IPC socket."""

from __future__ import annotations

import asyncio
import json
import os
import socket
import struct
import sys
import uuid
from contextlib import suppress
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, BinaryIO

RECONNECT_DELAY = 5.0
CONNECT_TIMEOUT = 5.0

_HEADER = struct.Struct("<II")
_SOCKET_COUNT = 10


class _Opcode(IntEnum):
    HANDSHAKE = 0
    FRAME = 1
    CLOSE = 2
    PING = 3
    PONG = 4


@dataclass
class DiscordData:
    """What the presence shows about the editing session."""

    additions: int
    deletions: int
    num_files: int
    filename: str | None
    remote_url: str | None
    start_time: int


@dataclass(frozen=True)
class DiscordError:
    """The Discord connection failed."""

    message: str


@dataclass(frozen=True)
class StateUpdate:
    """A new session state to publish."""

    data: DiscordData


def ipc_socket_paths() -> list[str]:
    """Return the places Discord's IPC endpoint may be found, in the order tried."""
    names = [f"discord-ipc-{index}" for index in range(_SOCKET_COUNT)]
    if sys.platform == "win32":
        return ["\\\\?\\pipe\\" + name for name in names]
    base = next(
        (
            os.environ[variable]
            for variable in ("XDG_RUNTIME_DIR", "TMPDIR", "TMP", "TEMP")
            if os.environ.get(variable)
        ),
        "/tmp",
    )
    directories = [
        base,
        os.path.join(base, "app", "com.discordapp.Discord"),
        os.path.join(base, "snap.discord"),
    ]
    return [os.path.join(directory, name) for directory in directories for name in names]


class DiscordIpcClient:
    """A connection to the local Discord client that can set the user's activity."""

    def __init__(self, client_id: int, queue: asyncio.Queue | None = None) -> None:
        self.client_id = client_id
        self._queue = queue
        self._conn: BinaryIO | None = None
        self._sock: socket.socket | None = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> DiscordIpcClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self) -> bool:
        """Connect and handshake; failures are reported to the queue."""
        self.close()
        for path in ipc_socket_paths():
            try:
                self._open(path)
            except OSError:
                continue
            try:
                self._handshake()
            except (OSError, ValueError) as exc:
                self._drop()
                self._report(str(exc))
                return False
            return True
        self._report("could not connect to Discord")
        return False

    def set_activity(self, activity: dict[str, Any]) -> dict[str, Any]:
        """Publish ``activity`` and return Discord's reply."""
        if self._conn is None:
            raise ConnectionError("not connected to Discord")
        payload = {
            "cmd": "SET_ACTIVITY",
            "args": {"pid": os.getpid(), "activity": activity},
            "nonce": str(uuid.uuid4()),
        }
        try:
            self._write_frame(_Opcode.FRAME, payload)
            return self._read_frame()
        except (OSError, ValueError) as exc:
            self._drop()
            self._report(str(exc))
            raise ConnectionError(str(exc)) from exc

    def close(self) -> None:
        """Say goodbye to Discord and close the connection."""
        if self._conn is not None:
            with suppress(OSError):
                self._write_frame(_Opcode.CLOSE, {})
        self._drop()

    def _open(self, path: str) -> None:
        if sys.platform == "win32":
            self._conn = open(path, "r+b", buffering=0)
            return
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(CONNECT_TIMEOUT)
        try:
            sock.connect(path)
        except OSError:
            sock.close()
            raise
        self._sock = sock
        self._conn = sock.makefile("rwb", buffering=0)

    def _drop(self) -> None:
        for resource in (self._conn, self._sock):
            if resource is not None:
                with suppress(OSError):
                    resource.close()
        self._conn = None
        self._sock = None

    def _report(self, message: str) -> None:
        if self._queue is not None:
            self._queue.put_nowait(DiscordError(message))

    def _handshake(self) -> None:
        self._write_frame(_Opcode.HANDSHAKE, {"v": 1, "client_id": str(self.client_id)})
        reply = self._read_frame()
        if reply.get("evt") != "READY":
            data = reply.get("data") or {}
            raise ConnectionError(data.get("message", "unexpected handshake reply"))

    def _write_frame(self, opcode: _Opcode, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        data = memoryview(_HEADER.pack(int(opcode), len(body)) + body)
        while data:
            written = self._conn.write(data)
            if not written:
                raise ConnectionError("could not write to Discord")
            data = data[written:]

    def _read_exact(self, size: int) -> bytes:
        chunks = bytearray()
        while len(chunks) < size:
            chunk = self._conn.read(size - len(chunks))
            if not chunk:
                raise ConnectionError("connection closed by Discord")
            chunks += chunk
        return bytes(chunks)

    def _read_frame(self) -> dict[str, Any]:
        while True:
            opcode, length = _HEADER.unpack(self._read_exact(_HEADER.size))
            body = self._read_exact(length)
            payload = json.loads(body) if body else {}
            if opcode == _Opcode.PING:
                self._write_frame(_Opcode.PONG, payload)
                continue
            if opcode == _Opcode.CLOSE:
                raise ConnectionError(payload.get("message", "closed by Discord"))
            return payload


def format_activity(data: DiscordData) -> dict[str, Any]:
    """Build the activity shown for ``data``."""
    details = "Idling" if data.filename is None else f"Editing {data.filename}"
    return {
        "state": (
            f"{data.additions} additions, {data.deletions} deletions "
            f"in {data.num_files} files"
        ),
        "details": details,
        "timestamps": {"start": data.start_time},
        "assets": {"large_image": "nvim"},
    }


async def discord_runner(client: DiscordIpcClient, queue: asyncio.Queue) -> None:
    """Publish state updates and reconnect after errors until ``None`` is queued."""
    while True:
        message = await queue.get()
        if message is None:
            break
        if isinstance(message, StateUpdate):
            with suppress(ConnectionError):
                client.set_activity(format_activity(message.data))
        elif isinstance(message, DiscordError):
            await asyncio.sleep(RECONNECT_DELAY)
            client.start()
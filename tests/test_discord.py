import asyncio
import json
import os
import socket
import struct
import tempfile
import threading

import pytest

from neopresence import discord
from neopresence.discord import (
    DiscordData,
    DiscordError,
    DiscordIpcClient,
    StateUpdate,
    discord_runner,
    format_activity,
    ipc_socket_paths,
)

HEADER = struct.Struct("<II")


def _data(filename="main.rs"):
    return DiscordData(
        additions=3, deletions=1, num_files=2, filename=filename, remote_url=None, start_time=1700000000
    )


class FakeDiscord:
    def __init__(self, directory, ready=True):
        self.path = os.path.join(directory, "discord-ipc-0")
        self.received = []
        self._ready = ready
        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(self.path)
        self._server.listen(1)
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def close(self):
        self._server.close()

    @staticmethod
    def _recv_exact(conn, size):
        data = b""
        while len(data) < size:
            chunk = conn.recv(size - len(data))
            if not chunk:
                raise ConnectionError("closed")
            data += chunk
        return data

    def _recv(self, conn):
        opcode, length = HEADER.unpack(self._recv_exact(conn, HEADER.size))
        body = self._recv_exact(conn, length)
        return opcode, json.loads(body)

    @staticmethod
    def _send(conn, opcode, payload):
        body = json.dumps(payload).encode()
        conn.sendall(HEADER.pack(opcode, len(body)) + body)

    def _run(self):
        conn, _ = self._server.accept()
        with conn:
            self.received.append(self._recv(conn))
            if not self._ready:
                self._send(conn, 2, {"code": 4000, "message": "Invalid client ID"})
                return
            self._send(conn, 1, {"cmd": "DISPATCH", "evt": "READY", "data": {"v": 1}})
            while True:
                try:
                    opcode, payload = self._recv(conn)
                except ConnectionError:
                    return
                self.received.append((opcode, payload))
                if opcode == 2:
                    return
                self._send(
                    conn,
                    1,
                    {
                        "cmd": payload["cmd"],
                        "evt": None,
                        "nonce": payload["nonce"],
                        "data": payload["args"]["activity"],
                    },
                )


@pytest.fixture
def ipc_dir(monkeypatch):
    with tempfile.TemporaryDirectory(prefix="np", dir="/tmp") as directory:
        monkeypatch.setenv("XDG_RUNTIME_DIR", directory)
        yield directory


class RecordingClient:
    def __init__(self):
        self.activities = []
        self.starts = 0

    def set_activity(self, activity):
        self.activities.append(activity)
        return {}

    def start(self):
        self.starts += 1
        return True


def test_format_activity_while_editing():
    activity = format_activity(_data())
    assert activity["state"] == "3 additions, 1 deletions in 2 files"
    assert activity["details"] == "Editing main.rs"
    assert activity["timestamps"] == {"start": 1700000000}
    assert activity["assets"] == {"large_image": "nvim"}


def test_format_activity_idle():
    assert format_activity(_data(filename=None))["details"] == "Idling"


def test_ipc_socket_paths_use_runtime_dir(ipc_dir):
    paths = ipc_socket_paths()
    assert paths[0] == os.path.join(ipc_dir, "discord-ipc-0")
    assert all(path.startswith(ipc_dir) for path in paths)
    assert len(set(paths)) == len(paths)


def test_client_handshakes_and_sets_activity(ipc_dir):
    server = FakeDiscord(ipc_dir)
    try:
        client = DiscordIpcClient(123)
        assert client.start() is True
        assert client.connected
        activity = format_activity(_data())
        reply = client.set_activity(activity)
        assert reply["data"] == activity
        client.close()
        server.thread.join(timeout=5)
    finally:
        server.close()
    assert server.received[0] == (0, {"v": 1, "client_id": "123"})
    opcode, payload = server.received[1]
    assert opcode == 1
    assert payload["cmd"] == "SET_ACTIVITY"
    assert payload["args"]["pid"] == os.getpid()
    assert server.received[-1][0] == 2
    assert not client.connected


def test_client_reports_rejected_handshake(ipc_dir):
    server = FakeDiscord(ipc_dir, ready=False)
    queue = asyncio.Queue()
    try:
        client = DiscordIpcClient(123, queue)
        assert client.start() is False
        server.thread.join(timeout=5)
    finally:
        server.close()
    assert queue.get_nowait() == DiscordError("Invalid client ID")
    assert not client.connected


def test_client_reports_missing_discord(ipc_dir):
    queue = asyncio.Queue()
    client = DiscordIpcClient(123, queue)
    assert client.start() is False
    assert isinstance(queue.get_nowait(), DiscordError)


def test_set_activity_needs_connection():
    client = DiscordIpcClient(123)
    with pytest.raises(ConnectionError):
        client.set_activity(format_activity(_data()))


@pytest.mark.asyncio
async def test_runner_publishes_updates():
    client = RecordingClient()
    queue = asyncio.Queue()
    await queue.put(StateUpdate(_data()))
    await queue.put(StateUpdate(_data(filename=None)))
    await queue.put(None)
    await discord_runner(client, queue)
    assert client.activities == [format_activity(_data()), format_activity(_data(filename=None))]
    assert client.starts == 0


@pytest.mark.asyncio
async def test_runner_restarts_after_error(monkeypatch):
    monkeypatch.setattr(discord, "RECONNECT_DELAY", 0)
    client = RecordingClient()
    queue = asyncio.Queue()
    await queue.put(DiscordError("lost"))
    await queue.put(None)
    await discord_runner(client, queue)
    assert client.starts == 1
    assert client.activities == []
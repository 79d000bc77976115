"""Entry point tying the editor connection, session state and Discord together."""

from __future__ import annotations

import argparse
import asyncio
import concurrent.futures
import sys
import threading
from collections.abc import Coroutine
from typing import Any, BinaryIO

from neopresence.discord import DiscordIpcClient, StateUpdate, discord_runner
from neopresence.nvim import FileChanged, FileOpened, NvimError, Shutdown, message_handler
from neopresence.protocol import ProtocolError, read_message
from neopresence.session import SessionState, construct_data, update_file_contents

DISCORD_CLIENT_ID = 1231109585633284168
UPDATE_INTERVAL = 5.0


class _LoopClosed(Exception):
    pass


def _call_in_loop(loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, Any]) -> Any:
    try:
        future = asyncio.run_coroutine_threadsafe(coro, loop)
    except RuntimeError:
        coro.close()
        raise _LoopClosed from None
    try:
        return future.result()
    except concurrent.futures.CancelledError:
        raise _LoopClosed from None


def _read_loop(
    stdin: BinaryIO,
    stdout: BinaryIO,
    loop: asyncio.AbstractEventLoop,
    queue: asyncio.Queue,
) -> None:
    try:
        while True:
            try:
                message = read_message(stdin)
            except (ProtocolError, EOFError, OSError) as exc:
                _call_in_loop(loop, queue.put(NvimError(str(exc))))
                return
            if message is None:
                _call_in_loop(loop, queue.put(Shutdown()))
                return
            try:
                _call_in_loop(loop, message_handler(message, queue, stdout))
            except _LoopClosed:
                raise
            except Exception as exc:
                _call_in_loop(loop, queue.put(NvimError(str(exc))))
                return
    except _LoopClosed:
        return


async def _clock(state: SessionState, queue: asyncio.Queue) -> None:
    while True:
        await asyncio.sleep(UPDATE_INTERVAL)
        await queue.put(StateUpdate(construct_data(state)))


async def run(
    client_id: int = DISCORD_CLIENT_ID,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> SessionState:
    """Serve the editor until it shuts down; return the final session state."""
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer
    loop = asyncio.get_running_loop()
    discord_queue: asyncio.Queue = asyncio.Queue()
    nvim_queue: asyncio.Queue = asyncio.Queue()
    state = SessionState()

    client = DiscordIpcClient(client_id, discord_queue)
    client.start()
    tasks = [
        asyncio.create_task(discord_runner(client, discord_queue)),
        asyncio.create_task(_clock(state, discord_queue)),
    ]
    threading.Thread(
        target=_read_loop,
        args=(stdin, stdout, loop, nvim_queue),
        name="editor-reader",
        daemon=True,
    ).start()

    try:
        while True:
            event = await nvim_queue.get()
            if isinstance(event, FileOpened):
                state.current_file = event.filename
            elif isinstance(event, FileChanged):
                update_file_contents(state, event.filename, event.contents)
            elif isinstance(event, Shutdown):
                return state
            elif isinstance(event, NvimError):
                raise RuntimeError(event.message)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        client.close()


def main(argv: list[str] | None = None) -> int:
    """Run the presence server on standard input and output."""
    parser = argparse.ArgumentParser(
        prog="neopresence",
        description="Discord rich presence for the editor, spoken over the language-server protocol.",
    )
    parser.add_argument(
        "--client-id",
        type=int,
        default=DISCORD_CLIENT_ID,
        help="Discord application id to publish the presence under",
    )
    args = parser.parse_args(argv)
    try:
        asyncio.run(run(args.client_id))
    except RuntimeError as exc:
        print(f"neopresence: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
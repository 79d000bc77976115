"""State of the editing session and the presence data derived from it."""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass, field

from neopresence.diff import get_diff
from neopresence.discord import DiscordData

_ELLIPSIS = "..."


def _now() -> int:
    return int(time.time())


@dataclass
class FileData:
    """Contents of a file when first seen and as last seen."""

    original_contents: str
    latest_contents: str = ""


@dataclass
class SessionState:
    """Everything known about the current editing session."""

    changed_files: dict[str, FileData] = field(default_factory=dict)
    current_file: str | None = None
    remote_url: str | None = None
    start_time: int = field(default_factory=_now)


def construct_data(state: SessionState) -> DiscordData:
    """Summarise the session as presence data."""
    additions = 0
    deletions = 0
    for file_data in state.changed_files.values():
        removed, added = get_diff(file_data.original_contents, file_data.latest_contents)
        additions += added
        deletions += removed
    return DiscordData(
        additions=additions,
        deletions=deletions,
        num_files=len(state.changed_files),
        filename=state.current_file,
        remote_url=state.remote_url,
        start_time=state.start_time,
    )


def update_file_contents(state: SessionState, filename: str, contents: str) -> None:
    """Record new contents of ``filename``, keeping the first contents seen."""
    if not filename:
        return
    state.current_file = filename
    file_data = state.changed_files.setdefault(filename, FileData(original_contents=contents))
    file_data.latest_contents = contents


def parse_remote_url(raw_url: str) -> str:
    """Turn an SSH-style git remote into an https URL; other remotes pass through."""
    if "@" not in raw_url:
        return raw_url
    _, host_and_path = raw_url.split("@", 1)
    return "https://" + host_and_path.replace(":", "/").replace(".git", "")


def get_remote_url() -> str:
    """Return the URL of the current repository's ``origin`` remote."""
    result = subprocess.run(
        ["git", "config", "--get", "remote.origin.url"],
        capture_output=True,
        check=False,
    )
    return parse_remote_url(result.stdout.decode("utf-8"))


def clamp(text: str, length: int) -> str:
    """Shorten ``text`` to ``length`` characters, ending in an ellipsis if cut."""
    if len(text) <= length:
        return text
    if length < len(_ELLIPSIS):
        raise ValueError(f"length must be at least {len(_ELLIPSIS)}")
    return text[: length - len(_ELLIPSIS)] + _ELLIPSIS
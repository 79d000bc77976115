"""Line-based diff statistics using Myers' shortest edit script."""

from __future__ import annotations


def _lines(text: str) -> list[str]:
    """Split text into lines on ``\\n`` or ``\\r\\n``; a final line ending is optional."""
    if not text:
        return []
    parts = text.split("\n")
    if text.endswith("\n"):
        parts.pop()
        return [part[:-1] if part.endswith("\r") else part for part in parts]
    *complete, last = parts
    return [part[:-1] if part.endswith("\r") else part for part in complete] + [last]


def _steps_down(v: list[int], k: int, d: int, offset: int) -> bool:
    """Whether diagonal ``k`` at depth ``d`` is reached by an insertion from ``k + 1``."""
    return k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1])


def _shortest_edit_trace(old: list[str], new: list[str], offset: int) -> list[list[int]]:
    """Run the forward Myers search, returning the frontier recorded before each depth."""
    n, m = len(old), len(new)
    v = [-1] * (2 * offset + 1)
    v[offset + 1] = 0
    trace: list[list[int]] = []

    for d in range(offset + 1):
        trace.append(v.copy())
        for k in range(-d, d + 1, 2):
            if _steps_down(v, k, d, offset):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and old[x] == new[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return trace
    return trace


def get_diff(old: str, new: str) -> tuple[int, int]:
    """Return ``(deletions, additions)`` of lines needed to turn ``old`` into ``new``."""
    old_lines = _lines(old)
    new_lines = _lines(new)
    offset = len(old_lines) + len(new_lines)
    if offset == 0:
        return 0, 0

    trace = _shortest_edit_trace(old_lines, new_lines, offset)

    deletions = 0
    additions = 0
    k = len(old_lines) - len(new_lines)
    for d in range(len(trace) - 1, 0, -1):
        if _steps_down(trace[d], k, d, offset):
            k += 1
            additions += 1
        else:
            k -= 1
            deletions += 1

    return deletions, additions
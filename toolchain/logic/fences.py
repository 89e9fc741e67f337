from __future__ import annotations

from dataclasses import dataclass


FENCE_MARKER = "```"


@dataclass(frozen=True)
class FenceReport:
    balanced: bool
    fence_count: int
    open_line: int | None  # 1-based line of the unclosed opener


def is_fence_line(line: str) -> bool:
    return line.lstrip().startswith(FENCE_MARKER)


def scan_fences(text: str) -> FenceReport:
    """Single forward pass over lines tracking fence depth (0 or 1).

    Any line whose left-trimmed content starts with three or more backticks
    toggles the depth; trailing info strings are irrelevant.
    """

    depth = 0
    count = 0
    open_line: int | None = None

    for i, line in enumerate(text.split("\n")):
        if not is_fence_line(line):
            continue
        count += 1
        if depth == 0:
            depth = 1
            open_line = i + 1
        else:
            depth = 0
            open_line = None

    return FenceReport(balanced=depth == 0, fence_count=count, open_line=open_line)

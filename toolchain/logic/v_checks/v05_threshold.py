from __future__ import annotations

from toolchain.logic.base import Diagnostic

from .context import VCheckContext


KIND = "threshold"


def run(ctx: VCheckContext) -> list[Diagnostic]:
    """Sanity guard: too few sources usually means an upstream move or a bad listing."""

    count = len(ctx.source_texts)
    if count >= ctx.min_commands:
        return []
    return [
        Diagnostic(
            kind=KIND,
            artifact="",
            message=(
                f"only {count} upstream commands found (minimum: {ctx.min_commands}); "
                "possible silent upstream refactor"
            ),
            level="WARN",
        )
    ]

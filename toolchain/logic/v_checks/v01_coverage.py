from __future__ import annotations

from toolchain.logic.base import Diagnostic, artifact_name_for

from .context import VCheckContext


KIND = "coverage"


def run(ctx: VCheckContext) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for source_name in ctx.source_texts:
        expected = artifact_name_for(source_name)
        if expected not in ctx.artifact_texts:
            out.append(
                Diagnostic(
                    kind=KIND,
                    artifact=expected,
                    message="missing; no generated prompt for this upstream command",
                )
            )
    return out

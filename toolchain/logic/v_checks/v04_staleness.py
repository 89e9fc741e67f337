from __future__ import annotations

from promptport.core.hash import sha256_text
from promptport.core.text import to_lf
from toolchain.logic.base import Diagnostic, artifact_name_for
from toolchain.logic.stages import RunAccumulator, compile_document

from .context import VCheckContext


KIND = "staleness"


def run(ctx: VCheckContext) -> list[Diagnostic]:
    """Re-run the pipeline in memory and hash-compare against storage.

    The accumulator is private to this check; nothing is written back.
    """

    out: list[Diagnostic] = []
    acc = RunAccumulator()
    for source_name, source_text in ctx.source_texts.items():
        name = artifact_name_for(source_name)
        on_disk = ctx.artifact_texts.get(name)
        if on_disk is None:
            continue

        result = compile_document(
            source=source_text,
            source_path=ctx.commands_dir / source_name,
            root=ctx.root,
            tool_map=ctx.tool_map,
            accumulator=acc,
        )
        if result.skip_write:
            continue

        if sha256_text(to_lf(result.output)) != sha256_text(to_lf(on_disk)):
            out.append(
                Diagnostic(
                    kind=KIND,
                    artifact=name,
                    message="stale; content differs from what the compiler would produce today (re-run the compiler)",
                    level="WARN",
                )
            )
    return out

from __future__ import annotations

from toolchain.logic.artifacts import parse_tools_field
from toolchain.logic.base import ADAPTER_TOKEN, ASK_TOOL, STRUCTURAL_MARKER, Diagnostic, artifact_name_for

from .context import VCheckContext


KIND = "structural-integrity"


def run(ctx: VCheckContext) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for source_name, source_text in ctx.source_texts.items():
        name = artifact_name_for(source_name)
        content = ctx.artifact_texts.get(name)
        if content is None:
            continue

        # Commands that never had the marker block are not expected to carry it.
        if STRUCTURAL_MARKER in source_text and STRUCTURAL_MARKER not in content:
            out.append(Diagnostic(kind=KIND, artifact=name, message=f"missing {STRUCTURAL_MARKER} block"))

        tools = parse_tools_field(content)
        if tools is not None and ASK_TOOL in tools and ADAPTER_TOKEN not in content:
            out.append(
                Diagnostic(
                    kind=KIND,
                    artifact=name,
                    message=f"missing adapter shim ({ADAPTER_TOKEN}); required because {ASK_TOOL} is in tools list",
                )
            )
    return out

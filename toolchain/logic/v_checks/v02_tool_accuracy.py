from __future__ import annotations

from toolchain.logic.artifacts import parse_tools_field, parse_upstream_tools_annotation
from toolchain.logic.base import Diagnostic, artifact_name_for
from toolchain.logic.tool_map import map_tools

from .context import VCheckContext


KIND = "tool-accuracy"


def run(ctx: VCheckContext) -> list[Diagnostic]:
    """Recompute mapped tools from the audit annotation against the current table."""

    out: list[Diagnostic] = []
    for source_name in ctx.source_texts:
        name = artifact_name_for(source_name)
        content = ctx.artifact_texts.get(name)
        if content is None:
            continue

        upstream = parse_upstream_tools_annotation(content)
        if upstream is None:
            continue

        expected = map_tools([t.lower() for t in upstream], ctx.tool_map, source_label=name).tools
        actual = sorted(parse_tools_field(content) or [])
        if actual != sorted(expected):
            out.append(
                Diagnostic(
                    kind=KIND,
                    artifact=name,
                    message=(
                        f"tools mismatch; expected [{', '.join(sorted(expected))}] "
                        f"but found [{', '.join(actual)}]"
                    ),
                )
            )
    return out

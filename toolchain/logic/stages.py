"""Per-document compilation pipeline.

One PipelineContext flows through a fixed, ordered list of stages. Run-wide
state (pending tool stubs, omitted names, fence errors, expected artifact
names) lives in a RunAccumulator that the caller owns and passes in.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from promptport.core.text import EOL_LF, detect_eol, restore_eol, to_lf
from toolchain.logic.base import ASK_TOOL, NAMESPACE, SOURCE_SUFFIX, stable_unique
from toolchain.logic.fences import scan_fences
from toolchain.logic.frontmatter import parse_frontmatter, parse_frontmatter_tools
from toolchain.logic.references import convert_includes, normalize_runtime_paths, rewrite_references
from toolchain.logic.tool_map import map_tools


ROUTING_FIELD = "agent: agent"


@dataclass
class RunAccumulator:
    pending_stubs: dict[str, str] = field(default_factory=dict)
    omitted_names: list[str] = field(default_factory=list)
    total_omitted: int = 0
    fence_errors: int = 0
    expected_artifacts: set[str] = field(default_factory=set)

    def record_omitted(self, names: list[str]) -> None:
        self.total_omitted += len(names)
        self.omitted_names = stable_unique([*self.omitted_names, *names])


@dataclass
class PipelineContext:
    source: str
    source_path: Path
    root: Path
    tool_map: Mapping[str, str]
    accumulator: RunAccumulator

    fields: dict[str, str] = field(default_factory=dict)
    body: str = ""
    eol: str = EOL_LF
    tools_original: list[str] | None = None
    tools_declared: list[str] | None = None
    tools: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)
    command_name: str = ""
    output: str = ""
    skip_write: bool = False
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.source_path.name


Stage = Callable[[PipelineContext], PipelineContext]


# ---------------------------------------------------------------------------
# Assembly helpers
# ---------------------------------------------------------------------------

def normalize_command_name(name: str) -> str:
    """Upstream uses `gsd:new-project`; prompt names use `gsd.new-project`."""
    s = str(name)
    if s.startswith(f"{NAMESPACE}:"):
        s = f"{NAMESPACE}." + s[len(NAMESPACE) + 1 :]
    return s.replace(":", ".")


def escape_yaml_string(s: str) -> str:
    return str(s or "").replace("\\", "\\\\").replace('"', '\\"')


def join_blocks(*blocks: str) -> str:
    """Join non-empty blocks with exactly one blank line; no outer blank lines."""
    kept = [b.rstrip() for b in blocks if isinstance(b, str) and b.strip()]
    return "\n\n".join(kept)


def adapter_block() -> str:
    return f"""## Copilot Runtime Adapter (important)

Upstream GSD command sources may reference an `AskUserQuestion` tool (Claude/OpenCode runtime concept).

In VS Code Copilot, **do not attempt to call a tool named `AskUserQuestion`**.
Instead, whenever the upstream instructions say "Use AskUserQuestion", use **#tool:{ASK_TOOL}** with:

- Combine the **Header** and **Question** into a single clear question string.
- If the upstream instruction specifies **Options**, present them as numbered choices.
- If no options are specified, ask as a freeform question.

**Rules:**
1. If the options include "Other", "Something else", or "Let me explain", and the user selects it, follow up with a freeform question via #tool:{ASK_TOOL}.
2. Follow the upstream branching and loop rules exactly as written (e.g., "if X selected, do Y; otherwise continue").
3. If the upstream flow says to **exit/stop** and run another command, tell the user to run that slash command next, then stop.
4. Use #tool:{ASK_TOOL} freely; do not guess or assume user intent.

---
"""


def _compact_json(obj: object) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def upstream_tools_annotation(tools_original: list[str] | None) -> str:
    if tools_original is None:
        return "<!-- upstream-tools: null (field absent in upstream command) -->"
    return f"<!-- upstream-tools: {_compact_json(tools_original)} -->"


def omitted_tools_annotation(omitted: list[str]) -> str:
    if not omitted:
        return ""
    return f"<!-- omitted-tools: {_compact_json(omitted)} (no Copilot equivalent found) -->"


def tools_field_line(tools_declared: list[str] | None, tools: list[str]) -> str:
    if tools_declared is None:
        return ""
    return "tools: [" + ", ".join(f"'{t}'" for t in tools) + "]"


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def stage_parse_frontmatter(ctx: PipelineContext) -> PipelineContext:
    fm = parse_frontmatter(ctx.source)
    ctx.fields = dict(fm.fields)
    ctx.body = fm.body
    return ctx


def stage_normalize_eol(ctx: PipelineContext) -> PipelineContext:
    ctx.eol = detect_eol(ctx.source)
    ctx.body = to_lf(ctx.body)
    return ctx


def stage_parse_tools(ctx: PipelineContext) -> PipelineContext:
    decl = parse_frontmatter_tools(ctx.source)
    ctx.tools_original = decl.original
    ctx.tools_declared = decl.normalized
    for anomaly in decl.anomalies:
        ctx.warnings.append(anomaly.render(ctx.label))
    return ctx


def stage_map_tools(ctx: PipelineContext) -> PipelineContext:
    result = map_tools(
        ctx.tools_declared,
        ctx.tool_map,
        source_label=ctx.label,
        pending=ctx.accumulator.pending_stubs,
    )
    ctx.tools = result.tools
    ctx.omitted = result.omitted
    ctx.warnings.extend(result.warnings)
    ctx.accumulator.record_omitted(result.omitted)
    return ctx


def stage_convert_includes(ctx: PipelineContext) -> PipelineContext:
    ctx.body = convert_includes(ctx.body)
    return ctx


def stage_normalize_runtime_paths(ctx: PipelineContext) -> PipelineContext:
    ctx.body = normalize_runtime_paths(ctx.body)
    return ctx


def stage_rewrite_references(ctx: PipelineContext) -> PipelineContext:
    ctx.body, warnings = rewrite_references(ctx.body, source_path=ctx.source_path, root=ctx.root)
    ctx.warnings.extend(warnings)
    return ctx


def stage_assemble(ctx: PipelineContext) -> PipelineContext:
    upstream_name = ctx.fields.get("name", "")
    base = ctx.source_path.name
    if base.endswith(SOURCE_SUFFIX):
        base = base[: -len(SOURCE_SUFFIX)]
    cmd_name = normalize_command_name(upstream_name) if upstream_name else f"{NAMESPACE}.{base}"

    description = ctx.fields.get("description") or f"GSD command {cmd_name}"
    argument_hint = ctx.fields.get("argument-hint", "")

    header_lines = [
        f"name: {cmd_name}",
        f'description: "{escape_yaml_string(description)}"',
        f'argument-hint: "{escape_yaml_string(argument_hint)}"' if argument_hint else "",
        tools_field_line(ctx.tools_declared, ctx.tools),
        ROUTING_FIELD,
    ]
    header = "---\n" + "\n".join(line for line in header_lines if line) + "\n---"

    annotations = "\n".join(
        a for a in (upstream_tools_annotation(ctx.tools_original), omitted_tools_annotation(ctx.omitted)) if a
    )

    ctx.output = (
        join_blocks(
            header,
            annotations,
            adapter_block() if ASK_TOOL in ctx.tools else "",
            ctx.body,
        )
        + "\n"
    )
    ctx.command_name = cmd_name
    return ctx


def stage_restore_eol(ctx: PipelineContext) -> PipelineContext:
    ctx.output = restore_eol(ctx.output, ctx.eol)
    return ctx


def stage_validate_fences(ctx: PipelineContext) -> PipelineContext:
    report = scan_fences(ctx.output)
    if not report.balanced:
        ctx.errors.append(
            f"{ctx.label}: unbalanced fenced code block in output (opened at line {report.open_line}); file NOT written"
        )
        ctx.skip_write = True
    return ctx


STAGES: tuple[Stage, ...] = (
    stage_parse_frontmatter,
    stage_normalize_eol,
    stage_parse_tools,
    stage_map_tools,
    stage_convert_includes,
    stage_normalize_runtime_paths,
    stage_rewrite_references,
    stage_assemble,
    stage_restore_eol,
    stage_validate_fences,
)


def run_pipeline(ctx: PipelineContext) -> PipelineContext:
    for stage in STAGES:
        ctx = stage(ctx)
    return ctx


def compile_document(
    *,
    source: str,
    source_path: Path,
    root: Path,
    tool_map: Mapping[str, str],
    accumulator: RunAccumulator | None = None,
) -> PipelineContext:
    ctx = PipelineContext(
        source=source,
        source_path=source_path,
        root=root,
        tool_map=tool_map,
        accumulator=accumulator if accumulator is not None else RunAccumulator(),
    )
    return run_pipeline(ctx)

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


NAMESPACE = "gsd"
SOURCE_SUFFIX = ".md"
ARTIFACT_SUFFIX = ".prompt.md"

DEFAULT_COMMANDS_DIR = "commands/gsd"
DEFAULT_OUT_DIR = ".github/prompts"
DEFAULT_TOOL_MAP = "scripts/tools.json"

ASK_TOOL = "vscode/askQuestions"
ADAPTER_TOKEN = f"#tool:{ASK_TOOL}"
STRUCTURAL_MARKER = "<execution_context>"

Level = str  # "ERROR" | "WARN"


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    artifact: str
    message: str
    level: Level = "ERROR"

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.kind, self.artifact, self.message)


def artifact_name_for(source_name: str) -> str:
    """`new-project.md` -> `gsd.new-project.prompt.md`."""
    base = source_name[: -len(SOURCE_SUFFIX)] if source_name.endswith(SOURCE_SUFFIX) else source_name
    return f"{NAMESPACE}.{base}{ARTIFACT_SUFFIX}"


def is_artifact_name(name: str) -> bool:
    return name.startswith(NAMESPACE + ".") and name.endswith(ARTIFACT_SUFFIX)


def list_source_documents(commands_dir: Path) -> list[Path]:
    if not commands_dir.is_dir():
        return []
    return sorted(
        (p for p in commands_dir.iterdir() if p.is_file() and p.name.endswith(SOURCE_SUFFIX)),
        key=lambda p: p.name,
    )


def list_artifact_names(out_dir: Path) -> set[str]:
    if not out_dir.is_dir():
        return set()
    return {p.name for p in out_dir.iterdir() if p.is_file() and is_artifact_name(p.name)}


def stable_unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def group_by_kind(diagnostics: Iterable[Diagnostic]) -> dict[str, list[Diagnostic]]:
    grouped: dict[str, list[Diagnostic]] = {}
    for d in diagnostics:
        grouped.setdefault(d.kind, []).append(d)
    return grouped

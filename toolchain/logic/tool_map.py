from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from promptport.core.text import decode_utf8_strict


UNMAPPED = "UNMAPPED"
PASSTHROUGH_PREFIX = "mcp__"


class ToolMapError(RuntimeError):
    pass


@dataclass(frozen=True)
class ToolMapping:
    tools: list[str]
    omitted: list[str]
    warnings: list[str] = field(default_factory=list)


def load_tool_map(path: Path) -> dict[str, str]:
    """Load the persisted mapping table.

    A missing file degrades to an empty table with a warning. A file that is
    not a JSON object of strings raises ToolMapError.
    """

    if not path.exists():
        print(f"WARN: [load_tool_map] {path.name} not found; using empty map", file=sys.stderr)
        return {}
    try:
        obj = json.loads(decode_utf8_strict(path.read_bytes(), source_label=path.name))
    except (ValueError, OSError) as e:
        raise ToolMapError(f"failed to parse tool map {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ToolMapError(f"tool map must be a JSON object: {path}")
    for k, v in obj.items():
        if not isinstance(v, str):
            raise ToolMapError(f"tool map value for {k!r} must be a string: {path}")
    return obj


def write_tool_map(path: Path, table: Mapping[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8", errors="strict", newline="\n") as f:
        f.write(json.dumps(dict(table), indent=2, ensure_ascii=False) + "\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(str(tmp), str(path))


def merge_pending(table: Mapping[str, str], pending: Mapping[str, str]) -> dict[str, str]:
    """Existing entries keep their order and values; new names are appended."""
    merged = dict(table)
    for k, v in pending.items():
        if k not in merged:
            merged[k] = v
    return merged


def lookup_tool(table: Mapping[str, str], name: str) -> tuple[str, str] | None:
    """Case-insensitive lookup returning (authored_key, value)."""
    if name in table:
        return name, table[name]
    wanted = name.lower()
    for k, v in table.items():
        if k.lower() == wanted:
            return k, v
    return None


def map_tools(
    tools: Iterable[str] | None,
    table: Mapping[str, str],
    *,
    source_label: str,
    pending: dict[str, str] | None = None,
) -> ToolMapping:
    """Translate lower-cased source tool names into target names.

    Misses are recorded into `pending` (when given) with the UNMAPPED sentinel.
    """

    if not tools:
        return ToolMapping(tools=[], omitted=[])

    mapped: set[str] = set()
    omitted: list[str] = []
    warnings: list[str] = []

    for tool in tools:
        if tool.startswith(PASSTHROUGH_PREFIX):
            mapped.add(tool)
            continue

        hit = lookup_tool(table, tool)
        if hit is None:
            if pending is not None and lookup_tool(pending, tool) is None:
                pending[tool] = UNMAPPED
            if tool not in omitted:
                omitted.append(tool)
                warnings.append(f'unknown tool "{tool}" in {source_label}; omitted')
            continue

        if hit[1] == UNMAPPED:
            if tool not in omitted:
                omitted.append(tool)
                warnings.append(f'unknown tool "{tool}" in {source_label}; omitted ({UNMAPPED} in tool map)')
            continue

        mapped.add(hit[1])

    return ToolMapping(tools=sorted(mapped), omitted=omitted, warnings=warnings)

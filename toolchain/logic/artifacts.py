from __future__ import annotations

import json
import re

from toolchain.logic.frontmatter import parse_frontmatter, parse_inline_list


_UPSTREAM_NULL = "<!-- upstream-tools: null"
_UPSTREAM_TOOLS = re.compile(r"<!-- upstream-tools: (\[.*?\]) -->")


def parse_upstream_tools_annotation(content: str) -> list[str] | None:
    """Return the audit list of upstream tool names, or None when absent/null."""
    if _UPSTREAM_NULL in content:
        return None
    m = _UPSTREAM_TOOLS.search(content)
    if not m:
        return None
    try:
        obj = json.loads(m.group(1))
    except ValueError:
        return None
    if not isinstance(obj, list) or not all(isinstance(x, str) for x in obj):
        return None
    return obj


def parse_tools_field(content: str) -> list[str] | None:
    """Return the artifact header's `tools` list, or None when the field is absent."""
    fm = parse_frontmatter(content)
    raw = fm.fields.get("tools")
    if raw is None:
        return None
    return [item.strip().strip("'\"") for item in parse_inline_list(raw)]

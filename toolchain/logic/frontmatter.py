from __future__ import annotations

import re
from dataclasses import dataclass, field


HEADER_DELIMITER = "---"

# Source documents declare tools as `allowed-tools`; `tools` is accepted as an alias.
TOOLS_KEYS = ("allowed-tools", "tools")

_KEY_VALUE = re.compile(r"^([A-Za-z0-9_-]+)\s*:\s*(.*?)\s*$")
_NEW_KEY = re.compile(r"^[A-Za-z0-9_-]+\s*:")
_LIST_ITEM = re.compile(r"^\s+-\s+(.+?)\s*$")
_TOOLS_KEY = re.compile(r"^(?:" + "|".join(re.escape(k) for k in TOOLS_KEYS) + r")\s*:\s*(.*)$")

_SCANNING = "SCANNING"
_COLLECTING = "COLLECTING"


@dataclass(frozen=True)
class ParseAnomaly:
    line_no: int  # 1-based, counted inside the header block
    line: str
    message: str

    def render(self, source_label: str) -> str:
        return f"{source_label}: line {self.line_no}: {self.message}: {self.line!r}"


@dataclass(frozen=True)
class ToolDeclaration:
    """Tool field as declared in a header.

    `original` keeps authored casing for audit output; `normalized` is the
    lower-cased list used for lookups. Both are None when the field is absent.
    """

    original: list[str] | None
    normalized: list[str] | None
    anomalies: list[ParseAnomaly] = field(default_factory=list)


@dataclass(frozen=True)
class Frontmatter:
    fields: dict[str, str]
    body: str


def _strip_matching_quotes(v: str) -> str:
    if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
        return v[1:-1]
    return v


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r\n").rstrip(" \t\r") == HEADER_DELIMITER


def split_header(text: str) -> tuple[list[str] | None, str]:
    """Return (header_lines, remainder) for a leading delimited block.

    header_lines is None when text does not start with a complete header block.
    Lines keep no line terminators; remainder keeps its original line endings.
    """

    if not text.startswith(HEADER_DELIMITER):
        return None, text

    # only "\n" terminates a line; other Unicode separators stay inside values
    lines = [ln for ln in re.split(r"(?<=\n)", text) if ln]
    if not lines or not _is_delimiter(lines[0]):
        return None, text

    for i in range(1, len(lines)):
        if _is_delimiter(lines[i]):
            header = [ln.rstrip("\r\n") for ln in lines[1:i]]
            return header, "".join(lines[i + 1 :])

    return None, text


def parse_frontmatter(text: str) -> Frontmatter:
    """Parse flat `key: value` header fields and return the residual body.

    Lines that do not look like `key: value` are ignored; malformed headers
    never abort compilation.
    """

    header, rest = split_header(text)
    if header is None:
        return Frontmatter(fields={}, body=text)

    fields: dict[str, str] = {}
    for line in header:
        m = _KEY_VALUE.match(line.rstrip("\r"))
        if not m:
            continue
        fields[m.group(1)] = _strip_matching_quotes(m.group(2).strip())

    return Frontmatter(fields=fields, body=rest.lstrip())


def parse_inline_list(raw: str) -> list[str]:
    """Split `a, b` or `[a, b]` into trimmed items (empties dropped)."""

    s = raw.strip()
    if s.startswith("["):
        s = s[1:]
    if s.endswith("]"):
        s = s[:-1]
    return [item.strip() for item in s.split(",") if item.strip()]


def parse_frontmatter_tools(text: str) -> ToolDeclaration:
    """Extract the tool declaration with an explicit line state machine.

    SCANNING looks for the tool key. An inline value finishes the scan
    immediately; an empty value switches to COLLECTING, which consumes
    `  - name` items until a blank line or a new top-level key. Anything else
    inside the list block is recorded as an anomaly and skipped.
    """

    header, _ = split_header(text)
    if header is None:
        return ToolDeclaration(original=None, normalized=None)

    state = _SCANNING
    found = False
    items: list[str] = []
    anomalies: list[ParseAnomaly] = []

    for i, raw_line in enumerate(header):
        line = raw_line.rstrip("\r")

        if state == _SCANNING:
            m = _TOOLS_KEY.match(line)
            if not m:
                continue
            found = True
            inline = m.group(1).strip()
            if inline:
                items = parse_inline_list(inline)
                break
            state = _COLLECTING
            continue

        if line.strip() == "" or _NEW_KEY.match(line):
            break

        item = _LIST_ITEM.match(line)
        if item:
            value = item.group(1).strip()
            if value:
                items.append(value)
        else:
            anomalies.append(ParseAnomaly(line_no=i + 1, line=line, message="unexpected line in tools block"))

    if not found:
        return ToolDeclaration(original=None, normalized=None, anomalies=anomalies)

    return ToolDeclaration(
        original=list(items),
        normalized=[t.lower() for t in items],
        anomalies=anomalies,
    )

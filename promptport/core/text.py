from __future__ import annotations

from pathlib import Path


EOL_LF = "LF"
EOL_CRLF = "CRLF"


def detect_eol(text: str) -> str:
    """Return CRLF when any CRLF pair is present, else LF."""
    return EOL_CRLF if "\r\n" in text else EOL_LF


def to_lf(text: str) -> str:
    return text.replace("\r\n", "\n")


def restore_eol(text: str, eol: str) -> str:
    if eol == EOL_CRLF:
        return text.replace("\n", "\r\n")
    return text


def decode_utf8_strict(raw: bytes, *, source_label: str) -> str:
    try:
        return raw.decode("utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise ValueError(f"non-UTF8 content not allowed: {source_label}") from e


def read_text_exact(path: Path) -> str:
    """Read UTF-8 text without newline translation (CRLF survives)."""
    return decode_utf8_strict(path.read_bytes(), source_label=path.name)

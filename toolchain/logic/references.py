"""Body rewrites for runtime paths and file references.

All rewrites are conservative: a reference that cannot be proven to point at
an existing file inside the project root is left exactly as written.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from promptport.core.jail import lexical_abspath, relpath_within_root


RUNTIME_NAMESPACES = ("claude", "opencode", "gemini")

_NS = "|".join(RUNTIME_NAMESPACES)
_HOME_RUNTIME_PATH = re.compile(r"~/\.(" + _NS + r")/")
# Root-anchored form only: a leading slash not glued to a word, dot, slash or tilde.
_ROOT_RUNTIME_PATH = re.compile(r"(?<![\w./~-])/\.(" + _NS + r")/")

_INCLUDE_LINE = re.compile(r"^[ \t]*@(?:include[ \t]+)?(.+?)[ \t]*$", re.MULTILINE)

_TOKEN_END = r"[^\s\"')>\]]"
_PARENT_REL = re.compile(r"(?<![:/])(\.\./" + _TOKEN_END + r"+)")
_ANCHORED_REF = re.compile(r"(?<![A-Za-z0-9_-])@([\w./]" + _TOKEN_END + r"*/" + _TOKEN_END + r"*)")

INCLUDE_BULLET_PREFIX = "- Read file at: "


def _exists(p: Path) -> bool:
    # over-long prose tokens raise ENAMETOOLONG from Path.exists()
    return os.path.exists(p)


def _keep_trailing_slash(ref: str, rel: str) -> str:
    if ref.endswith("/") and not rel.endswith("/"):
        return rel + "/"
    return rel


def convert_includes(text: str) -> str:
    """Turn `@path` / `@include path` lines into plain read instructions."""
    return _INCLUDE_LINE.sub(lambda m: INCLUDE_BULLET_PREFIX + m.group(1).strip(), text)


def normalize_runtime_paths(text: str) -> str:
    """Point home-directory and root-anchored runtime dirs at the workspace copy."""
    text = _HOME_RUNTIME_PATH.sub(r"./.\1/", text)
    return _ROOT_RUNTIME_PATH.sub(r"./.\1/", text)


def rewrite_references(text: str, *, source_path: Path, root: Path) -> tuple[str, list[str]]:
    """Rewrite `../` and `@dir/file` references to root-relative paths.

    Returns (text, warnings). Only existing targets inside root are rewritten.
    """

    source_dir = source_path.parent
    label = source_path.name
    warnings: list[str] = []

    def _parent_rel(m: re.Match[str]) -> str:
        ref = m.group(1)
        target = lexical_abspath(source_dir, ref)
        if not _exists(target):
            return ref
        rel = relpath_within_root(root, target)
        if rel is None:
            warnings.append(f"{label}: path resolves outside workspace root: {ref}")
            return ref
        return _keep_trailing_slash(ref, rel)

    def _anchored(m: re.Match[str]) -> str:
        ref = m.group(1)
        for base in (root, source_dir):
            target = lexical_abspath(base, ref)
            if not _exists(target):
                continue
            rel = relpath_within_root(root, target)
            if rel is None:
                warnings.append(f"{label}: @-reference resolves outside workspace root: {ref}")
                return m.group(0)
            return "@" + _keep_trailing_slash(ref, rel)
        return m.group(0)

    text = _PARENT_REL.sub(_parent_rel, text)
    text = _ANCHORED_REF.sub(_anchored, text)
    return text, warnings

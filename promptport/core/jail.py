from __future__ import annotations

import os
from pathlib import Path


def normalize_root_rel(rel: str, *, allow_backslashes: bool) -> str:
    """Normalize a root-relative path to POSIX separators and reject escapes.
    """

    if not isinstance(rel, str) or not rel:
        raise ValueError("path missing/empty")
    if "\x00" in rel:
        raise ValueError("path contains NUL")

    s = str(rel)
    if "\\" in s:
        if not allow_backslashes:
            raise ValueError("path must use '/' separators")
        s = s.replace("\\", "/")

    if s.startswith("/"):
        raise ValueError("absolute paths are not allowed")
    if len(s) >= 2 and s[1] == ":":
        raise ValueError("drive-qualified paths are not allowed")

    parts = [p for p in s.split("/") if p and p != "."]
    if not parts:
        raise ValueError("empty path not allowed")
    if any(p == ".." for p in parts):
        raise ValueError("path must not contain '..' segments")
    return "/".join(parts)


def lexical_abspath(base: Path, rel: str) -> Path:
    """Join and normalize without touching the filesystem (no symlink resolution)."""
    return Path(os.path.normpath(os.path.join(str(base), rel)))


def relpath_within_root(root: Path, target: Path) -> str | None:
    """Return target as a POSIX path relative to root, or None when it escapes root."""
    rel = os.path.relpath(os.path.normpath(str(target)), os.path.normpath(str(root)))
    rel_posix = rel.replace("\\", "/")
    if rel_posix == ".." or rel_posix.startswith("../"):
        return None
    return rel_posix


def safe_relpath(root: Path, p: Path) -> str:
    rel = relpath_within_root(root, p)
    return rel if rel is not None else p.as_posix()


def resolve_root_rel_path(
    root: Path,
    rel: str,
    *,
    must_exist: bool,
    must_be_dir: bool | None = None,
) -> Path:
    """Resolve a root-relative path within root.
    """

    rel_posix = normalize_root_rel(rel, allow_backslashes=True)
    candidate = root / rel_posix

    resolved = candidate.resolve()
    try:
        resolved.relative_to(root.resolve())
    except ValueError as e:
        raise ValueError(f"scope escape: {rel_posix}") from e

    if must_exist:
        if not resolved.exists():
            raise ValueError(f"missing path in scope: {rel_posix}")
        if must_be_dir is True and not resolved.is_dir():
            raise ValueError(f"expected directory but found file: {rel_posix}")
        if must_be_dir is False and resolved.is_dir():
            raise ValueError(f"expected file but found directory: {rel_posix}")

    return candidate

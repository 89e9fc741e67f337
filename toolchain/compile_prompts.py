#!/usr/bin/env python3
"""Prompt compiler (commands/gsd/*.md -> .github/prompts/gsd.*.prompt.md).

Every source command is run through the ordered pipeline in
toolchain/logic/stages.py and written as one prompt artifact.

Core guarantees:
- Determinism: stable file ordering, stable formatting, outputs overwritten.
- Bijection: after a run the artifact set equals exactly the current sources
  (orphans are deleted once all documents are processed).
- Single table write: newly seen unknown tools are merged into the tool map
  with the UNMAPPED sentinel in one write after the loop.
- Fence safety: an artifact with unbalanced ``` fences is never written.

Exit codes:
- 0: success
- 1: no sources, fence failures, or --strict with omitted tools
- 3: usage/internal error
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from promptport.core.jail import resolve_root_rel_path, safe_relpath
from promptport.core.text import read_text_exact
from toolchain.logic.base import (
    DEFAULT_COMMANDS_DIR,
    DEFAULT_OUT_DIR,
    DEFAULT_TOOL_MAP,
    artifact_name_for,
    list_artifact_names,
    list_source_documents,
)
from toolchain.logic.stages import RunAccumulator, compile_document
from toolchain.logic.tool_map import ToolMapError, load_tool_map, merge_pending, write_tool_map


class _UserInputError(RuntimeError):
    pass


def _resolve(root: Path, rel: str, *, must_exist: bool, must_be_dir: bool | None = None) -> Path:
    try:
        return resolve_root_rel_path(root, rel, must_exist=must_exist, must_be_dir=must_be_dir)
    except ValueError as e:
        raise _UserInputError(str(e)) from e


def _atomic_write_text(path: Path, text: str) -> None:
    # newline="" keeps CRLF output byte-exact
    tmp = path.with_name(path.name + ".tmp.gen")
    with tmp.open("w", encoding="utf-8", errors="strict", newline="") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    os.replace(str(tmp), str(path))


def remove_orphans(out_dir: Path, expected: set[str]) -> list[str]:
    removed: list[str] = []
    for name in sorted(list_artifact_names(out_dir)):
        if name in expected:
            continue
        (out_dir / name).unlink()
        removed.append(name)
    return removed


def compile_all(
    *,
    root: Path,
    commands_dir: Path,
    out_dir: Path,
    tool_map_path: Path,
) -> tuple[RunAccumulator, int]:
    """Compile every source document. Returns (accumulator, source_count)."""

    try:
        tool_map = load_tool_map(tool_map_path)
    except ToolMapError as e:
        raise _UserInputError(str(e)) from e

    sources = list_source_documents(commands_dir)
    acc = RunAccumulator()
    if not sources:
        return acc, 0

    out_dir.mkdir(parents=True, exist_ok=True)

    for src in sources:
        try:
            text = read_text_exact(src)
        except ValueError as e:
            raise _UserInputError(str(e)) from e

        ctx = compile_document(source=text, source_path=src, root=root, tool_map=tool_map, accumulator=acc)
        for w in ctx.warnings:
            print(f"WARN: {w}", file=sys.stderr)
        for err in ctx.errors:
            print(f"ERROR: {err}", file=sys.stderr)

        out_name = artifact_name_for(src.name)
        acc.expected_artifacts.add(out_name)

        if ctx.skip_write:
            acc.fence_errors += 1
            continue
        _atomic_write_text(out_dir / out_name, ctx.output)

    for name in remove_orphans(out_dir, acc.expected_artifacts):
        print(f"Removed orphan: {name}")

    if acc.pending_stubs:
        write_tool_map(tool_map_path, merge_pending(tool_map, acc.pending_stubs))
        print(f"\nWARN: auto-stubbed {len(acc.pending_stubs)} unknown tools as UNMAPPED:", file=sys.stderr)
        for name in acc.pending_stubs:
            print(f'  "{name}": "UNMAPPED"', file=sys.stderr)
        print("  Fill in Copilot equivalents before next run.\n", file=sys.stderr)

    return acc, len(sources)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Compile command sources into prompt artifacts")
    ap.add_argument("--repo", default=".", help="Project root (default: .)")
    ap.add_argument("--strict", action="store_true", help="Fail when any tool has no mapping")
    ap.add_argument(
        "--commands-dir",
        default=DEFAULT_COMMANDS_DIR,
        help=f"Root-relative source directory (default: {DEFAULT_COMMANDS_DIR})",
    )
    ap.add_argument(
        "--out-dir",
        default=DEFAULT_OUT_DIR,
        help=f"Root-relative artifact directory (default: {DEFAULT_OUT_DIR})",
    )
    ap.add_argument(
        "--tool-map",
        default=DEFAULT_TOOL_MAP,
        help=f"Root-relative tool mapping table (default: {DEFAULT_TOOL_MAP})",
    )
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    try:
        args = _parse_args(argv)
        root = Path(args.repo).resolve()
        if not root.is_dir():
            raise _UserInputError(f"--repo is not a directory: {args.repo}")

        commands_dir = _resolve(root, str(args.commands_dir), must_exist=False)
        out_dir = _resolve(root, str(args.out_dir), must_exist=False)
        tool_map_path = _resolve(root, str(args.tool_map), must_exist=False)

        acc, count = compile_all(root=root, commands_dir=commands_dir, out_dir=out_dir, tool_map_path=tool_map_path)
        if count == 0:
            print(f"ERROR: No command files found at {safe_relpath(root, commands_dir)}", file=sys.stderr)
            return 1

        rc = 0
        if acc.fence_errors > 0:
            print(f"\nERROR: {acc.fence_errors} file(s) skipped due to unbalanced fences.", file=sys.stderr)
            rc = 1

        if acc.total_omitted > 0:
            hint = "" if args.strict else " (run with --strict to fail on unknown tools)"
            print(
                f"\nWARN: {acc.total_omitted} unknown tool occurrences omitted: "
                f"{', '.join(acc.omitted_names)}{hint}",
                file=sys.stderr,
            )
            if args.strict:
                rc = 1

        print(f"Generated {count} prompt files into {safe_relpath(root, out_dir)}")
        return rc

    except SystemExit as e:
        if isinstance(e.code, int):
            return e.code
        return 3
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())

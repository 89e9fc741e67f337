#!/usr/bin/env python3
"""Prompt verifier for the command -> prompt compatibility layer.

Checks run as an ordered plugin pipeline (registry):
  toolchain/logic/v_checks/registry.py

- threshold             (WARN)  too few upstream commands
- coverage              (ERROR) every source has an artifact
- tool-accuracy         (ERROR) artifact tools match the current tool map
- structural-integrity  (ERROR) marker block and adapter shim present
- staleness             (WARN)  artifact equals an in-memory recompile

The verifier never writes sources, artifacts or the tool map.

Exit codes:
- 0: all checks passed (warnings allowed)
- 1: at least one error-level diagnostic
- 3: usage/internal error
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from promptport.core.jail import resolve_root_rel_path
from promptport.core.text import read_text_exact
from toolchain.logic.base import (
    DEFAULT_COMMANDS_DIR,
    DEFAULT_OUT_DIR,
    DEFAULT_TOOL_MAP,
    Diagnostic,
    artifact_name_for,
    group_by_kind,
    list_artifact_names,
    list_source_documents,
)
from toolchain.logic.tool_map import ToolMapError, load_tool_map
from toolchain.logic.v_checks.context import VCheckContext
from toolchain.logic.v_checks.registry import get_checks


MIN_COMMAND_COUNT = 20


class _UserInputError(RuntimeError):
    pass


def _resolve(root: Path, rel: str) -> Path:
    try:
        return resolve_root_rel_path(root, rel, must_exist=False)
    except ValueError as e:
        raise _UserInputError(str(e)) from e


def build_context(
    *,
    root: Path,
    commands_dir: Path,
    out_dir: Path,
    tool_map_path: Path,
    min_commands: int = MIN_COMMAND_COUNT,
) -> VCheckContext:
    try:
        tool_map = load_tool_map(tool_map_path)
    except ToolMapError as e:
        raise _UserInputError(str(e)) from e

    try:
        source_texts = {p.name: read_text_exact(p) for p in list_source_documents(commands_dir)}
        artifact_texts = {name: read_text_exact(out_dir / name) for name in sorted(list_artifact_names(out_dir))}
    except ValueError as e:
        raise _UserInputError(str(e)) from e

    return VCheckContext(
        root=root,
        commands_dir=commands_dir,
        out_dir=out_dir,
        tool_map=tool_map,
        source_texts=source_texts,
        artifact_texts=artifact_texts,
        min_commands=min_commands,
    )


def run_checks(ctx: VCheckContext) -> tuple[list[Diagnostic], list[Diagnostic]]:
    """Return (errors, warnings) across all registered checks."""

    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []
    for module in get_checks():
        for d in module.run(ctx):
            (warnings if d.level == "WARN" else errors).append(d)
    return errors, warnings


def _print_grouped(items: list[Diagnostic], *, noun: str) -> None:
    for kind, group in group_by_kind(items).items():
        print(f"[{kind}] {len(group)} {noun}(s):")
        for d in group:
            prefix = f"{d.artifact}: " if d.artifact else ""
            print(f"  - {prefix}{d.message}")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Verify generated prompt artifacts against their sources")
    ap.add_argument("--repo", default=".", help="Project root (default: .)")
    ap.add_argument("--verbose", action="store_true", help="Print one confirmation line per verified prompt")
    ap.add_argument("--commands-dir", default=DEFAULT_COMMANDS_DIR, help="Root-relative source directory")
    ap.add_argument("--out-dir", default=DEFAULT_OUT_DIR, help="Root-relative artifact directory")
    ap.add_argument("--tool-map", default=DEFAULT_TOOL_MAP, help="Root-relative tool mapping table")
    ap.add_argument(
        "--min-commands",
        type=int,
        default=MIN_COMMAND_COUNT,
        help=f"Warn when fewer source commands are found (default: {MIN_COMMAND_COUNT})",
    )
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    try:
        args = _parse_args(argv)
        root = Path(args.repo).resolve()
        if not root.is_dir():
            raise _UserInputError(f"--repo is not a directory: {args.repo}")

        ctx = build_context(
            root=root,
            commands_dir=_resolve(root, str(args.commands_dir)),
            out_dir=_resolve(root, str(args.out_dir)),
            tool_map_path=_resolve(root, str(args.tool_map)),
            min_commands=int(args.min_commands),
        )
        errors, warnings = run_checks(ctx)

        if warnings:
            print("")
            _print_grouped(warnings, noun="warning")

        if errors:
            print("")
            _print_grouped(errors, noun="error")
            kinds = {d.kind for d in errors}
            print("")
            print(f"FAIL: {len(errors)} error(s) across {len(kinds)} check type(s)")
            return 1

        if args.verbose:
            for source_name in ctx.source_texts:
                print(f"  OK {artifact_name_for(source_name)}")
        print(f"OK: All checks passed ({len(ctx.source_texts)} prompts verified)")
        return 0

    except SystemExit as e:
        if isinstance(e.code, int):
            return e.code
        return 3
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())

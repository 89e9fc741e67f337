#!/usr/bin/env python3
"""promptport CLI: compile and verify prompt artifacts.

This is the installable CLI entrypoint (console_scripts).

Subcommands:
- promptport generate  → Compile commands/gsd/*.md into .github/prompts/*.prompt.md
- promptport verify    → Verify generated prompts against sources and the tool map
- promptport about     → Print package identity info

Options after the subcommand are passed to the compiler / verifier unchanged
(e.g. `promptport generate --strict`, `promptport verify --verbose`).

Exit codes:
- 0: success
- 1: compile or verification failed
- 3: usage/internal error
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, metadata, version


def cmd_generate(args: argparse.Namespace) -> int:
    from toolchain.compile_prompts import main as compile_main

    return compile_main(list(args.rest))


def cmd_verify(args: argparse.Namespace) -> int:
    from toolchain.verify_prompts import main as verify_main

    return verify_main(list(args.rest))


def cmd_about(_: argparse.Namespace) -> int:
    """Print package identity info (human-readable)."""

    try:
        pkg_version = version("promptport")
    except PackageNotFoundError:
        pkg_version = "0.0.0"

    pkg_name = "promptport"
    pkg_summary = ""
    try:
        meta = metadata("promptport")
        pkg_name = str(meta.get("Name") or pkg_name)
        pkg_summary = str(meta.get("Summary") or "")
    except PackageNotFoundError:
        pass

    print(f"{pkg_name} {pkg_version}")
    if pkg_summary:
        print(pkg_summary)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="promptport",
        description="promptport CLI: compile command sources into prompt artifacts and verify them",
    )
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    subparsers.add_parser("about", help="Print package identity info")

    p_generate = subparsers.add_parser("generate", help="Compile command sources into prompt artifacts", add_help=False)
    p_generate.set_defaults(func=cmd_generate)

    p_verify = subparsers.add_parser("verify", help="Verify prompt artifacts", add_help=False)
    p_verify.set_defaults(func=cmd_verify)

    args, rest = parser.parse_known_args(argv)
    args.rest = rest

    if args.command == "about":
        if rest:
            parser.error(f"unrecognized arguments: {' '.join(rest)}")
        return cmd_about(args)
    elif args.command in ("generate", "verify"):
        return int(args.func(args))
    else:
        parser.print_help()
        return 3


if __name__ == "__main__":
    sys.exit(main())

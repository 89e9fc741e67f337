"""promptport: compile command documents into runtime prompt artifacts.

This package holds the runtime-neutral core helpers and the installable CLI.
The compiler and verifier live under toolchain/.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version


def __getattr__(name: str):
    if name == "__version__":
        try:
            return version("promptport")
        except PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)

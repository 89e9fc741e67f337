from __future__ import annotations

from types import ModuleType

from . import (
    v01_coverage,
    v02_tool_accuracy,
    v03_structure,
    v04_staleness,
    v05_threshold,
)


def get_checks() -> list[ModuleType]:
    return [
        v05_threshold,
        v01_coverage,
        v02_tool_accuracy,
        v03_structure,
        v04_staleness,
    ]

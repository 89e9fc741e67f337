from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True)
class VCheckContext:
    root: Path
    commands_dir: Path
    out_dir: Path

    tool_map: Mapping[str, str]

    # source file name -> raw text, in listing order
    source_texts: dict[str, str]
    # artifact file name -> raw text, for artifacts present on storage
    artifact_texts: dict[str, str]

    min_commands: int

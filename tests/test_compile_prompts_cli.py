"""End-to-end tests for the prompt compiler driver.

These tests verify:
- One artifact per source, written deterministically (re-runs are byte-stable)
- Orphaned namespace artifacts are removed; foreign prompt files are kept
- Unknown tools are stubbed into the tool map in a single write
- Exit codes for fence failures, --strict, empty sources and corrupt tables
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.repo_local


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from toolchain.compile_prompts import main, remove_orphans


TABLE = {
    "Read": "read",
    "Write": "edit",
    "Bash": "execute",
    "AskUserQuestion": "vscode/askQuestions",
}

NEW_PROJECT = """---
name: gsd:new-project
description: Initialize a new project
allowed-tools:
  - Read
  - Bash
  - AskUserQuestion
---

<execution_context>
@~/.claude/get-shit-done/workflows/new-project.md
</execution_context>

Use AskUserQuestion to gather goals.
"""

HELP = """---
name: gsd:help
description: Show available commands
---

Print the command list.
"""


def _project(tmp_path: Path, sources: dict[str, str] | None = None, table: dict[str, str] | None = None) -> Path:
    root = tmp_path / "proj"
    cmd_dir = root / "commands" / "gsd"
    cmd_dir.mkdir(parents=True)
    for name, text in (sources if sources is not None else {"new-project.md": NEW_PROJECT, "help.md": HELP}).items():
        (cmd_dir / name).write_bytes(text.encode("utf-8"))
    scripts = root / "scripts"
    scripts.mkdir()
    (scripts / "tools.json").write_text(json.dumps(table if table is not None else TABLE, indent=2) + "\n", encoding="utf-8")
    return root


def _prompts(root: Path) -> Path:
    return root / ".github" / "prompts"


class TestCompileHappyPath:
    def test_generates_one_artifact_per_source(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path)
        rc = main(["--repo", str(root)])
        assert rc == 0

        out = _prompts(root)
        assert sorted(p.name for p in out.iterdir()) == ["gsd.help.prompt.md", "gsd.new-project.prompt.md"]

        text = (out / "gsd.new-project.prompt.md").read_text(encoding="utf-8")
        assert text.startswith("---\nname: gsd.new-project\n")
        assert "tools: ['execute', 'read', 'vscode/askQuestions']" in text
        assert "#tool:vscode/askQuestions" in text
        assert "- Read file at: ./.claude/get-shit-done/workflows/new-project.md" in text

        captured = capsys.readouterr()
        assert "Generated 2 prompt files into .github/prompts" in captured.out

    def test_rerun_is_byte_identical(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        assert main(["--repo", str(root)]) == 0
        first = {p.name: p.read_bytes() for p in _prompts(root).iterdir()}
        table_before = (root / "scripts" / "tools.json").read_bytes()

        assert main(["--repo", str(root)]) == 0
        second = {p.name: p.read_bytes() for p in _prompts(root).iterdir()}
        assert first == second
        assert (root / "scripts" / "tools.json").read_bytes() == table_before

    def test_crlf_source_is_written_with_crlf(self, tmp_path: Path) -> None:
        root = _project(tmp_path, sources={"help.md": HELP.replace("\n", "\r\n")})
        assert main(["--repo", str(root)]) == 0
        raw = (_prompts(root) / "gsd.help.prompt.md").read_bytes()
        assert b"\r\n" in raw
        assert b"\n" not in raw.replace(b"\r\n", b"")

    def test_over_long_reference_token_does_not_abort_run(self, tmp_path: Path) -> None:
        body = "---\nname: gsd:long\nallowed-tools: Zap\n---\nSee ../" + "a" * 300 + "\n"
        root = _project(tmp_path, sources={"long.md": body, "help.md": HELP})
        assert main(["--repo", str(root)]) == 0
        assert (_prompts(root) / "gsd.long.prompt.md").read_text(encoding="utf-8").endswith("See ../" + "a" * 300 + "\n")
        assert (_prompts(root) / "gsd.help.prompt.md").is_file()
        assert json.loads((root / "scripts" / "tools.json").read_text(encoding="utf-8"))["zap"] == "UNMAPPED"

    def test_custom_directories(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        rc = main(["--repo", str(root), "--out-dir", "build/prompts", "--tool-map", "scripts/tools.json"])
        assert rc == 0
        assert (root / "build" / "prompts" / "gsd.help.prompt.md").is_file()
        assert not _prompts(root).exists()


class TestOrphansAndStubs:
    def test_deleted_source_removes_only_its_artifact(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        assert main(["--repo", str(root)]) == 0
        kept = (_prompts(root) / "gsd.help.prompt.md").read_bytes()

        (root / "commands" / "gsd" / "new-project.md").unlink()
        assert main(["--repo", str(root)]) == 0

        assert sorted(p.name for p in _prompts(root).iterdir()) == ["gsd.help.prompt.md"]
        assert (_prompts(root) / "gsd.help.prompt.md").read_bytes() == kept

    def test_orphans_removed_foreign_prompts_kept(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path)
        out = _prompts(root)
        out.mkdir(parents=True)
        (out / "gsd.removed-command.prompt.md").write_text("old\n", encoding="utf-8")
        (out / "team.review.prompt.md").write_text("hand written\n", encoding="utf-8")

        assert main(["--repo", str(root)]) == 0
        names = sorted(p.name for p in out.iterdir())
        assert names == ["gsd.help.prompt.md", "gsd.new-project.prompt.md", "team.review.prompt.md"]
        assert "Removed orphan: gsd.removed-command.prompt.md" in capsys.readouterr().out

    def test_remove_orphans_only_touches_namespace(self, tmp_path: Path) -> None:
        (tmp_path / "gsd.a.prompt.md").write_text("a", encoding="utf-8")
        (tmp_path / "gsd.b.prompt.md").write_text("b", encoding="utf-8")
        (tmp_path / "notes.md").write_text("n", encoding="utf-8")
        removed = remove_orphans(tmp_path, {"gsd.a.prompt.md"})
        assert removed == ["gsd.b.prompt.md"]
        assert sorted(p.name for p in tmp_path.iterdir()) == ["gsd.a.prompt.md", "notes.md"]

    def test_unknown_tools_are_stubbed_once(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        sources = {
            "a.md": "---\nallowed-tools: Read, Frobnicate\n---\nx\n",
            "b.md": "---\nallowed-tools: frobnicate, Zap\n---\ny\n",
        }
        root = _project(tmp_path, sources=sources)
        assert main(["--repo", str(root)]) == 0

        table = json.loads((root / "scripts" / "tools.json").read_text(encoding="utf-8"))
        assert list(table)[: len(TABLE)] == list(TABLE)
        assert table["frobnicate"] == "UNMAPPED"
        assert table["zap"] == "UNMAPPED"
        assert len(table) == len(TABLE) + 2

        err = capsys.readouterr().err
        assert "auto-stubbed 2 unknown tools as UNMAPPED" in err
        assert "3 unknown tool occurrences omitted: frobnicate, zap" in err

        a = (_prompts(root) / "gsd.a.prompt.md").read_text(encoding="utf-8")
        assert "tools: ['read']" in a
        assert '<!-- omitted-tools: ["frobnicate"] (no Copilot equivalent found) -->' in a

    def test_stubbed_table_is_stable_on_rerun(self, tmp_path: Path) -> None:
        root = _project(tmp_path, sources={"a.md": "---\nallowed-tools: Zap\n---\nx\n"})
        assert main(["--repo", str(root)]) == 0
        after_first = (root / "scripts" / "tools.json").read_bytes()
        assert main(["--repo", str(root)]) == 0
        assert (root / "scripts" / "tools.json").read_bytes() == after_first

    def test_missing_table_is_created_from_stubs(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path, sources={"a.md": "---\nallowed-tools: Read\n---\nx\n"})
        (root / "scripts" / "tools.json").unlink()
        assert main(["--repo", str(root)]) == 0
        assert json.loads((root / "scripts" / "tools.json").read_text(encoding="utf-8")) == {"read": "UNMAPPED"}
        assert "not found" in capsys.readouterr().err


class TestCompileFailures:
    def test_strict_fails_on_omitted_tools(self, tmp_path: Path) -> None:
        root = _project(tmp_path, sources={"a.md": "---\nallowed-tools: Zap\n---\nx\n"})
        assert main(["--repo", str(root), "--strict"]) == 1
        # artifacts are still written in strict mode
        assert (_prompts(root) / "gsd.a.prompt.md").is_file()

    def test_strict_passes_when_everything_maps(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        assert main(["--repo", str(root), "--strict"]) == 0

    def test_unbalanced_fence_skips_file_and_keeps_old_artifact(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        root = _project(tmp_path)
        out = _prompts(root)
        out.mkdir(parents=True)
        (out / "gsd.broken.prompt.md").write_text("previous\n", encoding="utf-8")
        (root / "commands" / "gsd" / "broken.md").write_text("---\nname: gsd:broken\n---\n```bash\necho\n", encoding="utf-8")

        assert main(["--repo", str(root)]) == 1
        assert (out / "gsd.broken.prompt.md").read_text(encoding="utf-8") == "previous\n"
        assert (out / "gsd.help.prompt.md").is_file()
        err = capsys.readouterr().err
        assert "broken.md: unbalanced fenced code block" in err
        assert "1 file(s) skipped due to unbalanced fences" in err

    def test_no_sources_is_an_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path, sources={})
        assert main(["--repo", str(root)]) == 1
        assert "No command files found at commands/gsd" in capsys.readouterr().err

    def test_corrupt_table_is_internal_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path)
        (root / "scripts" / "tools.json").write_text("{oops", encoding="utf-8")
        assert main(["--repo", str(root)]) == 3
        assert "failed to parse tool map" in capsys.readouterr().err
        assert not _prompts(root).exists()

    def test_non_utf8_source_is_internal_error(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        (root / "commands" / "gsd" / "bad.md").write_bytes(b"\xff\xfe bad")
        assert main(["--repo", str(root)]) == 3

    def test_out_dir_escape_is_rejected(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        root = _project(tmp_path)
        assert main(["--repo", str(root), "--out-dir", "../elsewhere"]) == 3
        assert "ERROR:" in capsys.readouterr().err

    def test_missing_repo_is_internal_error(self, tmp_path: Path) -> None:
        assert main(["--repo", str(tmp_path / "nope")]) == 3

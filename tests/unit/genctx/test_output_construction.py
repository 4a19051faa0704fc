from __future__ import annotations

from pathlib import Path

import pytest

from genctx.config import RunStats
from genctx.exceptions import OutputWriteError
from genctx.output_construction import GenerationReport, build_document, format_stats, write_document
from genctx.pipeline import render_block
from genctx.settings import Options, ResolvedConfig


def _sections(doc: str) -> list[str]:
    return [line for line in doc.splitlines() if line.startswith("## ")]


@pytest.mark.unit
def test_build_document_section_order() -> None:
    config = ResolvedConfig()
    blocks = [render_block("a.py", "python", "a = 1\n", 2), render_block("b.py", "python", "b = 2\n", 2)]

    doc = build_document("proj", config, "proj/\n├── a.py\n└── b.py\n", blocks, RunStats(), generated_at="T0")

    assert doc.startswith("# Project Context: proj\n\nGenerated: T0 via genctx\n")
    assert _sections(doc) == ["## Configuration", "## Directory Structure", "## File Contents"]
    assert doc.index("### `a.py`") < doc.index("### `b.py`")
    assert '"maxFileSizeKB": 2048' in doc
    assert "Context Limit Reached" not in doc


@pytest.mark.unit
def test_build_document_appends_truncation_notice() -> None:
    config = ResolvedConfig(options=Options(max_total_tokens=1000))
    stats = RunStats(included=1, total_estimated_tokens=1200, budget_reached=True)

    doc = build_document("proj", config, "proj/\n", [], stats, generated_at="T0")

    assert doc.rstrip().endswith("Further files were omitted to stay within 1,000 tokens.")
    assert "> **Context Limit Reached**" in doc


@pytest.mark.unit
def test_write_document_creates_parents(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "ctx.md"

    write_document(out, "hello\n")

    assert out.read_text(encoding="utf-8") == "hello\n"


@pytest.mark.unit
def test_write_document_to_directory_fails(tmp_path: Path) -> None:
    target = tmp_path / "already_a_dir"
    target.mkdir()

    with pytest.raises(OutputWriteError) as exc:
        write_document(target, "hello\n")

    assert exc.value.file == target


@pytest.mark.unit
def test_format_stats_lists_skips_and_options(tmp_path: Path) -> None:
    stats = RunStats(files_discovered=5, included=3, skipped_by_size=1, skipped_binary=1, total_estimated_tokens=42)
    report = GenerationReport(
        output_path=tmp_path / "ctx.md",
        stats=stats,
        document_tokens=100,
        output_size_kb=0.5,
        full_tree=True,
        strip_comments=True,
        strip_blank_lines=False,
    )

    text = format_stats(report)

    assert "GENERATION STATISTICS" in text
    assert "Files Included: 3 / 5" in text
    assert "Skipped (size): 1" in text
    assert "Skipped (binary): 1" in text
    assert "Skipped (token cap)" not in text
    assert "Full (All Files)" in text
    assert "Comments Stripped" in text
    assert "Empty Lines Removed" not in text
    assert text.endswith("\n")

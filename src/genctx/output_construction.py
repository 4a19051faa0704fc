from __future__ import annotations

import io
import json
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from genctx.config import FENCE_CHAR, RunStats
from genctx.discovery import resolve_files
from genctx.exceptions import OutputWriteError
from genctx.file_manipulation import (
    estimate_tokens,
    fence_length,
    format_file_size,
    now_iso,
    order_paths,
    relpath,
    render_tree,
)
from genctx.logging import logger
from genctx.pipeline import run_pipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

    from genctx.config import RenderedBlock
    from genctx.settings import ResolvedConfig

TOOL_NAME = "genctx"
SUMMARY_WIDTH = 60


class GenerationReport(BaseModel):
    """What a generation run produced, for the operator-facing summary."""

    model_config = ConfigDict(frozen=True)

    output_path: Path
    stats: RunStats
    document_tokens: int
    output_size_kb: float
    full_tree: bool
    strip_comments: bool
    strip_blank_lines: bool


def _fenced(text: str, language: str = "") -> str:
    fence = FENCE_CHAR * fence_length(text)
    body = text if text.endswith("\n") else text + "\n"
    return f"{fence}{language}\n{body}{fence}\n"


def build_document(
    project_name: str,
    config: ResolvedConfig,
    tree: str,
    blocks: Sequence[RenderedBlock],
    stats: RunStats,
    *,
    generated_at: str | None = None,
) -> str:
    """Build the context document.

    The document holds, in order: a title and timestamp, a JSON echo of the
    configuration, the directory tree, every rendered block in pipeline
    order and, if the total token budget stopped the run, a truncation
    notice.

    Args:
        project_name (str): name shown in the title
        config (ResolvedConfig): the configuration to echo
        tree (str): the rendered directory tree
        blocks (Sequence[RenderedBlock]): the accepted files, in order
        stats (RunStats): the run statistics
        generated_at (str | None): timestamp to print; defaults to now

    Returns:
        str: the context document
    """
    out = io.StringIO()
    out.write(f"# Project Context: {project_name}\n\n")
    out.write(f"Generated: {generated_at or now_iso()} via {TOOL_NAME}\n\n")

    out.write("## Configuration\n")
    out.write(_fenced(json.dumps(config.echo(), indent=2, ensure_ascii=False), "json"))
    out.write("\n")

    out.write("## Directory Structure\n\n")
    out.write(_fenced(tree))
    out.write("\n")

    out.write("## File Contents\n\n")
    for block in blocks:
        out.write(block.text)

    if stats.budget_reached:
        out.write(
            f"\n> **Context Limit Reached**: Further files were omitted to stay within "
            f"{config.options.max_total_tokens:,} tokens.\n",
        )
    return out.getvalue()


def write_document(path: Path, text: str) -> None:
    """Write the context document, overwriting any previous one.

    Args:
        path (Path): destination file
        text (str): document content

    Raises:
        OutputWriteError: if the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(file=path, reason=str(e)) from e


def format_stats(report: GenerationReport) -> str:
    """Format the human-readable statistics summary.

    Args:
        report (GenerationReport): the generation report

    Returns:
        str: a multi-line summary, newline terminated
    """
    s = report.stats
    rule = "=" * SUMMARY_WIDTH
    lines = [
        rule,
        "GENERATION STATISTICS",
        rule,
        f"  - Output File:    {report.output_path} ({format_file_size(report.output_size_kb)})",
        f"  - Token Estimate: ~{report.document_tokens:,} (file contents ~{s.total_estimated_tokens:,})",
        f"  - Files Included: {s.included} / {s.files_discovered}",
    ]
    skipped = {
        "size": s.skipped_by_size,
        "token cap": s.skipped_by_token_cap,
        "binary": s.skipped_binary,
        "read error": s.skipped_read_error,
    }
    for reason, count in skipped.items():
        if count:
            lines.append(f"  - Skipped ({reason}): {count}")
    if s.budget_reached:
        lines.append("  - Budget:         total token limit reached, remaining files omitted")
    lines.append(f"  - Tree Mode:      {'Full (All Files)' if report.full_tree else 'Context Only'}")
    if report.strip_comments:
        lines.append("  - Optimization:   Comments Stripped")
    if report.strip_blank_lines:
        lines.append("  - Optimization:   Empty Lines Removed")
    lines.append(rule)
    return "\n".join(lines) + "\n"


def generate_context_file(
    config: ResolvedConfig,
    root: Path,
    *,
    gitignore_patterns: Sequence[str] | None = None,
) -> GenerationReport | None:
    """Run discovery, filtering and assembly, then write the context document.

    Args:
        config (ResolvedConfig): the resolved configuration
        root (Path): the project root
        gitignore_patterns (Sequence[str] | None): patterns to use instead of reading ``root/.gitignore``

    Raises:
        OutputWriteError: if the document cannot be written

    Returns:
        GenerationReport | None: the report, or None when no file was found
    """
    root = root.resolve()
    discovered = resolve_files(config, root, gitignore_patterns=gitignore_patterns)
    if not discovered:
        logger.warning("no_files_found", root=str(root))
        return None

    ordered = order_paths(discovered, root)
    result = run_pipeline(ordered, root, config.options)

    if config.options.full_tree:
        tree_paths = [relpath(p, root) for p in ordered]
    else:
        tree_paths = result.accepted
    tree = render_tree(root.name, tree_paths)

    document = build_document(root.name, config, tree, result.blocks, result.stats)
    output = config.output_path if config.output_path.is_absolute() else root / config.output_path
    write_document(output, document)

    report = GenerationReport(
        output_path=output,
        stats=result.stats,
        document_tokens=estimate_tokens(document, config.options.chars_per_token),
        output_size_kb=len(document.encode("utf-8")) / 1024,
        full_tree=config.options.full_tree,
        strip_comments=config.options.strip_comments,
        strip_blank_lines=config.options.strip_blank_lines,
    )
    logger.info("context_written", output=str(output), **result.stats.model_dump())
    return report

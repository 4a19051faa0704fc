"""Content filter pipeline: turn candidate files into rendered blocks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from genctx.comments import strip_comments
from genctx.config import EMPTY_FILE_MARKER, FENCE_CHAR, CandidateFile, RenderedBlock, RunStats
from genctx.exceptions import FileAccessError
from genctx.file_manipulation import estimate_tokens, fence_length, read_text, relpath, strip_blank_lines
from genctx.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from genctx.config import FileType
    from genctx.settings import Options

    CommentStripper = Callable[[str, FileType], str]


class PipelineResult(BaseModel):
    """Output of one pipeline run.

    Attributes:
        blocks: rendered blocks of the accepted files, in processing order.
        accepted: relative paths of the accepted files, in the same order.
        stats: counters of the run.
    """

    model_config = ConfigDict(frozen=True)

    blocks: list[RenderedBlock] = Field(default_factory=list)
    accepted: list[str] = Field(default_factory=list)
    stats: RunStats = Field(default_factory=RunStats)


def transform_content(
    text: str,
    file_type: FileType,
    options: Options,
    strip: CommentStripper = strip_comments,
) -> str:
    """Apply the configured transformations to a file's content.

    Comments are stripped before blank lines so that lines emptied by the
    comment stripper are removed too.

    Args:
        text (str): the raw file content
        file_type (FileType): language hint for the comment stripper
        options (Options): the run options
        strip (CommentStripper): comment stripping function

    Returns:
        str: the transformed content
    """
    if options.strip_comments:
        text = strip(text, file_type)
    if options.strip_blank_lines:
        text = strip_blank_lines(text)
    return text


def render_block(rel: str, language: str, content: str, tokens: int) -> RenderedBlock:
    """Render the "File Contents" entry of one accepted file.

    Args:
        rel (str): path relative to the project root
        language (str): fence language tag
        content (str): the transformed content
        tokens (int): the estimated token count of ``content``

    Returns:
        RenderedBlock: header plus fenced content
    """
    n = fence_length(content)
    fence = FENCE_CHAR * n
    body = content if content.strip() else EMPTY_FILE_MARKER
    text = f"### `{rel}`\n\n{fence}{language}\n{body}\n{fence}\n\n"
    return RenderedBlock(rel=rel, fence_length=n, tokens=tokens, text=text)


def load_candidate(candidate: CandidateFile, options: Options, strip: CommentStripper) -> str:
    """Read and transform a candidate, wrapping any OS error.

    Raises:
        FileAccessError: if the file cannot be read
    """
    try:
        raw = read_text(candidate.path)
    except OSError as e:
        raise FileAccessError(file=candidate.path, reason=str(e)) from e
    return transform_content(raw, candidate.file_type, options, strip)


def run_pipeline(
    files: Sequence[Path],
    root: Path,
    options: Options,
    *,
    strip: CommentStripper = strip_comments,
) -> PipelineResult:
    """Filter and render files, strictly in the given order.

    For each file: total budget gate (hard stop), binary sniff, size gate,
    read and transform, per-file token gate, then accept. A file that cannot
    be read is counted and skipped; the loop carries on.

    Args:
        files (Sequence[Path]): absolute file paths, already ordered
        root (Path): the project root
        options (Options): the run options
        strip (CommentStripper): comment stripping function

    Returns:
        PipelineResult: rendered blocks, accepted paths and statistics
    """
    stats = RunStats(files_discovered=len(files))
    blocks: list[RenderedBlock] = []
    accepted: list[str] = []

    for path in files:
        if options.max_total_tokens > 0 and stats.total_estimated_tokens >= options.max_total_tokens:
            stats.budget_reached = True
            logger.warning(
                "token_budget_reached",
                total_tokens=stats.total_estimated_tokens,
                budget=options.max_total_tokens,
            )
            break

        candidate = CandidateFile(path=path, rel=relpath(path, root))
        try:
            if candidate.is_binary:
                stats.skipped_binary += 1
                logger.info("file_skipped", file=candidate.rel, reason="binary")
                continue
            if candidate.size_kb > options.max_file_size_kb:
                stats.skipped_by_size += 1
                logger.info("file_skipped", file=candidate.rel, reason="size", size_kb=round(candidate.size_kb, 2))
                continue
            content = load_candidate(candidate, options, strip)
        except OSError as e:
            stats.skipped_read_error += 1
            logger.warning("file_unreadable", file=candidate.rel, error=str(e))
            continue
        except FileAccessError as e:
            stats.skipped_read_error += 1
            logger.warning("file_unreadable", file=candidate.rel, error=e.reason)
            continue

        tokens = estimate_tokens(content, options.chars_per_token)
        if options.max_file_tokens > 0 and tokens > options.max_file_tokens:
            stats.skipped_by_token_cap += 1
            logger.info("file_skipped", file=candidate.rel, reason="token_cap", tokens=tokens)
            continue

        stats.included += 1
        stats.total_estimated_tokens += tokens
        blocks.append(render_block(candidate.rel, str(candidate.file_type), content, tokens))
        accepted.append(candidate.rel)

    return PipelineResult(blocks=blocks, accepted=accepted, stats=stats)

"""Resolve include/exclude rules into the concrete list of candidate files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from genctx.config import BUILTIN_DENYLIST, MANDATORY_EXCLUDES, DenyRule
from genctx.exceptions import DiscoveryError
from genctx.file_manipulation import escape_glob, expand_braces, normalize_globs, relpath
from genctx.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from genctx.settings import ResolvedConfig

GITIGNORE_NAME = ".gitignore"


def parse_gitignore(path: Path) -> list[str]:
    """Read a ``.gitignore``-style file into plain exclusion patterns.

    Blank lines and ``#`` comments are dropped, and a leading ``/`` is
    removed so the pattern is relative to the project root.

    Args:
        path (Path): the ignore file to read

    Returns:
        list[str]: the patterns, in file order; empty if the file is missing or unreadable
    """
    if not path.is_file():
        return []
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("gitignore_unreadable", file=str(path), error=str(e))
        return []
    patterns: list[str] = []
    for line in raw.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        patterns.append(s.removeprefix("/"))
    return patterns


def rule_is_overridden(rule: DenyRule, includes: Iterable[str]) -> bool:
    """Check if a user include pattern explicitly asks for what ``rule`` hides.

    ``*.ext`` rules are overridden by any include ending with ``.ext``;
    other rules by any include ending with the literal rule pattern.
    Non-suppressible rules are never overridden.

    Args:
        rule (DenyRule): the denylist entry
        includes (Iterable[str]): include patterns, brace groups already expanded

    Returns:
        bool: True if the rule must be dropped from the exclude set
    """
    if not rule.suppressible:
        return False
    suffix = rule.pattern[1:] if rule.pattern.startswith("*.") else rule.pattern
    return any(inc.endswith(suffix) for inc in includes)


def active_denylist(
    includes: Sequence[str],
    rules: Sequence[DenyRule] = BUILTIN_DENYLIST,
) -> list[str]:
    """Return the denylist patterns that stay active for the given includes.

    Args:
        includes (Sequence[str]): the user include patterns
        rules (Sequence[DenyRule]): the built-in rules to evaluate

    Returns:
        list[str]: the patterns of the rules that are not overridden
    """
    expanded = {e for inc in includes for e in expand_braces(inc)} | set(includes)
    return [r.pattern for r in rules if not rule_is_overridden(r, expanded)]


def build_exclude_set(
    config: ResolvedConfig,
    root: Path,
    gitignore_patterns: Sequence[str] | None = None,
) -> list[str]:
    """Merge every exclusion source into one deduplicated pattern list.

    Sources are the user excludes, the gitignore patterns (when enabled),
    the active built-in denylist, the output document itself and, last, the
    mandatory excludes.

    Args:
        config (ResolvedConfig): the resolved configuration
        root (Path): the project root
        gitignore_patterns (Sequence[str] | None): patterns to use instead of reading ``root/.gitignore``

    Returns:
        list[str]: the exclude patterns, first occurrence order kept so
            gitignore negations still apply to the patterns before them
    """
    patterns: list[str] = normalize_globs(config.exclude)
    if config.options.use_gitignore:
        gi = gitignore_patterns if gitignore_patterns is not None else parse_gitignore(root / GITIGNORE_NAME)
        patterns.extend(normalize_globs(gi))
    patterns.extend(active_denylist(config.include))

    output = config.output_path if config.output_path.is_absolute() else root / config.output_path
    out_rel = relpath(output.resolve(), root.resolve())
    if not Path(out_rel).is_absolute():
        patterns.append("/" + escape_glob(out_rel))

    # GitIgnoreSpec is last-match-wins: mandatory excludes stay last
    mandatory = [r.pattern for r in MANDATORY_EXCLUDES]
    return [p for p in dict.fromkeys(patterns) if p not in mandatory] + mandatory


def _compile(patterns: Sequence[str]) -> pathspec.GitIgnoreSpec:
    lines = [e for p in patterns for e in expand_braces(p)]
    return pathspec.GitIgnoreSpec.from_lines(lines)


def glob_files(root: Path, includes: Sequence[str], ignore: Sequence[str]) -> list[Path]:
    """Walk ``root`` and return the regular files matching ``includes`` but not ``ignore``.

    Patterns follow gitignore wildmatch rules with ``{a,b}`` groups
    expanded. Dotfiles are matched like any other file and excluded
    directories are not descended into.

    Args:
        root (Path): the directory to walk
        includes (Sequence[str]): include patterns, relative to root
        ignore (Sequence[str]): exclude patterns, relative to root, already normalized
            (backslashes are glob escapes here, see ``build_exclude_set``)

    Raises:
        DiscoveryError: if a pattern is invalid or the walk fails

    Returns:
        list[Path]: absolute file paths, sorted lexicographically
    """
    try:
        include_spec = _compile(normalize_globs(includes))
        ignore_spec = _compile([p for p in ignore if p])
    except ValueError as e:
        raise DiscoveryError(root=root, reason=f"invalid pattern: {e}") from e

    def on_error(err: OSError) -> None:
        raise DiscoveryError(root=root, reason=str(err)) from err

    found: list[Path] = []
    for current, dirs, files in os.walk(root, onerror=on_error):
        base = Path(current)
        dirs[:] = [d for d in dirs if not ignore_spec.match_file(relpath(base / d, root) + "/")]
        for name in files:
            p = base / name
            rel = relpath(p, root)
            if ignore_spec.match_file(rel) or not include_spec.match_file(rel):
                continue
            if p.is_file():
                found.append(p.absolute())
    return sorted(set(found), key=lambda p: p.as_posix())


def resolve_files(
    config: ResolvedConfig,
    root: Path,
    *,
    gitignore_patterns: Sequence[str] | None = None,
) -> list[Path]:
    """Resolve the configuration into the list of candidate files.

    Discovery failures are not fatal: they are logged and an empty list is
    returned, which callers report as "no files found".

    Args:
        config (ResolvedConfig): the resolved configuration
        root (Path): the project root
        gitignore_patterns (Sequence[str] | None): patterns to use instead of reading ``root/.gitignore``

    Returns:
        list[Path]: absolute file paths, sorted lexicographically
    """
    ignore = build_exclude_set(config, root, gitignore_patterns)
    logger.debug("discovery_started", root=str(root), include=config.include, ignore_count=len(ignore))
    try:
        files = glob_files(root, config.include, ignore)
    except DiscoveryError as e:
        logger.warning("discovery_failed", root=str(e.root), reason=e.reason)
        return []
    logger.info("discovery_finished", root=str(root), files=len(files))
    return files

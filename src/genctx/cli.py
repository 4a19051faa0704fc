"""
genctx: pack the current project into one context document for an LLM.

Overview
--------
The tool resolves include/exclude globs (plus ``.gitignore`` and a built-in
denylist of binary, secret and lock files) into a file list, filters it by
content (binary sniff, size and token budgets), optionally strips comments
and blank lines, and writes a markdown document with:

- a JSON echo of the configuration,
- the directory tree,
- every accepted file in a fence that cannot be closed by its content.

Configuration lives in ``genctx.config.json`` at the project root. It is
created with defaults on first use and updated by the command-line
modifiers below.

Usage
-----
    genctx                                   # run with the saved configuration
    genctx --preset python --remove-comments # update the config, then run
    genctx --include "**/*.log"              # include files the denylist hides
    genctx --max-total-tokens 100000 --tree-full
    genctx --init                            # only write the configuration
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from genctx import __version__
from genctx.config_file import (
    CONFIG_FILE_NAME,
    apply_cli_modifications,
    default_config,
    load_config,
    save_config,
)
from genctx.exceptions import GenctxError, OutputWriteError
from genctx.logging import logger, setup_logging
from genctx.output_construction import format_stats, generate_context_file
from genctx.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    p = argparse.ArgumentParser(
        prog="genctx",
        description="Pack a project into a single context document for LLMs.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--root", type=Path, default=Path.cwd(), help="Project root.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")

    manage = p.add_argument_group("management")
    manage.add_argument("--reset", action="store_true", help="Reset configuration to defaults.")
    manage.add_argument("--init", action="store_true", help="Initialize/update the config file only.")

    select = p.add_argument_group("selection")
    select.add_argument("-p", "--preset", action="extend", nargs="+", default=[], help="Apply tech presets.")
    select.add_argument(
        "-i",
        "--include",
        action="extend",
        nargs="+",
        default=[],
        help="Add include patterns (e.g. src/**/*).",
    )
    select.add_argument("-a", "--add-exclude", action="extend", nargs="+", default=[], help="Add exclude patterns.")
    select.add_argument(
        "-r",
        "--remove-exclude",
        action="extend",
        nargs="+",
        default=[],
        help="Remove exclude patterns.",
    )
    select.add_argument("--add-ext", action="extend", nargs="+", default=[], help="Add extensions (e.g. .ts).")

    limits = p.add_argument_group("settings")
    limits.add_argument("-o", "--output", type=str, default=None, help="Output filename.")
    limits.add_argument("--max-size", type=int, default=None, help="Max file size (KB).")
    limits.add_argument("--max-total-tokens", type=int, default=None, help="Total token budget (0 = unlimited).")
    limits.add_argument("--max-file-tokens", type=int, default=None, help="Per-file token cap (0 = unlimited).")
    limits.add_argument(
        "--use-gitignore",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Respect .gitignore rules.",
    )

    optim = p.add_argument_group("optimizations")
    optim.add_argument(
        "--remove-comments",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Strip code comments to save tokens.",
    )
    optim.add_argument(
        "--remove-empty-lines",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Remove empty vertical whitespace.",
    )
    optim.add_argument(
        "--tree-full",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show the complete directory structure (including skipped files).",
    )
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command-line arguments into settings."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return Settings(**vars(args))
    except ValidationError as e:
        parser.error(str(e))


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the ``genctx`` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file, force=True)

    root = settings.root.resolve()
    if not root.is_dir():
        logger.error("invalid_root", root=str(root))
        sys.stderr.write(f"Error: invalid directory '{root}'\n")
        return 1

    config = None if settings.reset else load_config(root)
    if config is None:
        config = default_config()
        if save_config(root, config):
            sys.stdout.write(f"Configuration written to {CONFIG_FILE_NAME}\n")

    if settings.has_modifiers:
        config, modified = apply_cli_modifications(config, settings)
        if modified:
            save_config(root, config)

    if settings.init:
        sys.stdout.write("Configuration initialized.\n")
        return 0

    try:
        report = generate_context_file(config, root)
    except OutputWriteError as e:
        logger.error("output_write_failed", file=str(e.file), reason=e.reason)
        sys.stderr.write(f"Error: {e.message} {e.file}: {e.reason}\n")
        return 1
    except GenctxError as e:
        logger.error("generation_failed", error=repr(e))
        sys.stderr.write(f"Error: {e!r}\n")
        return 1

    if report is None:
        sys.stdout.write("No files found. Check your configuration.\n")
        return 0

    sys.stdout.write(format_stats(report))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

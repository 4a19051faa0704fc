from __future__ import annotations

import io
import math
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from genctx.config import FENCE_CHAR, MIN_FENCE_LENGTH, NO_FILES_MARKER, PRIORITY_NAMES

if TYPE_CHECKING:
    from collections.abc import Sequence

_BRACE_GROUP = re.compile(r"(?<!\\)\{([^{}]*)\}")
_GLOB_SPECIAL = re.compile(r"[[*?{]")


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Normalize a sequence of glob patterns by stripping whitespace and
    replacing backslashes with forward slashes. Empty patterns are dropped.

    Args:
        globs (Sequence[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return out


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives of a glob pattern.

    Groups are expanded left to right, nested groups from the inside out.
    A group without a comma is left as is.

    Args:
        pattern (str): a glob pattern such as ``src/**/*.{js,ts}``

    Returns:
        list[str]: the expanded patterns, in order, without duplicates
    """
    for match in _BRACE_GROUP.finditer(pattern):
        options = match.group(1).split(",")
        if len(options) < 2:  # noqa: PLR2004
            continue
        head, tail = pattern[: match.start()], pattern[match.end() :]
        expanded: list[str] = []
        for opt in options:
            expanded.extend(expand_braces(head + opt + tail))
        return list(dict.fromkeys(expanded))
    return [pattern]


def escape_glob(text: str) -> str:
    """Escape a literal path so it can be used as a glob pattern.

    Wildcards, ``[`` and ``{`` get a backslash escape. An escaped ``{`` is
    also left alone by brace expansion.
    """
    return _GLOB_SPECIAL.sub(lambda m: "\\" + m.group(0), text)


def split_lines(text: str) -> list[str]:
    """Split text on ``\\n`` only, keeping the line ends.

    Unlike ``str.splitlines`` this does not break on form feeds or other
    Unicode line separators, so line numbers match those of ``tokenize``.
    """
    return io.StringIO(text).readlines()


def read_text(path: Path) -> str:
    """Read a file as UTF-8 text, replacing undecodable bytes.

    Args:
        path (Path): the file path to read

    Returns:
        str: the file content
    """
    with path.open("r", encoding="utf-8", errors="replace") as f:
        return f.read()


def strip_blank_lines(text: str) -> str:
    """Remove lines that are empty or contain only whitespace.

    Args:
        text (str): the text to clean

    Returns:
        str: the text without blank lines
    """
    return "".join(ln for ln in split_lines(text) if ln.strip())


def estimate_tokens(text: str, chars_per_token: float = 3.2) -> int:
    """Estimate the token count of a text.

    This is a heuristic (code is denser than prose), not a tokenizer.

    Args:
        text (str): the text to measure
        chars_per_token (float): average number of characters per token

    Returns:
        int: ``ceil(len(text) / chars_per_token)``
    """
    return math.ceil(len(text) / chars_per_token)


def longest_run(text: str, char: str = FENCE_CHAR) -> int:
    """Return the length of the longest run of ``char`` in ``text`` (0 if none)."""
    runs = re.findall(f"{re.escape(char)}+", text)
    return max((len(r) for r in runs), default=0)


def fence_length(text: str, minimum: int = MIN_FENCE_LENGTH) -> int:
    """Compute a fence length that cannot be closed by the embedded text.

    The fence is one backtick longer than the longest backtick run inside
    ``text``, and never shorter than ``minimum``.

    Args:
        text (str): the content to embed
        minimum (int): the shortest fence to use

    Returns:
        int: the number of backticks to use for the fence
    """
    return max(minimum, longest_run(text) + 1)


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    Directories come before files at every level, both sorted.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): the list of file paths relative to the root, using POSIX separators (e.g. "src/main.py")

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    rels = {p.strip("/").replace("\\", "/") for p in rel_paths if p.strip()}
    tree: dict[str, Any] = {}
    for rp in rels:
        cur = tree
        parts = rp.split("/")
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                cur.setdefault("__files__", set()).add(part)
            else:
                cur = cur.setdefault(part, {})

    lines: list[str] = [f"{root_name}/"]

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted(k for k in node if k != "__files__")
        files = sorted(node.get("__files__", set()))
        entries: list[tuple[str, str, Any]] = []
        entries.extend(("dir", d, node[d]) for d in dirs)
        entries.extend(("file", f, None) for f in files)
        for idx, (kind, name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name + ("/" if kind == "dir" else ""))
            if kind == "dir":
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(tree, "")
    return lines


def render_tree(root_name: str, rel_paths: Sequence[str]) -> str:
    """Render the directory tree as text, or a placeholder when there is nothing to show.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): file paths relative to the root

    Returns:
        str: the tree, one entry per line, newline terminated
    """
    if not rel_paths:
        return NO_FILES_MARKER + "\n"
    return "\n".join(build_tree_lines(root_name, rel_paths)) + "\n"


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def order_paths(paths: Sequence[Path], root: Path) -> list[Path]:
    """Order files for the context document.

    A file whose base name case-insensitively matches a priority name
    (``README.md``) comes first; every other file follows in
    case-insensitive order of its relative path.

    Args:
        paths (Sequence[Path]): absolute file paths
        root (Path): the project root

    Returns:
        list[Path]: the ordered paths
    """

    def key(p: Path) -> tuple[int, str, str]:
        rel = relpath(p, root)
        bucket = 0 if p.name.lower() in PRIORITY_NAMES else 1
        return (bucket, rel.lower(), rel)

    return sorted(paths, key=key)


def format_file_size(size_kb: float) -> str:
    """Format a size in KB for humans (``0.42 KB``, ``3.10 MB``)."""
    if 0 < size_kb < 0.01:  # noqa: PLR2004
        return "< 0.01 KB"
    if size_kb < 1024:  # noqa: PLR2004
        return f"{size_kb:.2f} KB"
    return f"{size_kb / 1024:.2f} MB"

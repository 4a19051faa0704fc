"""Language-aware comment stripping.

``strip_comments`` is a pure function: text and a language hint in, text out.
Comment markers inside string literals are left alone. Stripping never
removes the newline of a line, so line structure is preserved and blank
lines left behind can be dropped afterwards by blank-line removal.
"""

from __future__ import annotations

import io
import re
import tokenize
from typing import TYPE_CHECKING

from genctx.config import (
    COMMENT_STRIPPERS,
    CommentStyle,
    FileType,
    comment_style,
    register_comment_stripper,
)
from genctx.file_manipulation import split_lines

if TYPE_CHECKING:
    from collections.abc import Callable

_MARKUP_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_INI_COMMENT = re.compile(r"^\s*[;#]")


def _cut_line_comment(line: str, marker: str, quotes: str) -> str:
    """Cut ``line`` at the first ``marker`` that is not inside a quoted string."""
    quote = ""
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in quotes:
            quote = ch
        elif line.startswith(marker, i):
            return line[:i].rstrip()
        i += 1
    return line


def _map_lines(text: str, func: Callable[[str], str]) -> str:
    out: list[str] = []
    for ln in split_lines(text):
        eol = "\r\n" if ln.endswith("\r\n") else "\n" if ln.endswith("\n") else ""
        body = ln[: len(ln) - len(eol)]
        out.append(func(body) + eol)
    return "".join(out)


@register_comment_stripper(FileType.PYTHON)
def strip_python_comments(text: str) -> str:
    """Strip ``#`` comments from Python source using ``tokenize``.

    Docstrings are kept, they are part of the program, and so is a
    shebang on the first line. Falls back to the original text when the
    source cannot be tokenized.

    Args:
        text (str): Python source code.

    Returns:
        str: the source without comments.
    """
    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(text).readline))
    except (tokenize.TokenError, SyntaxError):
        return text

    cuts: dict[int, int] = {}
    for tok in tokens:
        if tok.type != tokenize.COMMENT:
            continue
        row, col = tok.start
        if row == 1 and tok.string.startswith("#!"):
            continue
        cuts[row] = col

    lines = split_lines(text)
    for row, col in cuts.items():
        ln = lines[row - 1]
        body = ln.rstrip("\r\n")
        lines[row - 1] = body[:col].rstrip() + ln[len(body) :]
    return "".join(lines)


@register_comment_stripper(CommentStyle.HASH)
def strip_hash_comments(text: str) -> str:
    """Strip ``#`` comments (shell, YAML, TOML, Ruby, Makefile).

    A ``#`` only starts a comment at the beginning of a line or after
    whitespace, so ``$#`` or ``${#var}`` in shell scripts survive.
    """

    def strip(line: str) -> str:
        if line.startswith("#!"):
            return line
        quote = ""
        for i, ch in enumerate(line):
            if quote:
                if ch == quote:
                    quote = ""
            elif ch in "\"'":
                quote = ch
            elif ch == "#" and (i == 0 or line[i - 1] in " \t"):
                return line[:i].rstrip()
        return line

    return _map_lines(text, strip)


@register_comment_stripper(CommentStyle.C_LIKE)
def strip_c_comments(text: str) -> str:
    """Strip ``//`` and ``/* */`` comments from C-family source.

    String, character and template literals are copied verbatim. Block
    comments keep their newlines.

    Args:
        text (str): source code.

    Returns:
        str: the source without comments.
    """
    out = io.StringIO()
    i = 0
    n = len(text)
    quote = ""
    while i < n:
        ch = text[i]
        if quote:
            out.write(ch)
            if ch == "\\" and i + 1 < n:
                out.write(text[i + 1])
                i += 2
                continue
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = ""
            i += 1
            continue
        if ch in "\"'`":
            quote = ch
            out.write(ch)
            i += 1
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            block = text[i:] if end == -1 else text[i : end + 2]
            out.write("\n" * block.count("\n"))
            i = n if end == -1 else end + 2
            continue
        out.write(ch)
        i += 1
    return _map_lines(out.getvalue(), lambda line: line.rstrip(" \t"))


@register_comment_stripper(FileType.CSS)
def strip_css_comments(text: str) -> str:
    """Strip ``/* */`` comments only; ``//`` is not a comment in plain CSS."""

    def drop(match: re.Match[str]) -> str:
        return "\n" * match.group(0).count("\n")

    return re.sub(r"/\*.*?\*/", drop, text, flags=re.DOTALL)


@register_comment_stripper(CommentStyle.MARKUP)
def strip_markup_comments(text: str) -> str:
    """Strip ``<!-- -->`` comments from HTML, XML, Markdown and components."""

    def drop(match: re.Match[str]) -> str:
        return "\n" * match.group(0).count("\n")

    return _MARKUP_COMMENT.sub(drop, text)


@register_comment_stripper(CommentStyle.DASH)
def strip_dash_comments(text: str) -> str:
    """Strip ``--`` line comments (SQL, Lua)."""
    return _map_lines(text, lambda line: _cut_line_comment(line, "--", "\"'"))


@register_comment_stripper(CommentStyle.SEMICOLON)
def strip_ini_comments(text: str) -> str:
    """Blank out full-line ``;`` and ``#`` comments of INI-like files."""
    return _map_lines(text, lambda line: "" if _INI_COMMENT.match(line) else line)


def strip_comments(text: str, language: FileType | str) -> str:
    """Strip comments from ``text`` according to a language hint.

    Args:
        text (str): the file content.
        language (FileType | str): the file type (or its string value).

    Returns:
        str: the content without comments, unchanged for unknown languages.
    """
    try:
        file_type = FileType(language)
    except ValueError:
        return text
    stripper = COMMENT_STRIPPERS.get(file_type) or COMMENT_STRIPPERS.get(comment_style(file_type))
    if stripper is None:
        return text
    return stripper(text)

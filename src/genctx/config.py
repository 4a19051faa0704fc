from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from functools import cached_property, wraps
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    CommentStripperFn = Callable[[str], str]

BINARY_SNIFF_BYTES = 512
MIN_FENCE_LENGTH = 3
FENCE_CHAR = "`"
EMPTY_FILE_MARKER = "[EMPTY FILE]"
NO_FILES_MARKER = "[No files to display]"
PRIORITY_NAMES = frozenset({"readme.md"})


class FileType(StrEnum):
    """Language classification used for fence tags and comment stripping.

    This is a heuristic based on file extensions and a few well-known file
    names; it never looks at the content.
    """

    PLAINTEXT = auto()
    BASH = auto()
    C = auto()
    CPP = auto()
    CSHARP = auto()
    CSS = auto()
    DOCKERFILE = auto()
    GO = auto()
    HTML = auto()
    INI = auto()
    JAVA = auto()
    JAVASCRIPT = auto()
    JSON = auto()
    JSX = auto()
    KOTLIN = auto()
    LUA = auto()
    MAKEFILE = auto()
    MARKDOWN = auto()
    PHP = auto()
    PYTHON = auto()
    RUBY = auto()
    RUST = auto()
    SCSS = auto()
    SQL = auto()
    SVELTE = auto()
    SWIFT = auto()
    TOML = auto()
    TSX = auto()
    TYPESCRIPT = auto()
    VUE = auto()
    XML = auto()
    YAML = auto()


class CommentStyle(StrEnum):
    """Comment syntax family of a language."""

    NONE = auto()
    HASH = auto()
    C_LIKE = auto()
    MARKUP = auto()
    DASH = auto()
    SEMICOLON = auto()


EXT2TYPE: dict[str, FileType] = {
    ".bash": FileType.BASH,
    ".c": FileType.C,
    ".cc": FileType.CPP,
    ".cfg": FileType.INI,
    ".cjs": FileType.JAVASCRIPT,
    ".conf": FileType.INI,
    ".cpp": FileType.CPP,
    ".cs": FileType.CSHARP,
    ".css": FileType.CSS,
    ".cxx": FileType.CPP,
    ".go": FileType.GO,
    ".h": FileType.C,
    ".hpp": FileType.CPP,
    ".htm": FileType.HTML,
    ".html": FileType.HTML,
    ".ini": FileType.INI,
    ".java": FileType.JAVA,
    ".js": FileType.JAVASCRIPT,
    ".json": FileType.JSON,
    ".jsx": FileType.JSX,
    ".kt": FileType.KOTLIN,
    ".kts": FileType.KOTLIN,
    ".lua": FileType.LUA,
    ".markdown": FileType.MARKDOWN,
    ".md": FileType.MARKDOWN,
    ".mjs": FileType.JAVASCRIPT,
    ".php": FileType.PHP,
    ".py": FileType.PYTHON,
    ".pyi": FileType.PYTHON,
    ".rb": FileType.RUBY,
    ".rs": FileType.RUST,
    ".scss": FileType.SCSS,
    ".sh": FileType.BASH,
    ".sql": FileType.SQL,
    ".svelte": FileType.SVELTE,
    ".swift": FileType.SWIFT,
    ".toml": FileType.TOML,
    ".ts": FileType.TYPESCRIPT,
    ".tsx": FileType.TSX,
    ".vue": FileType.VUE,
    ".xml": FileType.XML,
    ".yaml": FileType.YAML,
    ".yml": FileType.YAML,
    ".zsh": FileType.BASH,
}

NAME2TYPE: dict[str, FileType] = {
    "dockerfile": FileType.DOCKERFILE,
    "gradlew": FileType.BASH,
    "makefile": FileType.MAKEFILE,
    "gnumakefile": FileType.MAKEFILE,
    "rakefile": FileType.RUBY,
    "gemfile": FileType.RUBY,
}

_COMMENT_STYLE: dict[FileType, CommentStyle] = {
    FileType.BASH: CommentStyle.HASH,
    FileType.DOCKERFILE: CommentStyle.HASH,
    FileType.MAKEFILE: CommentStyle.HASH,
    FileType.PYTHON: CommentStyle.HASH,
    FileType.RUBY: CommentStyle.HASH,
    FileType.TOML: CommentStyle.HASH,
    FileType.YAML: CommentStyle.HASH,
    FileType.C: CommentStyle.C_LIKE,
    FileType.CPP: CommentStyle.C_LIKE,
    FileType.CSHARP: CommentStyle.C_LIKE,
    FileType.CSS: CommentStyle.C_LIKE,
    FileType.GO: CommentStyle.C_LIKE,
    FileType.JAVA: CommentStyle.C_LIKE,
    FileType.JAVASCRIPT: CommentStyle.C_LIKE,
    FileType.JSX: CommentStyle.C_LIKE,
    FileType.KOTLIN: CommentStyle.C_LIKE,
    FileType.PHP: CommentStyle.C_LIKE,
    FileType.RUST: CommentStyle.C_LIKE,
    FileType.SCSS: CommentStyle.C_LIKE,
    FileType.SWIFT: CommentStyle.C_LIKE,
    FileType.TSX: CommentStyle.C_LIKE,
    FileType.TYPESCRIPT: CommentStyle.C_LIKE,
    FileType.HTML: CommentStyle.MARKUP,
    FileType.MARKDOWN: CommentStyle.MARKUP,
    FileType.SVELTE: CommentStyle.MARKUP,
    FileType.VUE: CommentStyle.MARKUP,
    FileType.XML: CommentStyle.MARKUP,
    FileType.LUA: CommentStyle.DASH,
    FileType.SQL: CommentStyle.DASH,
    FileType.INI: CommentStyle.SEMICOLON,
}


@dataclass(frozen=True)
class DenyRule:
    """One entry of the built-in denylist.

    Attributes:
        pattern: exclude pattern in gitignore wildmatch syntax.
        suppressible: whether an explicit user include may switch the rule off.
    """

    pattern: str
    suppressible: bool = True


MANDATORY_EXCLUDES: tuple[DenyRule, ...] = (
    DenyRule(".git", suppressible=False),
    DenyRule("node_modules", suppressible=False),
    DenyRule(".DS_Store", suppressible=False),
)

_BUILTIN_PATTERNS = (
    # images and media
    "*.png", "*.jpg", "*.jpeg", "*.gif", "*.ico", "*.svg", "*.webp", "*.tiff", "*.bmp", "*.heic",
    "*.mp4", "*.mp3", "*.wav", "*.ogg", "*.webm", "*.mov", "*.avi", "*.mkv",
    # documents and archives
    "*.pdf", "*.doc", "*.docx", "*.xls", "*.xlsx", "*.ppt", "*.pptx",
    "*.zip", "*.tar", "*.gz", "*.7z", "*.rar", "*.jar",
    # binaries, databases and fonts
    "*.exe", "*.dll", "*.so", "*.dylib", "*.iso", "*.img",
    "*.sqlite", "*.db", "*.db3",
    "*.eot", "*.otf", "*.ttf", "*.woff", "*.woff2",
    # editor and tool metadata
    "Thumbs.db", ".idea", ".vscode", ".vs",
    ".gitignore", ".gitattributes", ".npmignore", ".dockerignore", ".editorconfig", ".eslint*", ".prettier*",
    # secrets
    "*.pem", "*.key", "*.cert", "*.pfx", "*.p12", "id_rsa", "id_dsa",
    # caches and compiled files
    "__pycache__", "*.pyc", "*.pyo", "*.pyd", ".pytest_cache", ".cache", ".parcel-cache",
    # logs and lockfiles
    "*.log", "npm-debug.log", "yarn-error.log", "pnpm-debug.log",
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "composer.lock", "Gemfile.lock", "Cargo.lock", "go.sum",
    # genctx's own files
    "genctx.config.json", "genctx.context.md",
)  # fmt: skip

BUILTIN_DENYLIST: tuple[DenyRule, ...] = tuple(DenyRule(p) for p in _BUILTIN_PATTERNS)

DEFAULT_USER_EXCLUDES: list[str] = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    "target",
    "vendor",
    "bin",
    ".next",
    ".nuxt",
    ".venv",
    "venv",
    ".env",
    ".env.*",
]

PRESETS: dict[str, dict[str, list[str]]] = {
    "nodejs": {"exclude": []},
    "python": {"exclude": ["requirements.txt"]},
}

COMMENT_STRIPPERS: dict[str, Callable[[str], str]] = {}


def guess_file_type(path: Path) -> FileType:
    """Heuristic guess of the file type from its name and extension.

    Well-known extension-less names (Dockerfile, Makefile, gradlew, ...) are
    special-cased, and any ``readme*`` is treated as markdown.

    Args:
        path (Path): The file path to guess the type for.

    Returns:
        FileType: The guessed file type, or FileType.PLAINTEXT if unknown.
    """
    name = path.name.lower()
    if name in NAME2TYPE:
        return NAME2TYPE[name]
    if name.startswith("readme"):
        return FileType.MARKDOWN
    return EXT2TYPE.get(path.suffix.lower(), FileType.PLAINTEXT)


def comment_style(file_type: FileType) -> CommentStyle:
    """Get the comment syntax family for a given file type.

    Args:
        file_type (FileType): The categorized file type.

    Returns:
        CommentStyle: The comment family, CommentStyle.NONE when unknown.
    """
    return _COMMENT_STYLE.get(file_type, CommentStyle.NONE)


def register_comment_stripper(
    key: str | list[str],
) -> Callable[[CommentStripperFn], CommentStripperFn]:
    """Decorator to register a comment stripping function.

    Strippers are looked up by file type first, then by comment family, so a
    language with its own tokenizer (Python) can override its family.

    Args:
        key (str | list[str]): The FileType or CommentStyle value (or values)
            the decorated function handles.

    Returns:
        Callable[[CommentStripperFn], CommentStripperFn]: A decorator that registers the given
        function in the COMMENT_STRIPPERS mapping and returns it.
    """

    def decorator(func: CommentStripperFn) -> CommentStripperFn:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            return func(*args, **kwargs)

        for k in key if isinstance(key, list) else [key]:
            COMMENT_STRIPPERS[k] = wrapper
        return wrapper

    return decorator


class CandidateFile:
    """A discovered file considered by the content filter pipeline.

    Size and binary sniff are computed on first access and cached; an
    ``OSError`` from either propagates to the caller.
    """

    def __init__(self, path: Path, rel: str) -> None:
        self.path = path
        self.rel = rel

    def __repr__(self) -> str:
        return f"CandidateFile(rel={self.rel!r})"

    @cached_property
    def size(self) -> int:
        """File size in bytes."""
        return self.path.stat().st_size

    @property
    def size_kb(self) -> float:
        return self.size / 1024

    @cached_property
    def is_binary(self) -> bool:
        """Whether a NUL byte occurs in the first bytes of the file."""
        with self.path.open("rb") as f:
            head = f.read(BINARY_SNIFF_BYTES)
        return b"\x00" in head

    @cached_property
    def file_type(self) -> FileType:
        return guess_file_type(self.path)


class RenderedBlock(BaseModel):
    """One accepted file, formatted for the "File Contents" section.

    Attributes:
        rel: Path relative to the project root.
        fence_length: Number of backticks in the fence around the content.
        tokens: Estimated token count of the embedded content.
        text: Header plus fenced content, ready to be concatenated.
    """

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="File path relative to the project root")
    fence_length: int = Field(..., ge=MIN_FENCE_LENGTH, description="Fence length used")
    tokens: int = Field(..., ge=0, description="Estimated token count")
    text: str = Field(..., description="Rendered header and fenced content")


class RunStats(BaseModel):
    """Counters of one pipeline run; they only ever grow."""

    model_config = ConfigDict(validate_assignment=True)

    files_discovered: int = 0
    included: int = 0
    skipped_by_size: int = 0
    skipped_by_token_cap: int = 0
    skipped_binary: int = 0
    skipped_read_error: int = 0
    total_estimated_tokens: int = 0
    budget_reached: bool = False

    @property
    def skipped(self) -> int:
        return self.skipped_by_size + self.skipped_by_token_cap + self.skipped_binary + self.skipped_read_error

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_INCLUDE = "**/*"
DEFAULT_OUTPUT = "genctx.context.md"


class Options(BaseModel):
    """Content-level options of a genctx run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    strip_comments: bool = Field(default=False, description="Strip code comments before embedding.")
    strip_blank_lines: bool = Field(default=False, description="Drop empty or whitespace-only lines.")
    full_tree: bool = Field(default=False, description="Render every discovered file in the tree.")
    max_file_size_kb: int = Field(
        default=2048,
        ge=0,
        alias="maxFileSizeKB",
        description="Files above this size (KB) are skipped.",
    )
    max_total_tokens: int = Field(default=0, ge=0, description="Total token budget, 0 means unlimited.")
    max_file_tokens: int = Field(default=0, ge=0, description="Per-file token cap, 0 means unlimited.")
    use_gitignore: bool = Field(default=True, description="Merge .gitignore patterns into the excludes.")
    chars_per_token: float = Field(default=3.2, gt=0, description="Divisor of the token estimate.")


class ResolvedConfig(BaseModel):
    """Configuration consumed by the pipeline, already merged from file and CLI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    include: list[str] = Field(default_factory=lambda: [DEFAULT_INCLUDE], description="Include globs.")
    exclude: list[str] = Field(default_factory=list, description="Exclude globs.")
    output_path: Path = Field(default=Path(DEFAULT_OUTPUT), alias="outputFile", description="Output file.")
    options: Options = Field(default_factory=Options)

    @field_validator("include", mode="after")
    @classmethod
    def _fallback_include(cls, value: list[str]) -> list[str]:
        cleaned = [p.strip() for p in value if p and p.strip()]
        return cleaned or [DEFAULT_INCLUDE]

    @field_validator("exclude", mode="after")
    @classmethod
    def _dedupe_exclude(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(p.strip() for p in value if p and p.strip()))

    def echo(self) -> dict[str, object]:
        """Return the machine-readable part echoed into the context document."""
        dumped = self.model_dump(mode="json", by_alias=True)
        return {"include": dumped["include"], "exclude": dumped["exclude"], "options": dumped["options"]}


class Settings(BaseModel):
    """Command-line settings of the genctx CLI."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path = Field(default_factory=Path.cwd, description="Project root.")
    log_file: str = Field(default="", description="Log file path.")
    reset: bool = Field(default=False, description="Reset configuration to defaults.")
    init: bool = Field(default=False, description="Initialize/update the config file only.")

    preset: list[str] = Field(default_factory=list, description="Tech presets to apply.")
    include: list[str] = Field(default_factory=list, description="Include patterns to add.")
    add_exclude: list[str] = Field(default_factory=list, description="Exclude patterns to add.")
    remove_exclude: list[str] = Field(default_factory=list, description="Exclude patterns to remove.")
    add_ext: list[str] = Field(default_factory=list, description="Extensions to include.")

    output: str | None = Field(default=None, description="Output filename.")
    max_size: int | None = Field(default=None, ge=0, description="Max file size (KB).")
    max_total_tokens: int | None = Field(default=None, ge=0, description="Total token budget.")
    max_file_tokens: int | None = Field(default=None, ge=0, description="Per-file token cap.")
    use_gitignore: bool | None = Field(default=None, description="Respect .gitignore rules.")
    remove_comments: bool | None = Field(default=None, description="Strip code comments.")
    remove_empty_lines: bool | None = Field(default=None, description="Remove empty lines.")
    tree_full: bool | None = Field(default=None, description="Show the complete directory structure.")

    @property
    def has_modifiers(self) -> bool:
        """Whether any option would change the persisted configuration."""
        lists = (self.preset, self.include, self.add_exclude, self.remove_exclude, self.add_ext)
        scalars = (
            self.output,
            self.max_size,
            self.max_total_tokens,
            self.max_file_tokens,
            self.use_gitignore,
            self.remove_comments,
            self.remove_empty_lines,
            self.tree_full,
        )
        return any(lists) or any(v is not None for v in scalars)

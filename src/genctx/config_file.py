"""Persisted configuration: ``genctx.config.json`` load, save, migration and CLI merge."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from genctx.config import DEFAULT_USER_EXCLUDES, PRESETS
from genctx.exceptions import ConfigurationError
from genctx.logging import logger
from genctx.settings import DEFAULT_INCLUDE, ResolvedConfig

if TYPE_CHECKING:
    from genctx.settings import Settings

CONFIG_FILE_NAME = "genctx.config.json"
LEGACY_CONFIG_FILE_NAME = "genctx.json"


def default_config() -> ResolvedConfig:
    """Return a fresh default configuration."""
    return ResolvedConfig(exclude=list(DEFAULT_USER_EXCLUDES))


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON configuration file.

    Args:
        path (Path): the file to read

    Raises:
        ConfigurationError: if the file cannot be read or is not a JSON object

    Returns:
        dict[str, Any]: the decoded object
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(file=path, reason=str(e)) from e
    if not isinstance(data, dict):
        raise ConfigurationError(file=path, reason="top-level value is not an object")
    return data


def migrate_legacy_config(legacy: dict[str, Any]) -> ResolvedConfig:
    """Convert a legacy ``genctx.json`` object to the current format.

    ``includePaths`` become ``<path>/**/*`` patterns, ``includeExtensions``
    narrow those patterns to a ``{ext,...}`` group, and ``excludePaths`` are
    merged into the default excludes.

    Args:
        legacy (dict[str, Any]): the legacy configuration object

    Returns:
        ResolvedConfig: the migrated configuration
    """
    config = default_config()
    include = list(config.include)
    exclude = list(config.exclude)
    options = config.options.model_copy()

    paths = legacy.get("includePaths") or []
    if paths:
        include = [f"{str(p).rstrip('/')}/**/*" for p in paths]

    exts = legacy.get("includeExtensions") or []
    if exts:
        include = [extension_glob(exts, p.removesuffix("**/*")) if p.endswith("**/*") else p for p in include]

    exclude.extend(str(p) for p in legacy.get("excludePaths") or [])

    updates: dict[str, Any] = {}
    if legacy.get("removeComments"):
        updates["strip_comments"] = bool(legacy["removeComments"])
    if legacy.get("removeEmptyLines"):
        updates["strip_blank_lines"] = bool(legacy["removeEmptyLines"])
    if legacy.get("maxFileSizeKB"):
        updates["max_file_size_kb"] = legacy["maxFileSizeKB"]

    return ResolvedConfig.model_validate(
        {
            "include": include,
            "exclude": exclude,
            "output_path": legacy.get("outputFile") or config.output_path,
            "options": options.model_copy(update=updates).model_dump(),
        },
    )


def load_config(root: Path) -> ResolvedConfig | None:
    """Load the persisted configuration of a project.

    ``genctx.config.json`` wins over the legacy ``genctx.json``, which is
    migrated on the fly. A malformed file is logged and ignored.

    Args:
        root (Path): the project root

    Returns:
        ResolvedConfig | None: the configuration, or None when there is none or it is unusable
    """
    current = root / CONFIG_FILE_NAME
    legacy = root / LEGACY_CONFIG_FILE_NAME
    try:
        if current.is_file():
            return ResolvedConfig.model_validate(read_config_file(current))
        if legacy.is_file():
            logger.info("config_migrated", source=str(legacy))
            return migrate_legacy_config(read_config_file(legacy))
    except ConfigurationError as e:
        logger.warning("config_unusable", file=str(e.file), reason=e.reason)
    except ValidationError as e:
        logger.warning("config_invalid", root=str(root), errors=e.error_count(), detail=str(e))
    return None


def save_config(root: Path, config: ResolvedConfig) -> bool:
    """Write the configuration to ``genctx.config.json``.

    Failures are logged; the run can continue with the in-memory configuration.

    Args:
        root (Path): the project root
        config (ResolvedConfig): the configuration to persist

    Returns:
        bool: True if the file was written
    """
    path = root / CONFIG_FILE_NAME
    data = config.model_dump(mode="json", by_alias=True)
    try:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as e:
        logger.error("config_save_failed", file=str(path), error=str(e))
        return False
    logger.info("config_saved", file=str(path))
    return True


def extension_glob(exts: list[str], prefix: str = "") -> str:
    """Build a ``**/*.ext`` glob, with a ``{a,b}`` group for several extensions."""
    names = [str(e).strip().lstrip(".") for e in exts if str(e).strip()]
    group = names[0] if len(names) == 1 else "{" + ",".join(names) + "}"
    return f"{prefix}**/*.{group}"


def _merge_unique(target: list[str], source: list[str]) -> list[str]:
    return list(dict.fromkeys([*target, *source]))


def apply_cli_modifications(config: ResolvedConfig, settings: Settings) -> tuple[ResolvedConfig, bool]:
    """Merge command-line modifiers into a configuration.

    Args:
        config (ResolvedConfig): the current configuration
        settings (Settings): the parsed command line

    Returns:
        tuple[ResolvedConfig, bool]: the new configuration and whether it differs from ``config``
    """
    include = list(config.include)
    exclude = list(config.exclude)

    for name in settings.preset:
        preset = PRESETS.get(name)
        if preset is None:
            logger.warning("unknown_preset", preset=name, known=sorted(PRESETS))
            continue
        exclude = _merge_unique(exclude, preset.get("exclude", []))
        include = _merge_unique(include, preset.get("include", []))

    exclude = _merge_unique(exclude, settings.add_exclude)
    removed = set(settings.remove_exclude)
    exclude = [p for p in exclude if p not in removed]

    if settings.add_ext:
        include.append(extension_glob(settings.add_ext))
    include = _merge_unique(include, settings.include)

    option_updates: dict[str, Any] = {
        "max_file_size_kb": settings.max_size,
        "max_total_tokens": settings.max_total_tokens,
        "max_file_tokens": settings.max_file_tokens,
        "use_gitignore": settings.use_gitignore,
        "strip_comments": settings.remove_comments,
        "strip_blank_lines": settings.remove_empty_lines,
        "full_tree": settings.tree_full,
    }
    options = config.options.model_copy(update={k: v for k, v in option_updates.items() if v is not None})

    updated = ResolvedConfig(
        include=include or [DEFAULT_INCLUDE],
        exclude=exclude,
        output_path=Path(settings.output) if settings.output else config.output_path,
        options=options,
    )
    return updated, updated != config

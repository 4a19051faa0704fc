from __future__ import annotations

import json
from pathlib import Path

import pytest

from genctx.config import DEFAULT_USER_EXCLUDES
from genctx.config_file import (
    CONFIG_FILE_NAME,
    LEGACY_CONFIG_FILE_NAME,
    apply_cli_modifications,
    default_config,
    extension_glob,
    load_config,
    migrate_legacy_config,
    read_config_file,
    save_config,
)
from genctx.exceptions import ConfigurationError
from genctx.settings import ResolvedConfig, Settings


def _write_json(path: Path, data: object) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.mark.unit
def test_load_config_missing_returns_none(tmp_path: Path) -> None:
    assert load_config(tmp_path) is None


@pytest.mark.unit
def test_load_config_malformed_returns_none(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILE_NAME).write_text("{not json", encoding="utf-8")

    assert load_config(tmp_path) is None


@pytest.mark.unit
def test_load_config_invalid_values_returns_none(tmp_path: Path) -> None:
    _write_json(tmp_path / CONFIG_FILE_NAME, {"options": {"maxFileSizeKB": -1}})

    assert load_config(tmp_path) is None


@pytest.mark.unit
def test_read_config_file_rejects_non_objects(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILE_NAME
    _write_json(path, ["a", "b"])

    with pytest.raises(ConfigurationError):
        read_config_file(path)


@pytest.mark.unit
def test_load_config_valid(tmp_path: Path) -> None:
    _write_json(
        tmp_path / CONFIG_FILE_NAME,
        {
            "include": ["src/**/*"],
            "exclude": ["dist"],
            "outputFile": "ctx.md",
            "options": {"stripComments": True, "maxTotalTokens": 5000},
        },
    )

    config = load_config(tmp_path)

    assert config is not None
    assert config.include == ["src/**/*"]
    assert config.exclude == ["dist"]
    assert config.output_path == Path("ctx.md")
    assert config.options.strip_comments is True
    assert config.options.max_total_tokens == 5000


@pytest.mark.unit
def test_save_then_load_gives_same_config(tmp_path: Path) -> None:
    config = default_config()

    assert save_config(tmp_path, config)
    assert load_config(tmp_path) == config
    data = json.loads((tmp_path / CONFIG_FILE_NAME).read_text(encoding="utf-8"))
    assert data["outputFile"] == "genctx.context.md"
    assert "maxFileSizeKB" in data["options"]


@pytest.mark.unit
def test_save_config_failure_returns_false(tmp_path: Path) -> None:
    assert save_config(tmp_path / "missing", default_config()) is False


@pytest.mark.unit
def test_migrate_legacy_config() -> None:
    config = migrate_legacy_config(
        {
            "includePaths": ["src/"],
            "includeExtensions": [".ts", ".js"],
            "excludePaths": ["fixtures"],
            "removeComments": True,
            "maxFileSizeKB": 100,
            "outputFile": "legacy.md",
        },
    )

    assert config.include == ["src/**/*.{ts,js}"]
    assert "fixtures" in config.exclude
    assert set(DEFAULT_USER_EXCLUDES) <= set(config.exclude)
    assert config.options.strip_comments is True
    assert config.options.max_file_size_kb == 100
    assert config.output_path == Path("legacy.md")


@pytest.mark.unit
def test_load_config_prefers_current_over_legacy(tmp_path: Path) -> None:
    _write_json(tmp_path / LEGACY_CONFIG_FILE_NAME, {"includePaths": ["lib"]})
    assert load_config(tmp_path).include == ["lib/**/*"]

    _write_json(tmp_path / CONFIG_FILE_NAME, {"include": ["src/**/*"]})
    assert load_config(tmp_path).include == ["src/**/*"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("exts", "prefix", "expected"),
    [
        ([".ts"], "", "**/*.ts"),
        (["ts", ".tsx"], "", "**/*.{ts,tsx}"),
        ([".py"], "src/", "src/**/*.py"),
    ],
)
def test_extension_glob(exts: list[str], prefix: str, expected: str) -> None:
    assert extension_glob(exts, prefix) == expected


@pytest.mark.unit
def test_apply_cli_modifications_merges_everything() -> None:
    settings = Settings(
        preset=["python"],
        add_exclude=["coverage"],
        remove_exclude=["dist"],
        add_ext=[".ts"],
        include=["docs/**/*"],
        output="ctx.md",
        max_total_tokens=1000,
        remove_comments=True,
    )

    config, modified = apply_cli_modifications(default_config(), settings)

    assert modified
    assert config.include == ["**/*", "**/*.ts", "docs/**/*"]
    assert "requirements.txt" in config.exclude
    assert "coverage" in config.exclude
    assert "dist" not in config.exclude
    assert config.output_path == Path("ctx.md")
    assert config.options.max_total_tokens == 1000
    assert config.options.strip_comments is True
    assert config.options.strip_blank_lines is False


@pytest.mark.unit
def test_apply_cli_modifications_without_changes() -> None:
    config = ResolvedConfig(exclude=["dist"])

    updated, modified = apply_cli_modifications(config, Settings(add_exclude=["dist"], remove_comments=False))

    assert not modified
    assert updated == config


@pytest.mark.unit
def test_apply_cli_modifications_ignores_unknown_preset() -> None:
    config = default_config()

    updated, modified = apply_cli_modifications(config, Settings(preset=["cobol"]))

    assert not modified
    assert updated == config

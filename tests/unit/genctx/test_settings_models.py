from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from genctx.settings import DEFAULT_INCLUDE, DEFAULT_OUTPUT, Options, ResolvedConfig, Settings


@pytest.mark.unit
def test_options_defaults() -> None:
    opts = Options()

    assert opts.max_file_size_kb == 2048
    assert opts.max_total_tokens == 0
    assert opts.max_file_tokens == 0
    assert opts.use_gitignore is True
    assert opts.chars_per_token == pytest.approx(3.2)
    assert not (opts.strip_comments or opts.strip_blank_lines or opts.full_tree)


@pytest.mark.unit
def test_options_accept_camel_case_aliases() -> None:
    opts = Options.model_validate({"maxFileSizeKB": 10, "stripComments": True, "maxTotalTokens": 500})

    assert opts.max_file_size_kb == 10
    assert opts.strip_comments is True
    assert opts.max_total_tokens == 500


@pytest.mark.unit
@pytest.mark.parametrize("field", ["max_file_size_kb", "max_total_tokens", "max_file_tokens"])
def test_options_reject_negative_limits(field: str) -> None:
    with pytest.raises(ValidationError):
        Options(**{field: -1})


@pytest.mark.unit
def test_options_reject_non_positive_chars_per_token() -> None:
    with pytest.raises(ValidationError):
        Options(chars_per_token=0)


@pytest.mark.unit
def test_resolved_config_include_falls_back_to_everything() -> None:
    assert ResolvedConfig(include=[]).include == [DEFAULT_INCLUDE]
    assert ResolvedConfig(include=["  ", ""]).include == [DEFAULT_INCLUDE]
    assert ResolvedConfig(include=["src/**/*"]).include == ["src/**/*"]


@pytest.mark.unit
def test_resolved_config_dedupes_excludes() -> None:
    assert ResolvedConfig(exclude=["dist", "build", "dist"]).exclude == ["dist", "build"]


@pytest.mark.unit
def test_resolved_config_output_alias() -> None:
    assert ResolvedConfig().output_path == Path(DEFAULT_OUTPUT)
    assert ResolvedConfig.model_validate({"outputFile": "ctx.md"}).output_path == Path("ctx.md")


@pytest.mark.unit
def test_resolved_config_echo_is_json_ready() -> None:
    echo = ResolvedConfig(include=["src/**/*"]).echo()

    assert set(echo) == {"include", "exclude", "options"}
    assert echo["include"] == ["src/**/*"]
    assert echo["options"]["maxFileSizeKB"] == 2048


@pytest.mark.unit
def test_settings_has_modifiers() -> None:
    assert not Settings().has_modifiers
    assert Settings(add_exclude=["dist"]).has_modifiers
    assert Settings(tree_full=False).has_modifiers
    assert not Settings(reset=True, init=True).has_modifiers

from __future__ import annotations

from pathlib import Path

import pytest

from genctx import __version__
from genctx.cli import parse_args


@pytest.mark.unit
def test_parse_args_defaults() -> None:
    settings = parse_args([])

    assert settings.root == Path.cwd()
    assert settings.preset == []
    assert settings.output is None
    assert settings.use_gitignore is None
    assert not settings.has_modifiers


@pytest.mark.unit
def test_parse_args_collects_repeated_lists(tmp_path: Path) -> None:
    settings = parse_args(
        [
            "--root",
            str(tmp_path),
            "-a",
            "dist",
            "coverage",
            "-a",
            "tmp",
            "--add-ext",
            ".ts",
            ".tsx",
            "--no-use-gitignore",
            "--remove-comments",
            "--max-size",
            "10",
        ],
    )

    assert settings.root == tmp_path
    assert settings.add_exclude == ["dist", "coverage", "tmp"]
    assert settings.add_ext == [".ts", ".tsx"]
    assert settings.use_gitignore is False
    assert settings.remove_comments is True
    assert settings.max_size == 10
    assert settings.has_modifiers


@pytest.mark.unit
def test_parse_args_rejects_negative_limits(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        parse_args(["--max-total-tokens", "-5"])

    assert exc.value.code == 2
    assert "max_total_tokens" in capsys.readouterr().err


@pytest.mark.unit
def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        parse_args(["--version"])

    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out

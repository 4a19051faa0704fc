from __future__ import annotations

import json
from pathlib import Path

import pytest

from genctx import cli


def _project(root: Path) -> Path:
    (root / "src").mkdir(parents=True, exist_ok=True)
    (root / "README.md").write_text("# Demo\n", encoding="utf-8")
    (root / "src" / "app.py").write_text("print('hi')  # greet\n", encoding="utf-8")
    return root


def test_first_run_writes_config_and_context(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    exit_code = cli.main(["--root", str(root)])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Configuration written to genctx.config.json" in out
    assert "GENERATION STATISTICS" in out
    assert (root / "genctx.config.json").is_file()
    doc = (root / "genctx.context.md").read_text(encoding="utf-8")
    assert "### `src/app.py`" in doc
    assert "genctx.config.json" not in doc.split("## File Contents", 1)[1]


def test_modifiers_are_persisted_and_applied(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    exit_code = cli.main(["--root", str(root), "--remove-comments", "-a", "README.md", "-o", "ctx.md"])

    assert exit_code == 0
    saved = json.loads((root / "genctx.config.json").read_text(encoding="utf-8"))
    assert saved["options"]["stripComments"] is True
    assert "README.md" in saved["exclude"]
    assert saved["outputFile"] == "ctx.md"

    doc = (root / "ctx.md").read_text(encoding="utf-8")
    assert "print('hi')\n" in doc
    assert "# greet" not in doc
    assert "### `README.md`" not in doc
    assert "Comments Stripped" in capsys.readouterr().out


def test_init_only_writes_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    exit_code = cli.main(["--root", str(root), "--init", "--tree-full"])

    assert exit_code == 0
    assert "Configuration initialized." in capsys.readouterr().out
    assert json.loads((root / "genctx.config.json").read_text(encoding="utf-8"))["options"]["fullTree"] is True
    assert not (root / "genctx.context.md").exists()


def test_reset_restores_defaults(tmp_path: Path) -> None:
    root = _project(tmp_path)
    (root / "genctx.config.json").write_text(json.dumps({"include": ["nothing/**/*"]}), encoding="utf-8")

    assert cli.main(["--root", str(root), "--reset", "--init"]) == 0

    saved = json.loads((root / "genctx.config.json").read_text(encoding="utf-8"))
    assert saved["include"] == ["**/*"]


def test_empty_project_reports_no_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--root", str(tmp_path)])

    assert exit_code == 0
    assert "No files found" in capsys.readouterr().out
    assert not (tmp_path / "genctx.context.md").exists()


def test_unwritable_output_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)
    (root / "out_dir").mkdir()

    exit_code = cli.main(["--root", str(root), "-o", "out_dir"])

    assert exit_code == 1
    assert "Could not write the context document." in capsys.readouterr().err


def test_invalid_root_fails(tmp_path: Path) -> None:
    assert cli.main(["--root", str(tmp_path / "missing")]) == 1

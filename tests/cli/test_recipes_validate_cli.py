import json
import logging
from pathlib import Path

import pytest

from deploycore.cli import recipes_validate


def write(p: Path, s: str):
    p.write_text(s, encoding="utf-8")


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    package_logger = logging.getLogger("deploycore")
    handlers, level, package_level = list(root.handlers), root.level, package_logger.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    package_logger.setLevel(package_level)


def test_json_report(tmp_path, capsys):
    write(tmp_path / "good.yaml", "id: Good\nname: Good recipe\n")
    write(tmp_path / "bad.yaml", "name: no id\n")

    code = recipes_validate.main(["--path", str(tmp_path), "--format", "json", "--log-level", "ERROR"])
    out = json.loads(capsys.readouterr().out)

    assert code == 0
    assert out["recipes"] == ["Good"]
    assert out["count"] == 1
    assert out["items"][0]["error_type"] == "schema_validation"
    assert out["items"][0]["severity"] == "error"


def test_fail_on_thresholds(tmp_path, capsys):
    write(
        tmp_path / "warn.yaml",
        "id: Warn\noptionSettings:\n  - id: A\n    dependsOn: [{id: Missing, value: 1}]\n",
    )
    args = ["--path", str(tmp_path), "--log-level", "ERROR"]

    assert recipes_validate.main(args + ["--fail-on", "error"]) == 0
    assert recipes_validate.main(args + ["--fail-on", "warning"]) == 1
    assert recipes_validate.main(args + ["--strict", "--fail-on", "error"]) == 0
    out = capsys.readouterr().out
    assert "[warning] semantic_validation" in out


def test_text_report_without_diagnostics(tmp_path, capsys):
    write(tmp_path / "good.yaml", "id: Good\n")
    assert recipes_validate.main(["--path", str(tmp_path), "--log-level", "ERROR"]) == 0
    out = capsys.readouterr().out
    assert "Loaded 1 recipe(s)" in out
    assert "No diagnostics found." in out


def test_json_report_parses_at_default_log_level(tmp_path, capsys, monkeypatch):
    from deploycore.common.settings import reload_settings

    monkeypatch.delenv("DEPLOYCORE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("DEPLOYCORE_ENV_FILE", str(tmp_path / "absent.env"))
    reload_settings()
    write(tmp_path / "good.yaml", "id: Good\n")
    try:
        code = recipes_validate.main(["--path", str(tmp_path), "--format", "json"])
        captured = capsys.readouterr()
    finally:
        monkeypatch.undo()
        reload_settings()

    assert code == 0
    assert json.loads(captured.out)["recipes"] == ["Good"]
    assert "catalog.loaded" in captured.err

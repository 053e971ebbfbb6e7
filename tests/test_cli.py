from __future__ import annotations

import json
from pathlib import Path
import textwrap

from typer.testing import CliRunner

from defaultsmith import cli


SERVICE = textwrap.dedent(
    """
    from typing import Annotated

    from defaultsmith import DefaultValue, with_defaults


    class Service:
        @with_defaults
        def __init__(self, name: str, port: Annotated[int, DefaultValue("8080")]) -> None:
            self.name = name
            self.port = port
    """
).lstrip()

BROKEN = textwrap.dedent(
    """
    from typing import Annotated

    from defaultsmith import DefaultValue, with_defaults


    class Service:
        @with_defaults
        def __init__(self, port: Annotated[int, DefaultValue("eighty")]) -> None:
            self.port = port
    """
).lstrip()


def _project(root: Path, source: str) -> Path:
    package = root / "svc"
    package.mkdir()
    (package / "__init__.py").write_text("", encoding="utf-8")
    path = package / "service.py"
    path.write_text(source, encoding="utf-8")
    return path


def test_generate_writes_companion_module(tmp_path: Path) -> None:
    _project(tmp_path, SERVICE)
    runner = CliRunner()
    result = runner.invoke(cli.app, ["generate", "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    target = tmp_path / "svc" / "service_defaults.py"
    assert f"Wrote {target}" in result.output
    assert "class ServiceDefaults:" in target.read_text(encoding="utf-8")

    again = runner.invoke(cli.app, ["generate", "--root", str(tmp_path)])
    assert again.exit_code == 0
    assert "Wrote" not in again.output


def test_generate_dry_run_leaves_tree_untouched(tmp_path: Path) -> None:
    _project(tmp_path, SERVICE)
    runner = CliRunner()
    result = runner.invoke(cli.app, ["generate", "--root", str(tmp_path), "--dry-run"])
    assert result.exit_code == 0
    assert "Would write" in result.output
    assert not (tmp_path / "svc" / "service_defaults.py").exists()


def test_config_suffix_is_honoured(tmp_path: Path) -> None:
    _project(tmp_path, SERVICE)
    (tmp_path / "defaultsmith.toml").write_text(
        '[generate]\noutput_suffix = "_gen"\n', encoding="utf-8"
    )
    result = CliRunner().invoke(cli.app, ["generate", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert (tmp_path / "svc" / "service_gen.py").exists()


def test_check_reports_errors_and_exits_nonzero(tmp_path: Path) -> None:
    path = _project(tmp_path, BROKEN)
    runner = CliRunner()
    result = runner.invoke(cli.app, ["check", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "NotParseable" in result.output
    assert str(path) in result.output
    assert "1 error(s), 0 warning(s)" in result.output
    assert not (tmp_path / "svc" / "service_defaults.py").exists()


def test_plan_reads_manifest_and_prints_json(tmp_path: Path) -> None:
    manifest = {
        "scopes": [{"name": "app.Job"}],
        "owners": [
            {
                "scope": "app.Job",
                "callables": [
                    {
                        "name": "run",
                        "static": True,
                        "parameters": [
                            {"name": "retries", "type": "int", "default": {"value": "3"}}
                        ],
                    }
                ],
            }
        ],
    }
    input_path = tmp_path / "manifest.json"
    input_path.write_text(json.dumps(manifest), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli.app, ["plan", "--input", str(input_path), "--render"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    (namespace,) = payload["namespaces"]
    assert namespace["name"] == "JobDefaults"
    assert namespace["module"] == "app"
    assert "def run(" in namespace["source"]

    output = tmp_path / "plan.json"
    written = runner.invoke(
        cli.app, ["plan", "--input", str(input_path), "--output", str(output)]
    )
    assert written.exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8"))["errors"] == 0


def test_plan_rejects_invalid_manifest(tmp_path: Path) -> None:
    runner = CliRunner()
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{", encoding="utf-8")
    result = runner.invoke(cli.app, ["plan", "--input", str(bad_json)])
    assert result.exit_code == 2

    bad_shape = tmp_path / "list.json"
    bad_shape.write_text("[]", encoding="utf-8")
    assert runner.invoke(cli.app, ["plan", "--input", str(bad_shape)]).exit_code == 2

    bad_schema = tmp_path / "schema.json"
    bad_schema.write_text(json.dumps({"owners": [{"callables": []}]}), encoding="utf-8")
    assert runner.invoke(cli.app, ["plan", "--input", str(bad_schema)]).exit_code == 2

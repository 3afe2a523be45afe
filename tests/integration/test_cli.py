import json
import textwrap

import pytest
import yaml
from click.testing import CliRunner

from p2d.CLI.main import cli


@pytest.fixture
def build_file(tmp_path):
    path = tmp_path / "images.py"
    path.write_text(textwrap.dedent("""
        from p2d.RECIPES.golang import Golang

        def app():
            return Golang("golang:1.22-alpine").compile("/bin/app")

        broken = 7
    """))
    return path


@pytest.fixture
def runner(monkeypatch):
    for key in ("P2D_OUTPUT_FORMAT", "P2D_LOG_LEVEL", "P2D_DOCKERFILE_SYNTAX"):
        monkeypatch.delenv(key, raising=False)
    return CliRunner()


def invoke(runner, tmp_path, *args):
    return runner.invoke(cli, ['--env-file', str(tmp_path / 'none.env'), *args])


def test_cli_help(runner):
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'plan' in result.output
    assert 'dockerfile' in result.output


def test_plan_json(runner, tmp_path, build_file):
    result = invoke(runner, tmp_path, 'plan', f"{build_file}:app")
    assert result.exit_code == 0
    plan = json.loads(result.output)
    assert plan["base"] == {"type": "scratch", "args": None}
    assert [c["type"] for c in plan["commands"]] == ["copy", "entrypoint"]


def test_plan_yaml(runner, tmp_path, build_file):
    result = invoke(runner, tmp_path, 'plan', '--format', 'yaml', f"{build_file}:app")
    assert result.exit_code == 0
    plan = yaml.safe_load(result.output)
    assert plan["commands"][1] == {"type": "entrypoint", "args": ["/bin/app"]}


def test_plan_format_from_env_file(runner, tmp_path, build_file):
    env_file = tmp_path / "p2d.env"
    env_file.write_text("P2D_OUTPUT_FORMAT=yaml\n")
    result = runner.invoke(cli, ['--env-file', str(env_file), 'plan', f"{build_file}:app"])
    assert result.exit_code == 0
    assert result.output.startswith("base:")


def test_dockerfile_stdout(runner, tmp_path, build_file):
    result = invoke(runner, tmp_path, 'dockerfile', f"{build_file}:app")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "# syntax=docker/dockerfile:1"
    assert "FROM scratch AS stage-1" in lines
    assert lines[-1] == 'ENTRYPOINT ["/bin/app"]'


def test_dockerfile_to_file(runner, tmp_path, build_file):
    out = tmp_path / "out" / "Dockerfile"
    result = invoke(runner, tmp_path, 'dockerfile', f"{build_file}:app", '-o', str(out))
    assert result.exit_code == 0
    assert f"Dockerfile written to {out}" in result.output
    assert out.read_text().startswith("# syntax=docker/dockerfile:1")


def test_bad_target(runner, tmp_path, build_file):
    result = invoke(runner, tmp_path, 'plan', f"{build_file}:broken")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_missing_file(runner, tmp_path):
    result = invoke(runner, tmp_path, 'dockerfile', f"{tmp_path / 'nope.py'}:app")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invalid_log_level(runner, tmp_path, build_file):
    result = invoke(runner, tmp_path, '--log-level', 'loud', 'plan', f"{build_file}:app")
    assert result.exit_code == 2


def test_build_file_that_raises(runner, tmp_path):
    path = tmp_path / "raising.py"
    path.write_text("raise RuntimeError('registry unreachable')\n")
    result = invoke(runner, tmp_path, 'plan', f"{path}:app")
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "registry unreachable" in result.output

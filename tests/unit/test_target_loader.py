import sys
import textwrap

import pytest

from p2d import Stage
from p2d.errors import TargetLoadError
from p2d.UTILS.target_loader import load_target


@pytest.fixture
def build_file(tmp_path):
    path = tmp_path / "build_targets.py"
    path.write_text(textwrap.dedent("""
        from p2d import Image, Scratch

        builder = Image("golang:1.22-alpine", name="builder").run("go build -o /binary")
        final = Scratch().copy(from_=builder, source="/binary", destination="/app")

        def make():
            return Image("alpine").run("true")

        class Targets:
            nested = Image("debian:12")

        not_a_stage = 42
    """))
    return path


def test_load_stage_attribute(build_file):
    stage = load_target(f"{build_file}:final")
    assert isinstance(stage, Stage)
    assert stage.references()[0].name == "builder"


def test_load_callable(build_file):
    assert load_target(f"{build_file}:make").build().base["args"]["image"] == "alpine"


def test_load_dotted_attribute(build_file):
    assert load_target(f"{build_file}:Targets.nested").build().base["args"]["image"] == "debian:12"


def test_load_module_target(build_file, monkeypatch):
    monkeypatch.syspath_prepend(str(build_file.parent))
    stage = load_target("build_targets:builder")
    assert stage.name == "builder"


def test_not_a_stage(build_file):
    with pytest.raises(TargetLoadError):
        load_target(f"{build_file}:not_a_stage")


def test_missing_attribute(build_file):
    with pytest.raises(TargetLoadError):
        load_target(f"{build_file}:nope")


def test_missing_file(tmp_path):
    with pytest.raises(TargetLoadError):
        load_target(f"{tmp_path / 'missing.py'}:final")


def test_missing_module():
    with pytest.raises(TargetLoadError):
        load_target("no_such_module_here:final")


@pytest.mark.parametrize("target", ["final", ":final", "module:"])
def test_invalid_target(target):
    with pytest.raises(TargetLoadError):
        load_target(target)


@pytest.mark.parametrize("source", [
    "raise RuntimeError('no network')\n",
    "def broken(:\n",
    "import no_such_module_here\n",
])
def test_failing_file_raises_target_error(tmp_path, source):
    path = tmp_path / "failing.py"
    path.write_text(source)
    with pytest.raises(TargetLoadError):
        load_target(f"{path}:final")


def test_failing_callable_raises_target_error(tmp_path):
    path = tmp_path / "failing.py"
    path.write_text("def make():\n    return {}['missing']\n")
    with pytest.raises(TargetLoadError, match="KeyError"):
        load_target(f"{path}:make")


def test_sys_path_changes_made_by_file_survive(tmp_path):
    path = tmp_path / "targets" / "with_path.py"
    path.parent.mkdir()
    path.write_text(textwrap.dedent("""
        import sys
        from p2d import Scratch

        sys.path.insert(0, "/opt/extra-build-modules")
        final = Scratch()
    """))
    before = list(sys.path)
    try:
        load_target(f"{path}:final")
        assert sys.path == ["/opt/extra-build-modules", *before]
    finally:
        sys.path[:] = before

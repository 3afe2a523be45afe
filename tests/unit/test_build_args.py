import pytest

from p2d.MODELS.engine import BuildArgResolver, DEFAULT_BUILD_ARGS
from p2d.UTILS.build_args import BuildArgs, Platform
from p2d.UTILS.string_interpolation import BuildArgInterpolator


def test_platform_parse():
    assert Platform.parse("linux/arm64/v8") == Platform("linux", "arm64", "v8")
    assert str(Platform.parse("linux/amd64")) == "linux/amd64"
    for value in ("linux", "linux//v8", "a/b/c/d"):
        with pytest.raises(ValueError):
            Platform.parse(value)


def test_host_platform_is_complete():
    host = Platform.host()
    assert host.os
    assert host.architecture


def test_platform_args():
    args = BuildArgs(build_platform="linux/amd64", target_platform="linux/arm64/v8")
    assert args.platform_args() == {
        "BUILDPLATFORM": "linux/amd64",
        "BUILDOS": "linux",
        "BUILDARCH": "amd64",
        "BUILDVARIANT": "",
        "TARGETPLATFORM": "linux/arm64/v8",
        "TARGETOS": "linux",
        "TARGETARCH": "arm64",
        "TARGETVARIANT": "v8",
    }
    assert list(args.platform_args()) == list(DEFAULT_BUILD_ARGS)


def test_target_defaults_to_build_platform():
    args = BuildArgs(build_platform="linux/amd64")
    assert args("TARGETPLATFORM") == "linux/amd64"


def test_lookup():
    args = BuildArgs({"VERSION": "1.2.3", "TARGETARCH": "riscv64"}, build_platform="linux/amd64")
    assert isinstance(args, BuildArgResolver)
    assert args("VERSION") == "1.2.3"
    # Caller values win over platform values
    assert args("TARGETARCH") == "riscv64"
    assert args("MISSING", "fallback") == "fallback"
    with pytest.raises(KeyError):
        args("MISSING")


def test_from_env_file(tmp_path):
    env_file = tmp_path / "build.env"
    env_file.write_text("VERSION=2.0\n# comment\nCHANNEL='stable'\n")
    args = BuildArgs.from_env_file(str(env_file), build_platform="linux/amd64")
    assert args("VERSION") == "2.0"
    assert args("CHANNEL") == "stable"
    assert args("BUILDARCH") == "amd64"


def test_expand():
    args = BuildArgs({"VERSION": "1.22"}, build_platform="linux/arm64")
    assert args.expand("golang:${VERSION}-alpine") == "golang:1.22-alpine"
    assert args.expand("app-$TARGETOS-${TARGETARCH}") == "app-linux-arm64"


def test_interpolate_modifiers():
    context = {"SET": "value", "EMPTY": ""}
    assert BuildArgInterpolator.interpolate("${SET:-default}", context) == "value"
    assert BuildArgInterpolator.interpolate("${UNSET:-default}", context) == "default"
    assert BuildArgInterpolator.interpolate("${EMPTY:-default}", context) == "default"
    assert BuildArgInterpolator.interpolate("${SET:+alt}", context) == "alt"
    assert BuildArgInterpolator.interpolate("${UNSET:+alt}", context) == ""
    assert BuildArgInterpolator.interpolate("cost: $$5", context) == "cost: $5"


def test_interpolate_unknown_raises():
    with pytest.raises(KeyError):
        BuildArgInterpolator.interpolate("${NOPE}", {})

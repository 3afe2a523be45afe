import pytest
from pydantic import ValidationError

from p2d import BindMount, CacheRunMount, Image, SecretRunMount, SSHRunMount, TmpfsRunMount
from p2d.MODELS.mounts import CacheRunMountOptions, CacheSharing


def test_bind_mount_defaults():
    mount = BindMount()
    assert mount.type == "bind"
    assert mount.options.target == "."
    assert mount.options.rw is False
    assert mount.to_plan() == {
        "type": "bind",
        "options": {"target": ".", "source": None, "from": None, "rw": False},
    }


def test_cache_mount_requires_target():
    with pytest.raises(ValidationError):
        CacheRunMount()


def test_cache_mount_defaults_to_shared():
    mount = CacheRunMount(target="/root/.cache")
    assert mount.to_plan()["options"]["sharing"] == "shared"


def test_cache_mount_sharing_values():
    assert CacheRunMount(target="/x", sharing="locked").to_plan()["options"]["sharing"] == "locked"
    assert CacheRunMount(target="/x", sharing=CacheSharing.PRIVATE).to_plan()["options"]["sharing"] == "private"
    with pytest.raises(ValidationError):
        CacheRunMount(target="/x", sharing="exclusive")


def test_cache_mount_from_record():
    """Options may be given as a model or as a mapping using wire names."""
    from_model = CacheRunMount(CacheRunMountOptions(target="/x", read_only=True))
    from_mapping = CacheRunMount({"target": "/x", "readOnly": True})
    assert from_model == from_mapping
    assert from_mapping.options.read_only is True
    assert from_mapping.to_plan()["options"]["readOnly"] is True


def test_record_and_keywords_together_raise():
    with pytest.raises(TypeError):
        CacheRunMount({"target": "/x"}, id="go")


def test_tmpfs_mount_requires_target():
    with pytest.raises(ValidationError):
        TmpfsRunMount()
    assert TmpfsRunMount(target="/tmp", size=1024).to_plan() == {
        "type": "tmpfs",
        "options": {"target": "/tmp", "size": 1024},
    }


def test_secret_mount_required_defaults_to_false():
    mount = SecretRunMount(id="npmrc", target="/root/.npmrc")
    assert mount.options.required is False
    assert mount.to_plan() == {
        "type": "secret",
        "options": {
            "id": "npmrc",
            "target": "/root/.npmrc",
            "env": None,
            "required": False,
            "mode": None,
            "uid": None,
            "gid": None,
        },
    }


def test_ssh_mount_without_options():
    mount = SSHRunMount()
    assert mount.options.required is False
    assert mount.options.id is None


def test_unknown_option_raises():
    with pytest.raises(ValidationError):
        BindMount(target="/src", readonly=True)


def test_mounts_are_immutable():
    mount = CacheRunMount(target="/x")
    with pytest.raises(ValidationError):
        mount.options.target = "/y"
    with pytest.raises(ValidationError):
        mount.type = "bind"


def test_mounts_are_values():
    assert CacheRunMount(target="/x") == CacheRunMount(target="/x")
    assert CacheRunMount(target="/x") != CacheRunMount(target="/y")


def test_mount_with_stage_source():
    deps = Image("node:20", name="deps")
    plan = BindMount(from_=deps, target="/node_modules").to_plan()
    assert plan["options"]["from"] == {
        "base": {"type": "image", "args": {"image": "node:20", "platform": None}},
        "commands": [],
        "name": "deps",
    }

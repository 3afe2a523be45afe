# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Models for the mounts attached to a ``run`` instruction.

Each variant is a frozen value object made of a fixed ``type`` tag and an
options record. Options can be given as keyword arguments or as a single
record (an options model or a mapping using either python or wire names)::

    CacheRunMount(target="/go/pkg/mod")
    CacheRunMount({"target": "/go/pkg/mod", "readOnly": True})
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CacheSharing(str, Enum):
    """
    How concurrent builds share one cache volume.
    """
    SHARED = "shared"
    PRIVATE = "private"
    LOCKED = "locked"


class MountOptions(BaseModel):
    """
    Common configuration for every options record: immutable, strict about
    unknown keys, and serialized under camelCase wire names.
    """
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )


class BindMountOptions(MountOptions):
    target: str = "."
    # None mounts the root of the source.
    source: Optional[str] = None
    # A stage name or a Stage object; checked when the mount is attached.
    from_: Optional[Any] = Field(default=None, alias="from")
    rw: bool = False


class CacheRunMountOptions(MountOptions):
    id: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    target: str
    uid: Optional[int] = None
    gid: Optional[int] = None
    source: Optional[str] = None
    sharing: CacheSharing = CacheSharing.SHARED
    read_only: Optional[bool] = None
    mode: Optional[int] = None


class TmpfsRunMountOptions(MountOptions):
    target: str
    size: Optional[int] = None


class SecretRunMountOptions(MountOptions):
    id: Optional[str] = None
    target: Optional[str] = None
    env: Optional[str] = None
    required: bool = False
    mode: Optional[int] = None
    uid: Optional[int] = None
    gid: Optional[int] = None


class SSHRunMountOptions(MountOptions):
    id: Optional[str] = None
    required: bool = False
    target: Optional[str] = None
    mode: Optional[int] = None
    uid: Optional[int] = None
    gid: Optional[int] = None


class RunMount(BaseModel):
    """
    Base class of all mount variants.
    """
    model_config = ConfigDict(frozen=True)

    type: str
    options: Any

    def __init__(self, options: Any = None, **kwargs: Any):
        if options is None:
            options = kwargs
        elif kwargs:
            raise TypeError(
                f"{type(self).__name__} takes an options record or keyword arguments, not both"
            )
        super().__init__(options=options)

    def to_plan(self) -> Dict[str, Any]:
        """
        Serializes the mount with its full option set.
        """
        from .build_plan import snapshot_value
        return snapshot_value(self)


class BindMount(RunMount):
    """
    Exposes a path from the build context or another stage, read-only unless ``rw``.
    """
    type: Literal["bind"] = "bind"
    options: BindMountOptions


class CacheRunMount(RunMount):
    """
    A persistent cache volume keyed by ``id``, or by ``target`` when no id is given.
    """
    type: Literal["cache"] = "cache"
    options: CacheRunMountOptions


class TmpfsRunMount(RunMount):
    type: Literal["tmpfs"] = "tmpfs"
    options: TmpfsRunMountOptions


class SecretRunMount(RunMount):
    """
    Injects a secret as a file at ``target`` or through the ``env`` variable.
    """
    type: Literal["secret"] = "secret"
    options: SecretRunMountOptions


class SSHRunMount(RunMount):
    """
    Forwards an SSH agent socket or key identified by ``id``.
    """
    type: Literal["ssh"] = "ssh"
    options: SSHRunMountOptions


AnyRunMount = Annotated[
    Union[BindMount, CacheRunMount, TmpfsRunMount, SecretRunMount, SSHRunMount],
    Field(discriminator="type"),
]

MOUNT_TYPES = {
    "bind": BindMount,
    "cache": CacheRunMount,
    "tmpfs": TmpfsRunMount,
    "secret": SecretRunMount,
    "ssh": SSHRunMount,
}

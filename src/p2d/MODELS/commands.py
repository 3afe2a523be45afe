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
Models for the instructions recorded by a stage.

There is one frozen model per instruction kind, each tagged with its
``CommandType`` and carrying a payload typed for that kind. A stage's origin
is recorded the same way by ``ImageBase`` or ``ScratchBase``.
"""
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .copy_options import CopyOptions
from .mounts import AnyRunMount


class CommandType(str, Enum):
    """
    The closed set of instructions a stage can record.
    """
    RUN = "run"
    SHELL = "shell"
    ENV = "env"
    COPY = "copy"
    MERGE = "merge"
    ENTRYPOINT = "entrypoint"
    CMD = "cmd"
    LABEL = "label"
    VOLUME = "volume"
    WORKDIR = "workdir"
    CHDIR = "chdir"
    USER = "user"


class RunArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    # A shell-form string or an argv list.
    command: Union[str, Tuple[str, ...]]
    mounts: Optional[Tuple[AnyRunMount, ...]] = None


class KeyValueArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class Command(BaseModel):
    """
    One recorded instruction: a ``type`` tag and its ``args`` payload.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: CommandType
    args: Any

    def to_plan(self) -> Dict[str, Any]:
        from .build_plan import snapshot_value
        return snapshot_value(self)


class RunCommand(Command):
    type: Literal[CommandType.RUN] = CommandType.RUN
    args: RunArgs


class ShellCommand(Command):
    type: Literal[CommandType.SHELL] = CommandType.SHELL
    args: Tuple[str, ...]


class EnvCommand(Command):
    type: Literal[CommandType.ENV] = CommandType.ENV
    args: KeyValueArgs


class CopyCommand(Command):
    type: Literal[CommandType.COPY] = CommandType.COPY
    args: CopyOptions


class MergeCommand(Command):
    type: Literal[CommandType.MERGE] = CommandType.MERGE
    # Stage objects, kept as references until the plan is built.
    args: Tuple[Any, ...]


class EntrypointCommand(Command):
    type: Literal[CommandType.ENTRYPOINT] = CommandType.ENTRYPOINT
    args: Tuple[str, ...]


class CmdCommand(Command):
    type: Literal[CommandType.CMD] = CommandType.CMD
    args: Tuple[str, ...]


class LabelCommand(Command):
    type: Literal[CommandType.LABEL] = CommandType.LABEL
    args: KeyValueArgs


class VolumeCommand(Command):
    type: Literal[CommandType.VOLUME] = CommandType.VOLUME
    args: str


class WorkdirCommand(Command):
    type: Literal[CommandType.WORKDIR] = CommandType.WORKDIR
    args: str


class ChdirCommand(Command):
    type: Literal[CommandType.CHDIR] = CommandType.CHDIR
    args: str


class UserCommand(Command):
    type: Literal[CommandType.USER] = CommandType.USER
    args: str


class ImageArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: str = Field(min_length=1)
    platform: Optional[str] = None


class StageBase(BaseModel):
    """
    The origin of a stage. Fixed when the stage is created.
    """
    model_config = ConfigDict(frozen=True)

    type: str
    args: Any = None

    def to_plan(self) -> Dict[str, Any]:
        from .build_plan import snapshot_value
        return snapshot_value(self)


class ImageBase(StageBase):
    type: Literal["image"] = "image"
    args: ImageArgs


class ScratchBase(StageBase):
    type: Literal["scratch"] = "scratch"
    args: None = None

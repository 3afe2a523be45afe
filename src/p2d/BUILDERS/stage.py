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
Builders for multi-stage image build plans.

A stage starts from an ``Image`` or from ``Scratch`` and records instructions
in call order. Every instruction method returns the stage itself::

    builder = Image("golang:1.22-alpine").workdir("/app").run("go build -o /app/bin")
    final = Scratch().copy(from_=builder, source="/app/bin", destination="/bin/app")
    plan = final.entrypoint(["/bin/app"]).build()

Stages are mutable and shared by reference. Holding on to a stage and chaining
more instructions on it changes every place it is used; call ``clone()`` to
branch from a common prefix instead.
"""
from copy import copy as shallow_copy
import logging
from typing import Any, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import CyclicStageError, InstructionError, StageReferenceError
from ..MODELS.build_plan import BuildPlan, snapshot_value
from ..MODELS.commands import (
    ChdirCommand,
    CmdCommand,
    Command,
    CopyCommand,
    EntrypointCommand,
    EnvCommand,
    ImageArgs,
    ImageBase,
    KeyValueArgs,
    LabelCommand,
    MergeCommand,
    RunArgs,
    RunCommand,
    ScratchBase,
    ShellCommand,
    StageBase,
    UserCommand,
    VolumeCommand,
    WorkdirCommand,
)
from ..MODELS.copy_options import CopyOptions
from ..MODELS.mounts import BindMount, RunMount

logger = logging.getLogger(__name__)

_KEEP_NAME = object()


class Stage:
    """
    An ordered instruction sequence anchored to a fixed base.

    Use ``Image`` or ``Scratch`` to create one.
    """

    def __init__(self, base: StageBase, *, name: Optional[str] = None):
        if not isinstance(base, StageBase):
            raise TypeError(f"Stage base must be a StageBase, got {type(base).__name__}")
        self._base = base
        self._name = name
        self._commands: List[Command] = []

    @property
    def base(self) -> StageBase:
        return self._base

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def commands(self) -> Tuple[Command, ...]:
        return tuple(self._commands)

    def __repr__(self) -> str:
        label = f" {self._name!r}" if self._name else ""
        return f"<{type(self).__name__}{label} {self._describe_base()} commands={len(self._commands)}>"

    def _describe_base(self) -> str:
        if isinstance(self._base, ImageBase):
            return self._base.args.image
        return self._base.type

    def _append(self, command: Command) -> "Stage":
        self._commands.append(command)
        logger.debug("%r: recorded %s", self, command.type.value)
        return self

    def _check_source(self, source: Any, instruction: str) -> None:
        if not isinstance(source, Stage):
            raise StageReferenceError(
                f"{instruction} source must be a Stage, got {type(source).__name__}",
                context={"stage": repr(self)},
            )
        if source is self:
            raise StageReferenceError(
                f"{instruction} source cannot be the stage itself",
                hint="clone() the stage to build on a copy of it",
                context={"stage": repr(self)},
            )

    def run(
        self,
        command: Union[str, Sequence[str]],
        mounts: Optional[Iterable[RunMount]] = None,
    ) -> "Stage":
        """
        Runs a command, in shell form when given a string and exec form when
        given an argv list. ``mounts`` are only attached while it runs.
        """
        if not command:
            raise InstructionError("run needs a non-empty command", context={"stage": repr(self)})
        if isinstance(command, str):
            recorded: Union[str, Tuple[str, ...]] = command
        else:
            recorded = tuple(command)

        attached = None
        if mounts is not None:
            attached = tuple(mounts)
            for mount in attached:
                if not isinstance(mount, RunMount):
                    raise InstructionError(
                        f"run mounts must be RunMount instances, got {type(mount).__name__}",
                        context={"stage": repr(self)},
                    )
                if isinstance(mount, BindMount) and mount.options.from_ is not None:
                    if not isinstance(mount.options.from_, str):
                        self._check_source(mount.options.from_, "bind mount")

        return self._append(RunCommand(args=RunArgs(command=recorded, mounts=attached)))

    def _argv(self, command: Sequence[str], instruction: str) -> Tuple[str, ...]:
        if isinstance(command, str):
            raise InstructionError(
                f"{instruction} takes an argv list, not a string",
                hint=f"use {instruction}([{command!r}])",
                context={"stage": repr(self)},
            )
        return tuple(command)

    def shell(self, command: Sequence[str]) -> "Stage":
        return self._append(ShellCommand(args=self._argv(command, "shell")))

    def env(self, key: str, value: str) -> "Stage":
        """
        Sets an environment variable for every later instruction in this stage.
        """
        if not key:
            raise InstructionError("env needs a non-empty key", context={"stage": repr(self)})
        return self._append(EnvCommand(args=KeyValueArgs(key=key, value=value)))

    def copy(self, options: Any = None, **kwargs: Any) -> "Stage":
        """
        Copies files from the build context, or from another stage when
        ``from_`` is set. Takes a ``CopyOptions``, a mapping (wire names such as
        ``from`` are accepted) or keyword arguments.
        """
        if options is None:
            options = CopyOptions(**kwargs)
        elif kwargs:
            raise TypeError("copy takes CopyOptions or keyword arguments, not both")
        elif not isinstance(options, CopyOptions):
            options = CopyOptions.model_validate(options)

        if options.from_ is not None:
            self._check_source(options.from_, "copy")
        return self._append(CopyCommand(args=options))

    def merge(self, stages: Sequence["Stage"]) -> "Stage":
        """
        Overlays the filesystems of ``stages`` onto this one, in order. Later
        entries win on conflicting paths.
        """
        stages = tuple(stages)
        if not stages:
            raise StageReferenceError("merge needs at least one stage", context={"stage": repr(self)})
        for stage in stages:
            self._check_source(stage, "merge")
        return self._append(MergeCommand(args=stages))

    def entrypoint(self, command: Sequence[str]) -> "Stage":
        return self._append(EntrypointCommand(args=self._argv(command, "entrypoint")))

    def cmd(self, command: Sequence[str]) -> "Stage":
        return self._append(CmdCommand(args=self._argv(command, "cmd")))

    def label(self, key: str, value: str) -> "Stage":
        if not key:
            raise InstructionError("label needs a non-empty key", context={"stage": repr(self)})
        return self._append(LabelCommand(args=KeyValueArgs(key=key, value=value)))

    def volume(self, path: str) -> "Stage":
        return self._append(VolumeCommand(args=path))

    def workdir(self, path: str) -> "Stage":
        """
        Sets the working directory for the ``cmd``, ``run``, ``entrypoint`` and
        ``copy`` instructions that follow it, creating it if it doesn't exist.

        A relative path is resolved against the previous working directory.
        """
        return self._append(WorkdirCommand(args=path))

    def chdir(self, path: str) -> "Stage":
        """
        Like ``workdir``, but only for the next instruction.
        """
        return self._append(ChdirCommand(args=path))

    def user(self, user: str) -> "Stage":
        return self._append(UserCommand(args=user))

    def references(self) -> List["Stage"]:
        """
        Returns the stages this one copies from, merges or bind mounts, in
        instruction order and without repeats.
        """
        found: List[Stage] = []
        for command in self._commands:
            if isinstance(command, CopyCommand):
                candidates: Iterable[Any] = (command.args.from_,)
            elif isinstance(command, MergeCommand):
                candidates = command.args
            elif isinstance(command, RunCommand):
                candidates = (
                    mount.options.from_
                    for mount in command.args.mounts or ()
                    if isinstance(mount, BindMount)
                )
            else:
                continue
            for candidate in candidates:
                if isinstance(candidate, Stage) and not any(candidate is s for s in found):
                    found.append(candidate)
        return found

    def clone(self, *, name: Any = _KEEP_NAME) -> "Stage":
        """
        Returns a stage of the same class with the same base and instructions
        that can be extended independently. ``name``, when given, replaces the
        name (None leaves the copy unnamed).
        """
        twin = shallow_copy(self)
        twin._commands = list(self._commands)
        if name is not _KEEP_NAME:
            twin._name = name
        return twin

    def build(self) -> BuildPlan:
        """
        Returns an independent snapshot of this stage and every stage it
        references. Later changes to any of them do not affect the plan.
        """
        plan = self.snapshot()
        logger.debug("%r: built plan with %d commands", self, len(plan.commands))
        return plan

    def snapshot(self, visiting: FrozenSet["Stage"] = frozenset()) -> BuildPlan:
        if self in visiting:
            raise CyclicStageError(
                "stages reference each other in a cycle",
                context={"stage": repr(self)},
            )
        visiting = visiting | {self}
        return BuildPlan(
            base=snapshot_value(self._base, visiting),
            commands=tuple(snapshot_value(command, visiting) for command in self._commands),
            name=self._name,
        )


class Image(Stage):
    """
    A stage starting from an existing image, optionally for a given platform.
    """

    def __init__(self, image: str, platform: Optional[str] = None, *, name: Optional[str] = None):
        super().__init__(ImageBase(args=ImageArgs(image=image, platform=platform)), name=name)


class Scratch(Stage):
    """
    A stage starting from an empty filesystem.
    """

    def __init__(self, *, name: Optional[str] = None):
        super().__init__(ScratchBase(), name=name)

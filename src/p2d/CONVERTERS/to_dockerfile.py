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
Converters for rendering stages as BuildKit Dockerfiles.
"""
import json
import logging
import os
import posixpath
from enum import Enum
from typing import Dict, List, Optional

from jinja2 import Template

from ..BUILDERS.stage import Stage
from ..errors import CyclicStageError
from ..MODELS.commands import (
    ChdirCommand,
    CmdCommand,
    Command,
    CopyCommand,
    EntrypointCommand,
    EnvCommand,
    ImageBase,
    LabelCommand,
    MergeCommand,
    RunCommand,
    ShellCommand,
    UserCommand,
    VolumeCommand,
    WorkdirCommand,
)
from ..MODELS.copy_options import CopyFlags
from ..MODELS.mounts import RunMount

logger = logging.getLogger(__name__)

DOCKERFILE_TEMPLATE = """# syntax={{ syntax }}
{% for stage in stages %}

FROM {{ stage.origin }} AS {{ stage.name }}
{% for line in stage.lines %}
{{ line }}
{% endfor %}
{% endfor %}
"""

# Option names whose Dockerfile spelling differs from the python one.
_MOUNT_FLAG_NAMES = {
    "from_": "from",
    "read_only": "readonly",
}

_DEFAULT_COPY_FLAGS = CopyFlags()


def collect_stages(stage: Stage) -> List[Stage]:
    """
    Returns ``stage`` and every stage it depends on, dependencies first, each once.

    :raises CyclicStageError: If the stages reference each other in a loop.
    """
    ordered: List[Stage] = []
    done = set()

    def visit(current: Stage, path: frozenset):
        if current in path:
            raise CyclicStageError("stages reference each other in a cycle", context={"stage": repr(current)})
        if current in done:
            return
        for dependency in current.references():
            visit(dependency, path | {current})
        done.add(current)
        ordered.append(current)

    visit(stage, frozenset())
    return ordered


def _words(*values: str) -> str:
    """Shell words, switching to the JSON form when a value contains whitespace."""
    if any(not value or any(ch.isspace() for ch in value) for value in values):
        return json.dumps(list(values), ensure_ascii=False)
    return " ".join(values)


def _quote(value: str) -> str:
    """
    Double-quotes ``value`` for ENV and LABEL. Only ``"``, ``\\`` and ``$`` are
    escaped; everything else, non-ASCII text included, is written as is.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def _heredoc(prefix: str, script: str) -> str:
    """
    Renders a multi-line shell script as ``prefix <<EOF`` followed by the script.
    The delimiter is changed if the script has a line equal to it.
    """
    body = script[:-1] if script.endswith("\n") else script
    script_lines = {line.strip() for line in body.split("\n")}
    delimiter = "EOF"
    suffix = 0
    while delimiter in script_lines:
        suffix += 1
        delimiter = f"EOF_{suffix}"
    return f"{prefix} <<{delimiter}\n{body}\n{delimiter}"


class DockerfileConverter:
    """
    Renders a stage and the stages it references as one multi-stage Dockerfile.
    """

    def __init__(self, stage: Stage, syntax: str = "docker/dockerfile:1"):
        """
        Initializes the converter.

        :param stage: The final stage of the build.
        :param syntax: The Dockerfile frontend written in the ``# syntax=`` header.
        """
        self.stage = stage
        self.syntax = syntax
        self.template = Template(DOCKERFILE_TEMPLATE, trim_blocks=True, lstrip_blocks=True)

    def stage_names(self, stages: List[Stage]) -> Dict[Stage, str]:
        names: Dict[Stage, str] = {}
        taken = set()
        for index, stage in enumerate(stages):
            name = stage.name or f"stage-{index}"
            if name in taken:
                name = f"{name}-{index}"
            taken.add(name)
            names[stage] = name
        return names

    def render(self) -> str:
        """
        Renders the Dockerfile text.

        :return: The Dockerfile content.
        """
        stages = collect_stages(self.stage)
        names = self.stage_names(stages)
        rendered = []
        for stage in stages:
            rendered.append({
                "name": names[stage],
                "origin": self._origin(stage),
                "lines": self._stage_lines(stage, names),
            })
            logger.debug("Rendered stage %s with %d commands", names[stage], len(stage.commands))
        return self.template.render(syntax=self.syntax, stages=rendered)

    def convert(self, output_path: str = "Dockerfile") -> str:
        """
        Writes the rendered Dockerfile.

        :param output_path: Where to write the file.
        :return: The path written.
        """
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.render())
        logger.info("Dockerfile written to %s", output_path)
        return output_path

    def _origin(self, stage: Stage) -> str:
        base = stage.base
        if isinstance(base, ImageBase):
            if base.args.platform:
                return f"--platform={base.args.platform} {base.args.image}"
            return base.args.image
        return "scratch"

    def _stage_lines(self, stage: Stage, names: Dict[Stage, str]) -> List[str]:
        lines: List[str] = []
        # Scratch starts at /, an image at its own (unknown) working directory.
        cwd: Optional[str] = None if isinstance(stage.base, ImageBase) else "/"
        restore: Optional[str] = None
        chdir_at: Optional[int] = None

        for command in stage.commands:
            if isinstance(command, ChdirCommand):
                if chdir_at is None:
                    chdir_at = len(lines)
                    restore = cwd
                    lines.append(f"WORKDIR {command.args}")
                else:
                    # Only the last of consecutive chdirs applies.
                    lines[chdir_at] = f"WORKDIR {command.args}"
                continue

            lines.extend(self._command_lines(command, names))

            if isinstance(command, WorkdirCommand):
                if posixpath.isabs(command.args):
                    cwd = posixpath.normpath(command.args)
                elif cwd is not None:
                    cwd = posixpath.normpath(posixpath.join(cwd, command.args))
                chdir_at = None
            elif chdir_at is not None:
                if restore is None:
                    logger.warning(
                        "Working directory before chdir is unknown, restoring to / in %r", stage
                    )
                lines.append(f"WORKDIR {restore or '/'}")
                chdir_at = None

        if chdir_at is not None:
            # A trailing chdir applies to nothing.
            del lines[chdir_at]
        return lines

    def _command_lines(self, command: Command, names: Dict[Stage, str]) -> List[str]:
        args = command.args
        if isinstance(command, RunCommand):
            parts = ["RUN"]
            parts.extend(self._mount_flag(mount, names) for mount in args.mounts or ())
            if not isinstance(args.command, str):
                parts.append(json.dumps(list(args.command)))
            elif "\n" in args.command:
                return [_heredoc(" ".join(parts), args.command)]
            else:
                parts.append(args.command)
            return [" ".join(parts)]
        if isinstance(command, ShellCommand):
            return [f"SHELL {json.dumps(list(args))}"]
        if isinstance(command, EntrypointCommand):
            return [f"ENTRYPOINT {json.dumps(list(args))}"]
        if isinstance(command, CmdCommand):
            return [f"CMD {json.dumps(list(args))}"]
        if isinstance(command, EnvCommand):
            return [f"ENV {args.key}={_quote(args.value)}"]
        if isinstance(command, LabelCommand):
            key = _quote(args.key) if any(ch.isspace() for ch in args.key) else args.key
            return [f"LABEL {key}={_quote(args.value)}"]
        if isinstance(command, CopyCommand):
            return [self._copy_line(command, names)]
        if isinstance(command, MergeCommand):
            return [f"COPY --from={names[stage]} / /" for stage in args]
        if isinstance(command, VolumeCommand):
            return [f"VOLUME {json.dumps([args])}"]
        if isinstance(command, WorkdirCommand):
            return [f"WORKDIR {args}"]
        if isinstance(command, UserCommand):
            return [f"USER {args}"]
        raise TypeError(f"Cannot render {type(command).__name__}")

    def _copy_line(self, command: CopyCommand, names: Dict[Stage, str]) -> str:
        options = command.args
        flags = options.opts
        # ADD has no --from.
        unpack = flags.attempt_unpack and options.from_ is None
        parts = ["ADD" if unpack else "COPY"]
        if options.from_ is not None:
            parts.append(f"--from={names[options.from_]}")

        ignored = [
            name for name in CopyFlags.model_fields
            if getattr(flags, name) != getattr(_DEFAULT_COPY_FLAGS, name)
            and not (name == "attempt_unpack" and unpack)
        ]
        if ignored:
            logger.warning("Copy flags %s have no Dockerfile equivalent and are ignored", ", ".join(ignored))

        parts.append(_words(options.source, options.destination))
        return " ".join(parts)

    def _mount_flag(self, mount: RunMount, names: Dict[Stage, str]) -> str:
        parts = [f"type={mount.type}"]
        options = mount.options
        for field_name in type(options).model_fields:
            value = getattr(options, field_name)
            if value is None or value is False:
                continue
            key = _MOUNT_FLAG_NAMES.get(field_name, field_name)
            if isinstance(value, Stage):
                value = names[value]
            elif isinstance(value, Enum):
                value = value.value
            elif value is True:
                value = "true"
            elif field_name == "mode":
                value = f"{value:04o}"
            parts.append(f"{key}={value}")
        return "--mount=" + ",".join(parts)

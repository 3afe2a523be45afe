"""
Parsers for Dockerfiles, extracting instructions and turning them into stages.
"""
import json
import logging
import re
import shlex
from typing import Any, Dict, List, Optional

from ..BUILDERS.stage import Image, Scratch, Stage
from ..errors import DockerfileSyntaxError
from ..MODELS.copy_options import CopyFlags
from ..MODELS.dockerfile_ast import Instruction
from ..MODELS.mounts import MOUNT_TYPES, RunMount

logger = logging.getLogger(__name__)

# Instructions whose leading --flags are options rather than arguments.
FLAGGED_INSTRUCTIONS = {"FROM", "RUN", "COPY", "ADD", "HEALTHCHECK"}

# Instructions with no equivalent in a stage; they are skipped.
SKIPPED_INSTRUCTIONS = {"ARG", "EXPOSE", "HEALTHCHECK", "ONBUILD", "STOPSIGNAL", "MAINTAINER"}

_FLAG = re.compile(r'--([A-Za-z][\w-]*)(?:=(\S*))?\s*')

# RUN ... <<EOF, the script lines, then EOF on a line of its own. <<- strips leading tabs.
_HEREDOC = re.compile(
    r'^([ \t]*RUN\b[^\n]*?)[ \t]*<<(-?)(["\']?)([A-Za-z_]\w*)\3[ \t]*\n(.*?)\n[ \t]*\4[ \t]*$',
    re.MULTILINE | re.DOTALL | re.IGNORECASE,
)
_HEREDOC_MARK = re.compile(r'\x00(\d+)\x00')

_MOUNT_KEYS = {
    "target": "target",
    "dst": "target",
    "destination": "target",
    "source": "source",
    "src": "source",
    "from": "from_",
    "id": "id",
    "uid": "uid",
    "gid": "gid",
    "mode": "mode",
    "required": "required",
    "sharing": "sharing",
    "size": "size",
    "env": "env",
    "readonly": "read_only",
    "ro": "read_only",
    "rw": "rw",
    "readwrite": "rw",
}

_SIZE_UNITS = {"": 1, "b": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("", "true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise DockerfileSyntaxError(f"Invalid boolean {value!r}")


def _parse_size(value: str) -> int:
    match = re.fullmatch(r'(\d+)([bkmg]?)', value.lower())
    if not match:
        raise DockerfileSyntaxError(f"Invalid size {value!r}")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2)]


class DockerfileParser:
    """
    Parser for Dockerfile instructions.
    """
    def parse(self, dockerfile_path: str) -> List[Instruction]:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            List[Instruction]: List of parsed instructions.
        """
        with open(dockerfile_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> List[Instruction]:
        """
        Parses a Dockerfile from a string content.

        Args:
            content (str): Content of the Dockerfile.

        Returns:
            List[Instruction]: List of parsed instructions.
        """
        instructions = []

        # 0. Set heredoc scripts aside so comments and continuations inside them survive
        scripts: List[str] = []

        def set_aside(match):
            body = match.group(5)
            if match.group(2):
                body = "\n".join(line.lstrip("\t") for line in body.split("\n"))
            scripts.append(body)
            return f"{match.group(1)} \x00{len(scripts) - 1}\x00"

        content = _HEREDOC.sub(set_aside, content)

        # 1. Remove comments
        content = re.sub(r'^\s*#.*$', '', content, flags=re.MULTILINE)

        # 2. Handle line continuations with \
        content = re.sub(r'\\\s*\n', ' ', content)

        # 3. Match instructions; keywords are case-insensitive
        pattern = re.compile(r'^[ \t]*([A-Za-z]+)[ \t]+(.*)$', re.MULTILINE)

        for match in pattern.finditer(content):
            inst = match.group(1).upper()
            args_str = match.group(2).strip()

            # 4. Leading --name=value options
            flags = []
            if inst in FLAGGED_INSTRUCTIONS:
                while args_str.startswith('--'):
                    flag = _FLAG.match(args_str)
                    if not flag:
                        break
                    flags.append((flag.group(1).lower(), flag.group(2) or ""))
                    args_str = args_str[flag.end():]

            # 5. Handle JSON/Exec form vs Shell form
            exec_form = False
            args = [args_str]
            heredoc = _HEREDOC_MARK.fullmatch(args_str)
            if heredoc and int(heredoc.group(1)) < len(scripts):
                args = [scripts[int(heredoc.group(1))]]
            elif "\x00" in args_str:
                raise DockerfileSyntaxError(
                    "Only RUN <<EOF without a command before the heredoc is supported",
                    context={"line": match.group(0).strip()},
                )
            elif args_str.startswith('[') and args_str.endswith(']'):
                try:
                    decoded = json.loads(args_str)
                except json.JSONDecodeError:
                    # Not valid JSON, treat as shell form
                    decoded = None
                if isinstance(decoded, list) and decoded and all(isinstance(item, str) for item in decoded):
                    args = decoded
                    exec_form = True

            instructions.append(Instruction(
                instruction=inst,
                arguments=args,
                raw=match.group(0).strip(),
                flags=flags,
                exec_form=exec_form,
            ))

        return instructions

    def to_stages(self, content: str) -> List[Stage]:
        """
        Builds the stages described by Dockerfile text, in file order. The
        last stage is the build target.

        Raises:
            DockerfileSyntaxError: If the text cannot be expressed as stages.
        """
        stages: List[Stage] = []
        by_name: Dict[str, Stage] = {}
        current: Optional[Stage] = None

        for inst in self.parse_from_string(content):
            if inst.instruction == "FROM":
                current = self._from(inst, stages, by_name)
                stages.append(current)
                if current.name:
                    by_name[current.name] = current
                continue

            if inst.instruction in SKIPPED_INSTRUCTIONS:
                logger.warning("Skipping %s, it has no stage equivalent: %s", inst.instruction, inst.raw)
                continue
            if current is None:
                raise DockerfileSyntaxError(
                    f"{inst.instruction} before the first FROM",
                    context={"line": inst.raw},
                )

            handler = getattr(self, f"_apply_{inst.instruction.lower()}", None)
            if handler is None:
                raise DockerfileSyntaxError(
                    f"Unknown instruction {inst.instruction}",
                    context={"line": inst.raw},
                )
            handler(current, inst, stages, by_name)

        if not stages:
            raise DockerfileSyntaxError("Dockerfile has no FROM instruction")
        return stages

    def to_stage(self, content: str) -> Stage:
        """
        Returns the target (last) stage described by Dockerfile text.
        """
        return self.to_stages(content)[-1]

    def _from(self, inst: Instruction, stages: List[Stage], by_name: Dict[str, Stage]) -> Stage:
        tokens = inst.arguments[0].split()
        if len(tokens) == 1:
            name = None
        elif len(tokens) == 3 and tokens[1].lower() == "as":
            name = tokens[2]
        else:
            raise DockerfileSyntaxError("Expected FROM image [AS name]", context={"line": inst.raw})

        image = tokens[0]
        platforms = inst.flag_values("platform")
        platform = platforms[-1] if platforms else None

        if image in by_name:
            if platform:
                logger.warning("Ignoring --platform on FROM of stage %s", image)
            return by_name[image].clone(name=name)
        if image.lower() == "scratch":
            return Scratch(name=name)
        return Image(image, platform, name=name)

    def _source_stage(self, value: str, stages: List[Stage], by_name: Dict[str, Stage]) -> Stage:
        """
        Resolves a --from value: a stage name, a stage index or an image reference.
        """
        if value in by_name:
            return by_name[value]
        if value.isdigit():
            index = int(value)
            if index >= len(stages):
                raise DockerfileSyntaxError(f"Stage index {index} does not exist yet")
            return stages[index]
        return Image(value)

    def _skip_flags(self, inst: Instruction, known: set) -> None:
        for key, _ in inst.flags:
            if key not in known:
                logger.warning("Ignoring unsupported --%s on %s", key, inst.instruction)

    def _apply_run(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        self._skip_flags(inst, {"mount"})
        mounts = [
            self._mount(spec, stages, by_name) for spec in inst.flag_values("mount")
        ]
        command: Any = inst.arguments if inst.exec_form else inst.arguments[0]
        stage.run(command, mounts or None)

    def _mount(self, spec: str, stages: List[Stage], by_name: Dict[str, Stage]) -> RunMount:
        fields: Dict[str, str] = {}
        for part in spec.split(","):
            key, _, value = part.partition("=")
            fields[key.strip().lower()] = value.strip()

        mount_type = fields.pop("type", "bind")
        mount_class = MOUNT_TYPES.get(mount_type)
        if mount_class is None:
            raise DockerfileSyntaxError(f"Unknown mount type {mount_type!r}", context={"mount": spec})

        options: Dict[str, Any] = {}
        for key, value in fields.items():
            name = _MOUNT_KEYS.get(key)
            if name is None:
                raise DockerfileSyntaxError(f"Unknown mount option {key!r}", context={"mount": spec})
            if mount_type == "bind" and name == "read_only":
                # Bind mounts are read-only unless rw is set.
                continue
            if name in ("uid", "gid"):
                options[name] = int(value)
            elif name == "mode":
                options[name] = int(value, 8)
            elif name == "size":
                options[name] = _parse_size(value)
            elif name in ("required", "read_only", "rw"):
                options[name] = _parse_bool(value)
            elif name == "from_" and mount_type == "bind":
                options[name] = by_name.get(value, value)
            else:
                options[name] = value
        return mount_class(**options)

    def _apply_copy(self, stage: Stage, inst: Instruction, stages, by_name, unpack: bool = False) -> None:
        self._skip_flags(inst, {"from"})
        paths = inst.arguments if inst.exec_form else shlex.split(inst.arguments[0])
        if len(paths) < 2:
            raise DockerfileSyntaxError(
                f"{inst.instruction} needs a source and a destination",
                context={"line": inst.raw},
            )

        froms = inst.flag_values("from")
        source_stage = self._source_stage(froms[-1], stages, by_name) if froms else None
        flags = CopyFlags(attempt_unpack=unpack)
        *sources, destination = paths
        for source in sources:
            stage.copy(from_=source_stage, source=source, destination=destination, opts=flags)

    def _apply_add(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        self._apply_copy(stage, inst, stages, by_name, unpack=True)

    def _apply_env(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        for key, value in self._pairs(inst):
            stage.env(key, value)

    def _apply_label(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        for key, value in self._pairs(inst):
            stage.label(key, value)

    def _pairs(self, inst: Instruction) -> List[tuple]:
        text = inst.arguments[0]
        if not text.strip():
            raise DockerfileSyntaxError(f"{inst.instruction} needs arguments", context={"line": inst.raw})
        first = text.split(None, 1)[0]
        if "=" not in first:
            # Legacy "KEY value" form
            parts = text.split(None, 1)
            return [(parts[0], parts[1] if len(parts) > 1 else "")]
        pairs = []
        for token in self._split_words(inst):
            key, sep, value = token.partition("=")
            if not sep:
                raise DockerfileSyntaxError(
                    f"Expected key=value in {inst.instruction}",
                    context={"line": inst.raw},
                )
            pairs.append((key, value))
        return pairs

    @staticmethod
    def _split_words(inst: Instruction) -> List[str]:
        """
        Splits ENV and LABEL arguments into words. Single quotes are literal;
        inside double quotes a backslash only escapes ``"``, ``\\`` and ``$``.
        """
        words: List[str] = []
        word: Optional[str] = None
        quote: Optional[str] = None
        chars = iter(inst.arguments[0])
        for ch in chars:
            if quote is None and ch.isspace():
                if word is not None:
                    words.append(word)
                    word = None
                continue
            word = word or ""
            if ch == quote:
                quote = None
            elif quote is None and ch in "\"'":
                quote = ch
            elif ch == "\\" and quote != "'":
                escaped = next(chars, "")
                if quote == '"' and escaped not in ('"', "\\", "$"):
                    word += ch
                word += escaped
            else:
                word += ch
        if quote is not None:
            raise DockerfileSyntaxError(
                f"Unterminated quote in {inst.instruction}",
                context={"line": inst.raw},
            )
        if word is not None:
            words.append(word)
        return words

    def _apply_workdir(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        stage.workdir(inst.arguments[0])

    def _apply_user(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        stage.user(inst.arguments[0])

    def _apply_volume(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        paths = inst.arguments if inst.exec_form else inst.arguments[0].split()
        for path in paths:
            stage.volume(path)

    def _apply_shell(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        if not inst.exec_form:
            raise DockerfileSyntaxError("SHELL requires the JSON array form", context={"line": inst.raw})
        stage.shell(inst.arguments)

    def _apply_entrypoint(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        stage.entrypoint(self._argv(inst))

    def _apply_cmd(self, stage: Stage, inst: Instruction, stages, by_name) -> None:
        stage.cmd(self._argv(inst))

    def _argv(self, inst: Instruction) -> List[str]:
        if inst.exec_form:
            return inst.arguments
        return ["/bin/sh", "-c", inst.arguments[0]]

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
Host-side build argument resolution for authoring plans.

The execution engine resolves build arguments itself while it runs a plan;
``BuildArgs`` gives plan authors the same lookup (caller-defined values plus
the well-known platform keys) so recipes can be parameterized before the plan
is handed over.
"""
import platform as host_platform
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from ..MODELS.engine import DEFAULT_BUILD_ARGS
from .string_interpolation import BuildArgInterpolator

_MACHINE_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "386",
    "i686": "386",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

_MACHINE_VARIANT = {
    "armv7l": "v7",
    "armv6l": "v6",
}


@dataclass(frozen=True)
class Platform:
    """
    An ``os/arch[/variant]`` platform string, e.g. ``linux/arm64/v8``.
    """
    os: str
    architecture: str
    variant: str = ""

    @classmethod
    def parse(cls, value: str) -> "Platform":
        parts = value.split("/")
        if len(parts) not in (2, 3) or not all(parts):
            raise ValueError(f"Invalid platform {value!r}, expected os/arch[/variant]")
        return cls(*parts)

    @classmethod
    def host(cls) -> "Platform":
        machine = host_platform.machine().lower()
        return cls(
            os=host_platform.system().lower() or "linux",
            architecture=_MACHINE_ARCH.get(machine, machine),
            variant=_MACHINE_VARIANT.get(machine, ""),
        )

    def __str__(self) -> str:
        if self.variant:
            return f"{self.os}/{self.architecture}/{self.variant}"
        return f"{self.os}/{self.architecture}"


class BuildArgs:
    """
    Resolves build arguments from caller-defined values and the platform keys
    (``BUILDPLATFORM``, ``TARGETARCH``, ...). Caller values take precedence.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, str]] = None,
        *,
        build_platform: Optional[str] = None,
        target_platform: Optional[str] = None,
    ):
        self.values: Dict[str, str] = dict(values or {})
        self.build_platform = Platform.parse(build_platform) if build_platform else Platform.host()
        self.target_platform = (
            Platform.parse(target_platform) if target_platform else self.build_platform
        )

    @classmethod
    def from_env_file(cls, path: str, **kwargs) -> "BuildArgs":
        """
        Loads caller-defined arguments from a ``.env`` style file.
        """
        values = {key: value for key, value in dotenv_values(path).items() if value is not None}
        return cls(values, **kwargs)

    def platform_args(self) -> Dict[str, str]:
        args = {}
        for prefix, plat in (("BUILD", self.build_platform), ("TARGET", self.target_platform)):
            args[f"{prefix}PLATFORM"] = str(plat)
            args[f"{prefix}OS"] = plat.os
            args[f"{prefix}ARCH"] = plat.architecture
            args[f"{prefix}VARIANT"] = plat.variant
        return {key: args[key] for key in DEFAULT_BUILD_ARGS}

    def as_dict(self) -> Dict[str, str]:
        resolved = self.platform_args()
        resolved.update(self.values)
        return resolved

    def __call__(self, key: str, default: Optional[str] = None) -> str:
        resolved = self.as_dict()
        if key in resolved:
            return resolved[key]
        if default is not None:
            return default
        raise KeyError(f"Build argument {key} is not defined")

    def expand(self, template: str) -> str:
        """
        Expands build argument references such as ``${TARGETARCH}`` in ``template``.
        """
        return BuildArgInterpolator.interpolate(template, self.as_dict())

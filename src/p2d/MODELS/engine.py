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
Interfaces of the host collaborators that consume build plans.

Nothing here is implemented by p2d itself: an execution engine provides
``solve`` and resolves build arguments while it runs a plan.
"""
from typing import TYPE_CHECKING, Optional, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from ..BUILDERS.stage import Stage

DEFAULT_BUILD_ARGS: Tuple[str, ...] = (
    "BUILDPLATFORM",
    "BUILDOS",
    "BUILDARCH",
    "BUILDVARIANT",
    "TARGETPLATFORM",
    "TARGETOS",
    "TARGETARCH",
    "TARGETVARIANT",
)


@runtime_checkable
class SolveResponse(Protocol):
    def read_file(self, path: str) -> str:
        """Returns the contents of ``path`` in the solved filesystem."""


@runtime_checkable
class Solver(Protocol):
    def __call__(self, stage: "Stage") -> SolveResponse:
        """Executes the plan of ``stage``."""


@runtime_checkable
class BuildArgResolver(Protocol):
    def __call__(self, key: str, default: Optional[str] = None) -> str:
        """Resolves a build argument, falling back to ``default``."""

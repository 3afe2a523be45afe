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
Error types raised while describing build plans.

Shape errors on mounts and copy descriptors surface as
``pydantic.ValidationError``; everything below covers the checks the models
cannot express on their own.
"""
from typing import Dict, Mapping, Optional


class P2DError(Exception):
    """
    Base error carrying an optional hint and context.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(message)
        self.hint = hint
        self.context: Dict[str, str] = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)


class StageReferenceError(P2DError, ValueError):
    """
    A copy, merge or mount source is not a usable stage.
    """


class CyclicStageError(P2DError, ValueError):
    """
    Stages reference each other in a loop and cannot be snapshotted.
    """


class InstructionError(P2DError, ValueError):
    """
    An instruction was given arguments it cannot record.
    """


class DockerfileSyntaxError(P2DError, ValueError):
    """
    Dockerfile text could not be turned into stages.
    """


class TargetLoadError(P2DError):
    """
    A ``module:attribute`` target could not be resolved to a stage.
    """

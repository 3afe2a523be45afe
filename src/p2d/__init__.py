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
P2D - Python to Dockerfile

Describe multi-stage container image builds as Python objects and hand the
resulting build plan to an execution engine.
"""
from .BUILDERS.stage import Image, Scratch, Stage
from .MODELS.build_plan import BuildPlan
from .MODELS.copy_options import CopyFlags, CopyOptions
from .MODELS.mounts import (
    BindMount,
    CacheRunMount,
    SecretRunMount,
    SSHRunMount,
    TmpfsRunMount,
)

__version__ = "0.1.0"
__author__ = "Michael Maillet, Damien Davison, Sacha Davison"
__license__ = "Apache-2.0"

__all__ = [
    "BindMount",
    "BuildPlan",
    "CacheRunMount",
    "CopyFlags",
    "CopyOptions",
    "Image",
    "Scratch",
    "SecretRunMount",
    "SSHRunMount",
    "Stage",
    "TmpfsRunMount",
]

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
Go build recipe: a builder stage with module caches and a scratch runtime stage.
"""
from typing import Optional

from ..BUILDERS.stage import Image, Scratch, Stage
from ..MODELS.mounts import BindMount, CacheRunMount


class Golang(Image):
    """
    An Alpine based Go toolchain image, e.g. ``Golang("golang:1.22-alpine")``.
    """

    def __init__(self, image: str, platform: Optional[str] = None, *, name: Optional[str] = None):
        super().__init__(image, platform, name=name)

    def compile(self, binary: str) -> Stage:
        """
        Builds the module in the build context as a static binary and returns a
        scratch stage running it from ``binary``.

        The build instructions are added to this stage, so call it once per
        instance.
        """
        builder = (
            self.run("apk add git")
            .workdir("/app")
            .env("CGO_ENABLED", "0")
            .run(
                "go build -o /binary",
                [
                    BindMount(target="."),
                    CacheRunMount(target="/root/.cache"),
                    CacheRunMount(target="/go/pkg/mod"),
                ],
            )
        )

        return (
            Scratch()
            .copy(from_=builder, source="/binary", destination=binary)
            .entrypoint([binary])
        )

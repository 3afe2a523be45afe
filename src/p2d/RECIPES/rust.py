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
Rust build recipe producing a statically linked musl binary.
"""
import posixpath
from typing import Optional

from ..BUILDERS.stage import Image, Scratch, Stage
from ..MODELS.mounts import BindMount, CacheRunMount


class Rust(Image):
    """
    An Alpine based Rust toolchain image, e.g. ``Rust("rust:1.77-alpine")``.
    """

    def __init__(self, image: str, platform: Optional[str] = None, *, name: Optional[str] = None):
        super().__init__(image, platform, name=name)

    def compile(self, binary: str, package: Optional[str] = None) -> Stage:
        """
        Builds ``package`` (default: the basename of ``binary``) in release
        mode and returns a scratch stage running it from ``binary``.
        """
        package = package or posixpath.basename(binary)
        builder = (
            self.run("apk add musl-dev")
            .workdir("/app")
            .env("CARGO_TARGET_DIR", "/app/target")
            .run(
                f"cargo build --release --bin {package} && cp /app/target/release/{package} /binary",
                [
                    BindMount(target=".", rw=True),
                    CacheRunMount(target="/usr/local/cargo/registry"),
                    CacheRunMount(target="/app/target", sharing="locked"),
                ],
            )
        )

        return (
            Scratch()
            .copy(from_=builder, source="/binary", destination=binary)
            .entrypoint([binary])
        )

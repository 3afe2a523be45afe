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
Models describing a file copy from the build context or another stage.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CopyFlags(BaseModel):
    """
    Behavioral flags of a copy. The defaults are part of the plan format and
    are always serialized.
    """
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    follow_symlinks: bool = True
    copy_dir_contents_only: bool = True
    attempt_unpack: bool = False
    create_dest_path: bool = True
    allow_wildcard: bool = True
    allow_empty_wildcard: bool = True


class CopyOptions(BaseModel):
    """
    A copy of ``source`` to ``destination``.

    ``from_`` (wire name ``from``) is the stage the files come from; None
    means the build context.
    """
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    from_: Optional[Any] = Field(default=None, alias="from")
    source: str
    destination: str
    opts: CopyFlags = Field(default_factory=CopyFlags)

    @field_validator("opts", mode="before")
    @classmethod
    def _default_flags(cls, value: Any) -> Any:
        return CopyFlags() if value is None else value

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
The build plan handed to an execution engine, and the snapshot step that
produces it.
"""
import copy
import json
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, PrivateAttr


class BuildPlan(BaseModel):
    """
    Serialized snapshot of a stage.

    The plan keeps its own copy of the data it is given and only hands out
    copies, so neither the stage that produced it nor a consumer can change it.
    """
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None

    _base: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _commands: Tuple[Dict[str, Any], ...] = PrivateAttr(default=())

    def __init__(
        self,
        base: Dict[str, Any],
        commands: Iterable[Dict[str, Any]] = (),
        name: Optional[str] = None,
    ):
        super().__init__(name=name)
        self._base = copy.deepcopy(dict(base))
        self._commands = tuple(copy.deepcopy(list(commands)))

    @property
    def base(self) -> Dict[str, Any]:
        return copy.deepcopy(self._base)

    @property
    def commands(self) -> Tuple[Dict[str, Any], ...]:
        return tuple(copy.deepcopy(list(self._commands)))

    def __repr_args__(self):
        yield "base", self._base
        yield "commands", self._commands
        yield "name", self.name

    def to_dict(self) -> Dict[str, Any]:
        """
        Returns the plan as plain data. The stage name is only present when set.
        """
        plan: Dict[str, Any] = {
            "base": self.base,
            "commands": list(self.commands),
        }
        if self.name is not None:
            plan["name"] = self.name
        return plan

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)


def snapshot_value(value: Any, visiting: FrozenSet[Any] = frozenset()) -> Any:
    """
    Converts a model value into plain data, building new containers all the way
    down.

    Models become dicts keyed by their wire names, enums become their values,
    and a referenced stage becomes its own nested plan taken at this moment.
    ``visiting`` holds the stages currently being snapshotted.
    """
    from ..BUILDERS.stage import Stage

    if isinstance(value, Stage):
        return value.snapshot(visiting).to_dict()
    if isinstance(value, BaseModel):
        return {
            (field.alias or name): snapshot_value(getattr(value, name), visiting)
            for name, field in type(value).model_fields.items()
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [snapshot_value(item, visiting) for item in value]
    if isinstance(value, dict):
        return {key: snapshot_value(item, visiting) for key, item in value.items()}
    return value

"""
Models for the Dockerfile Abstract Syntax Tree.
"""
from typing import List, Tuple

from pydantic import BaseModel


class Instruction(BaseModel):
    """
    Represents a single instruction in a Dockerfile.

    ``flags`` holds the leading ``--name=value`` options in order, and
    ``exec_form`` tells whether ``arguments`` came from a JSON array. In shell
    form ``arguments`` holds the remaining text as a single string.
    """
    instruction: str
    arguments: List[str]
    raw: str
    flags: List[Tuple[str, str]] = []
    exec_form: bool = False

    def flag_values(self, name: str) -> List[str]:
        return [value for key, value in self.flags if key == name]


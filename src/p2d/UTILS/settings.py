"""
Settings for the p2d command line, read from ``P2D_*`` environment variables
and an optional ``.env`` file.
"""
import os
from typing import Literal, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, field_validator

ENV_PREFIX = "P2D_"


class Settings(BaseModel):
    """
    Configuration shared by the CLI commands.
    """
    output_format: Literal["json", "yaml"] = "json"
    log_level: str = "WARNING"
    dockerfile_syntax: str = "docker/dockerfile:1"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {value!r}")
        return level


def load_settings(
    env_file: Optional[str] = ".env",
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Builds settings from ``env_file`` (if it exists) overlaid with ``environ``
    (defaults to the process environment). Neither source is modified.

    :param env_file: Path of a ``.env`` file, or None to skip it.
    :param environ: Environment variables taking precedence over the file.
    :return: The validated settings.
    """
    values = {}
    if env_file and os.path.exists(env_file):
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ if environ is None else environ)

    fields = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in values:
            fields[name] = values[key]
    return Settings(**fields)

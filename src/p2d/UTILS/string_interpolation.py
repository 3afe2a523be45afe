"""
Utilities for expanding build-argument references in strings.
"""
import re
from typing import Mapping

# ${VAR}, ${VAR:-default}, ${VAR:+value} or a bare $VAR; $$ escapes a dollar.
_PATTERN = re.compile(
    r'\$\$|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::(-|\+)([^}]*))?\}|\$([A-Za-z_][A-Za-z0-9_]*)'
)


class BuildArgInterpolator:
    """
    Expands ``${VAR}``, ``${VAR:-default}``, ``${VAR:+value}`` and ``$VAR``
    against a mapping of build arguments.
    """
    @staticmethod
    def interpolate(template: str, context: Mapping[str, str]) -> str:
        """
        Interpolates build arguments in the template string.

        :param template: The string containing ``${VAR}`` placeholders.
        :param context: The resolved build arguments.
        :return: The interpolated string.
        :raises KeyError: If a plain reference names an unknown argument.
        """
        def replace(match):
            if match.group(0) == "$$":
                return "$"

            var_name = match.group(1) or match.group(4)
            modifier = match.group(2)  # None, '-', or '+'
            alt_value = match.group(3)
            value = context.get(var_name)

            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if value is None:
                raise KeyError(f"Build argument {var_name} is not defined")
            return value

        return _PATTERN.sub(replace, template)

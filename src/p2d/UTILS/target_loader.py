"""
Resolution of ``module:attribute`` targets to stages.
"""
import importlib
import importlib.util
import os
import sys

from ..BUILDERS.stage import Stage
from ..errors import P2DError, TargetLoadError


def load_target(target: str) -> Stage:
    """
    Loads the stage named by ``target``.

    The module part is either a dotted module name or a path to a ``.py``
    file; the attribute part may be dotted. An attribute that is not a stage
    but is callable is called without arguments.

    :param target: ``package.module:attr`` or ``path/to/file.py:attr``.
    :return: The resolved stage.
    :raises TargetLoadError: If the target cannot be resolved to a stage.
    """
    module_part, sep, attr_part = target.rpartition(":")
    if not sep or not module_part or not attr_part:
        raise TargetLoadError(
            f"Invalid target {target!r}",
            hint="use module:attribute or path/to/file.py:attribute",
        )

    if module_part.endswith(".py") or os.sep in module_part or "/" in module_part:
        if not os.path.exists(module_part):
            raise TargetLoadError(f"File {module_part} not found")
        module_name = os.path.splitext(os.path.basename(module_part))[0]
        spec = importlib.util.spec_from_file_location(module_name, module_part)
        module = importlib.util.module_from_spec(spec)
        # Keep a relative import of siblings working.
        directory = os.path.dirname(os.path.abspath(module_part))
        sys.path.insert(0, directory)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise TargetLoadError(f"Cannot load {module_part}: {type(e).__name__}: {e}") from e
        finally:
            if directory in sys.path:
                sys.path.remove(directory)
    else:
        try:
            module = importlib.import_module(module_part)
        except Exception as e:
            raise TargetLoadError(f"Cannot import {module_part}: {type(e).__name__}: {e}") from e

    value = module
    for attr in attr_part.split("."):
        try:
            value = getattr(value, attr)
        except AttributeError as e:
            raise TargetLoadError(f"{module_part} has no attribute {attr_part}") from e

    if not isinstance(value, Stage) and callable(value):
        try:
            value = value()
        except P2DError:
            raise
        except Exception as e:
            raise TargetLoadError(f"Calling {target} failed: {type(e).__name__}: {e}") from e
    if not isinstance(value, Stage):
        raise TargetLoadError(
            f"{target} is a {type(value).__name__}, not a Stage",
            hint="point at a Stage or a function returning one",
        )
    return value

import re
from typing import Any, Dict

import yaml
from yaml import YAMLError

from ...exceptions import ValidationError

_CAMEL_BOUNDARY_1 = re.compile(r"(.)([A-Z][a-z]+)")
_CAMEL_BOUNDARY_2 = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(key: str) -> str:
    """``AutomaticallyFixOverlappingText`` / ``xPad`` -> snake_case."""
    s = _CAMEL_BOUNDARY_1.sub(r"\1_\2", key)
    s = _CAMEL_BOUNDARY_2.sub(r"\1_\2", s)
    return s.replace("-", "_").lower()


def normalize_keys(data: Any) -> Any:
    """Recursively convert mapping keys to snake_case.

    Project files written by other tools use camelCase or PascalCase keys;
    both are accepted and mapped onto the same settings.
    """
    if isinstance(data, dict):
        return {
            (to_snake_case(k) if isinstance(k, str) else k): normalize_keys(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [normalize_keys(v) for v in data]
    return data


def load_config(config_path: str) -> Dict[str, Any]:
    """Load a YAML or JSON project file with friendly validation errors.

    Parameters
    ----------
    config_path: str
        Path to a YAML/JSON file (UTF-8). JSON is read through the YAML
        parser, so both formats share one code path.

    Returns
    -------
    Dict[str, Any]

    Raises
    ------
    ValidationError
        When the file is not found, the syntax is invalid or the document
        is not a mapping.
    """
    try:
        with open(config_path, "r", encoding="utf-8-sig") as f:
            data = yaml.safe_load(f)
    except YAMLError as e:
        mark = getattr(e, "problem_mark", None) or getattr(e, "mark", None)
        line = mark.line + 1 if mark else None
        column = mark.column + 1 if mark else None
        raise ValidationError(
            f"Invalid project syntax in {config_path}: {e}",
            line_number=line,
            column_number=column,
        )
    except FileNotFoundError:
        raise ValidationError(f"Project file not found: {config_path}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"Project file {config_path} must contain a mapping at the top level.")
    return data

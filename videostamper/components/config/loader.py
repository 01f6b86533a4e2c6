from copy import deepcopy
from typing import Any, Dict

from ...exceptions import ValidationError
from .io import load_config, normalize_keys
from .settings import ProjectSettings
from .validate import validate_config

__all__ = ["load_project", "prepare_project", "merge_defaults", "ValidationError"]

# input 直下で defaults から継承しないキー
_NON_INHERITED = ("font", "position", "timestamp", "subtitle", "subtitles")


def merge_defaults(defaults: Dict[str, Any], entry: Dict[str, Any]) -> Dict[str, Any]:
    """``entry`` を優先して ``defaults`` と再帰的に合成する。

    入れ子の dict は合成し、それ以外 (リストを含む) は ``entry`` の値で置き換える。
    defaults 側の値は複製するので、複数の input 間で共有されない。
    """
    merged = deepcopy(defaults)
    for key, value in entry.items():
        base = merged.get(key)
        if isinstance(value, dict) and isinstance(base, dict):
            merged[key] = merge_defaults(base, value)
        else:
            merged[key] = value
    return merged


def _apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge the project's ``defaults`` block under every input.

    ``defaults.font``/``defaults.position`` apply to timestamps and subtitles
    alike; ``defaults.timestamp``/``defaults.subtitle`` are more specific and
    win over them. Values on the entry itself always take precedence.
    """
    defaults = config.get("defaults") or {}
    if not isinstance(defaults, dict) or not defaults:
        return config

    shared: Dict[str, Any] = {}
    for key in ("font", "position"):
        if isinstance(defaults.get(key), dict):
            shared[key] = defaults[key]
    ts_defaults = merge_defaults(shared, defaults.get("timestamp") or {})
    sub_defaults = merge_defaults(shared, defaults.get("subtitle") or {})
    input_defaults = {k: v for k, v in defaults.items() if k not in _NON_INHERITED}

    for idx, entry in enumerate(config.get("inputs") or []):
        if not isinstance(entry, dict):
            continue
        merged_entry = merge_defaults(input_defaults, entry)
        timestamp = merged_entry.get("timestamp")
        if timestamp is None or isinstance(timestamp, dict):
            merged_entry["timestamp"] = merge_defaults(ts_defaults, timestamp or {})
        subtitles = merged_entry.get("subtitles")
        if isinstance(subtitles, list):
            merged_entry["subtitles"] = [
                merge_defaults(sub_defaults, sub) if isinstance(sub, dict) else sub
                for sub in subtitles
            ]
        config["inputs"][idx] = merged_entry
    return config


def prepare_project(raw: Dict[str, Any]) -> ProjectSettings:
    """Normalize, merge defaults, validate and build settings from a raw document."""
    config = normalize_keys(deepcopy(raw))
    config = _apply_defaults(config)
    validate_config(config)
    return ProjectSettings.from_dict(config)


def load_project(project_path: str) -> ProjectSettings:
    """
    Load a project file and turn it into validated settings.

    Args:
        project_path: Path to the project JSON/YAML file.

    Returns:
        The parsed :class:`ProjectSettings`.
    """
    return prepare_project(load_config(project_path))

"""Configuration utilities for videostamper projects."""

from .io import load_config, normalize_keys
from .loader import load_project, merge_defaults, prepare_project
from .settings import (
    FontSettings,
    InputSettings,
    OutputSettings,
    PositionSettings,
    ProjectSettings,
    SubtitleSettings,
    TimestampSettings,
)
from .validate import validate_config

__all__ = [
    "FontSettings",
    "InputSettings",
    "OutputSettings",
    "PositionSettings",
    "ProjectSettings",
    "SubtitleSettings",
    "TimestampSettings",
    "load_config",
    "load_project",
    "merge_defaults",
    "normalize_keys",
    "prepare_project",
    "validate_config",
]

"""ffmpeg/ffprobe 実行ファイルの探索。"""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path
from typing import Optional

from ..exceptions import DependencyError
from .logger import logger

ENV_OVERRIDES = {
    "ffmpeg": "VIDEOSTAMPER_FFMPEG",
    "ffprobe": "VIDEOSTAMPER_FFPROBE",
}


def platform_subdir() -> str:
    """Name of the bundled binary directory for this host, e.g. ``linux-x64``."""
    system = platform.system().lower()
    machine = platform.machine().lower()
    arch = "arm64" if machine in ("arm64", "aarch64") else "x64"
    if system == "darwin":
        return f"macos-{arch}"
    if system == "windows":
        return f"win-{arch}"
    return f"linux-{arch}"


def locate_tool(name: str, base_dir: Optional[Path] = None) -> str:
    """Find ``ffmpeg``/``ffprobe``.

    Lookup order: environment override, ``bin/<platform>/`` under ``base_dir``
    (the working directory by default), then ``PATH``.
    """
    env_name = ENV_OVERRIDES.get(name)
    if env_name:
        override = os.getenv(env_name)
        if override:
            if Path(override).is_file():
                return override
            raise DependencyError(f"{env_name} points to a missing file: {override}")

    exe = name + ".exe" if platform.system().lower() == "windows" else name
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    bundled = root / "bin" / platform_subdir() / exe
    if bundled.is_file():
        logger.debug(f"Using bundled {name}: {bundled}")
        return str(bundled)

    found = shutil.which(name)
    if found:
        return found
    raise DependencyError(f"Could not find {name} (looked in {bundled} and PATH).")


def get_ffmpeg_path() -> str:
    return locate_tool("ffmpeg")


def get_ffprobe_path() -> str:
    return locate_tool("ffprobe")

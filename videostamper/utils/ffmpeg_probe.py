"""ffprobe を利用したメディア情報取得ヘルパー。"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import ProbeError
from .ffmpeg_locator import get_ffprobe_path
from .ffmpeg_runner import run_ffmpeg_async
from .logger import logger

APPLE_CREATION_TAG = "com.apple.quicktime.creationdate"
CREATION_TAG = "creation_time"


@dataclass(frozen=True)
class VideoMetadata:
    """動画の基本情報。width/height は回転補正済み。"""

    width: int = 0
    height: int = 0
    duration_seconds: float = 0.0
    creation_time_raw: Optional[str] = None


def _parse_rotation(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return None
    return None


def _parse_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _stream_rotation(stream: Dict[str, Any]) -> Optional[int]:
    for side in stream.get("side_data_list") or []:
        if isinstance(side, dict) and "rotation" in side:
            rotation = _parse_rotation(side.get("rotation"))
            if rotation is not None:
                return rotation
    tags = stream.get("tags") or {}
    if "rotate" in tags:
        return _parse_rotation(tags.get("rotate"))
    if "rotation" in tags:
        return _parse_rotation(tags.get("rotation"))
    return None


def parse_video_metadata(info: Dict[str, Any]) -> VideoMetadata:
    """Build :class:`VideoMetadata` from ffprobe's JSON document.

    The QuickTime creation date is preferred because it keeps the recording
    time zone; ``creation_time`` (UTC) is the fallback. A 90/270 degree
    rotation swaps width and height.
    """
    fmt = info.get("format") or {}
    format_tags = fmt.get("tags") or {}
    creation = format_tags.get(APPLE_CREATION_TAG)
    if creation is None:
        creation = format_tags.get(CREATION_TAG)

    duration = _parse_float(fmt.get("duration")) or 0.0
    width = height = 0
    rotation: Optional[int] = None

    for stream in info.get("streams") or []:
        if stream.get("codec_type") != "video":
            continue
        width = int(stream.get("width", 0) or 0)
        height = int(stream.get("height", 0) or 0)
        stream_duration = _parse_float(stream.get("duration"))
        if stream_duration is not None:
            duration = stream_duration
        rotation = _stream_rotation(stream)
        break

    if rotation is not None and abs(rotation) in (90, 270):
        logger.debug(
            f"Detected rotation {rotation}, swapping width/height ({width}x{height} -> {height}x{width})."
        )
        width, height = height, width

    return VideoMetadata(
        width=width,
        height=height,
        duration_seconds=duration,
        creation_time_raw=str(creation) if creation is not None else None,
    )


async def get_video_metadata(file_path: str, ffprobe_path: Optional[str] = None) -> VideoMetadata:
    """動画ファイルのメタ情報を取得する。"""
    cmd = [
        ffprobe_path or get_ffprobe_path(),
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream:format=duration:format_tags",
        file_path,
    ]
    try:
        result = await run_ffmpeg_async(cmd)
        info = json.loads(result.stdout)
    except subprocess.CalledProcessError as e:
        logger.error(f"Error running ffprobe for {file_path}: {e.stderr}")
        raise
    except json.JSONDecodeError as e:
        raise ProbeError(f"Could not parse ffprobe output for {file_path}: {e}") from e

    if not isinstance(info, dict):
        raise ProbeError(f"Unexpected ffprobe output for {file_path}")
    meta = parse_video_metadata(info)
    logger.debug(f"Metadata for {file_path}: {meta}")
    return meta

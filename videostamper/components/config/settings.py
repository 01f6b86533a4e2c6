"""プロジェクト設定のデータクラス群。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _opt_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass
class FontSettings:
    """drawtext のフォント設定。色は ffmpeg の色指定 (名前 or 16進)。"""

    font_file: str = ""
    size: int = 32
    color: str = "white"
    border_color: Optional[str] = "black"
    border_width: Optional[int] = 2

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FontSettings":
        data = data or {}
        border_width = data.get("border_width", 2)
        return cls(
            font_file=str(data.get("font_file", "") or ""),
            size=int(data.get("size", 32)),
            color=str(data.get("color", "white")),
            border_color=data.get("border_color", "black"),
            border_width=int(border_width) if border_width is not None else None,
        )


@dataclass
class PositionSettings:
    """アンカー + パディング(%) + オフセット(px)。"""

    anchor: str = "bottomRight"
    x_offset: int = 0
    y_offset: int = 0
    x_pad: float = 5.0
    y_pad: float = 5.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PositionSettings":
        data = data or {}
        return cls(
            anchor=str(data.get("anchor", "bottomRight") or "origin"),
            x_offset=int(data.get("x_offset", 0)),
            y_offset=int(data.get("y_offset", 0)),
            x_pad=float(data.get("x_pad", 5.0)),
            y_pad=float(data.get("y_pad", 5.0)),
        )


@dataclass
class TimestampSettings:
    enabled: bool = True
    use_metadata_creation_time: bool = True
    time_offset: Optional[int] = None  # seconds, added to the resolved epoch
    format: str = "yyyy-MM-dd HH:mm:ss"
    font: FontSettings = field(default_factory=FontSettings)
    position: PositionSettings = field(default_factory=PositionSettings)
    start: Optional[float] = None
    end: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TimestampSettings":
        data = data or {}
        time_offset = data.get("time_offset")
        return cls(
            enabled=bool(data.get("enabled", True)),
            use_metadata_creation_time=bool(data.get("use_metadata_creation_time", True)),
            time_offset=int(time_offset) if time_offset is not None else None,
            format=str(data.get("format", "yyyy-MM-dd HH:mm:ss")),
            font=FontSettings.from_dict(data.get("font")),
            position=PositionSettings.from_dict(data.get("position")),
            start=_opt_float(data.get("start")),
            end=_opt_float(data.get("end")),
        )


@dataclass
class SubtitleSettings:
    """字幕 1 件。表示区間は start と duration で決まり、end は導出値。"""

    text: str = ""
    start: float = 0.0
    duration: float = 2.0
    font: FontSettings = field(default_factory=FontSettings)
    position: PositionSettings = field(default_factory=PositionSettings)

    @property
    def end(self) -> float:
        return self.start + self.duration

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SubtitleSettings":
        data = data or {}
        start = float(data.get("start", 0.0))
        if data.get("duration") is not None:
            duration = float(data["duration"])
        elif data.get("end") is not None:
            duration = float(data["end"]) - start
        else:
            duration = 2.0
        return cls(
            text=str(data.get("text", "") or ""),
            start=start,
            duration=duration,
            font=FontSettings.from_dict(data.get("font")),
            position=PositionSettings.from_dict(data.get("position")),
        )


@dataclass
class InputSettings:
    path: str = ""
    automatically_fix_overlapping_text: bool = True
    timestamp: TimestampSettings = field(default_factory=TimestampSettings)
    subtitles: List[SubtitleSettings] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InputSettings":
        data = data or {}
        return cls(
            path=str(data.get("path", "") or ""),
            automatically_fix_overlapping_text=bool(
                data.get("automatically_fix_overlapping_text", True)
            ),
            timestamp=TimestampSettings.from_dict(data.get("timestamp")),
            subtitles=[SubtitleSettings.from_dict(s) for s in data.get("subtitles") or []],
        )


@dataclass
class OutputSettings:
    mode: str = "separate"  # or "concat"
    format: str = "mp4"  # mp4 / webm / gif

    @property
    def is_concat(self) -> bool:
        return self.mode.lower() in ("concat", "concatenate")

    @property
    def extension(self) -> str:
        return "." + self.format.lower()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OutputSettings":
        data = data or {}
        return cls(
            mode=str(data.get("mode", "separate") or "separate"),
            format=str(data.get("format", "mp4") or "mp4").lower(),
        )


@dataclass
class ProjectSettings:
    output: OutputSettings = field(default_factory=OutputSettings)
    inputs: List[InputSettings] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProjectSettings":
        data = data or {}
        return cls(
            output=OutputSettings.from_dict(data.get("output")),
            inputs=[InputSettings.from_dict(i) for i in data.get("inputs") or []],
        )

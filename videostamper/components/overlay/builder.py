"""タイムスタンプ/字幕設定から TextElement を組み立てる。"""

from __future__ import annotations

import calendar
from datetime import datetime
from typing import List, Optional

from videostamper.components.config.settings import (
    FontSettings,
    PositionSettings,
    SubtitleSettings,
    TimestampSettings,
)
from videostamper.utils.ffmpeg_probe import VideoMetadata
from videostamper.utils.logger import logger

from .anchor import normalize_anchor, resolve_anchor
from .date_format import split_lines, translate_date_format_lines
from .elements import AnchorGrouping, TextElement, add_to_grouping, estimate_text_width

# fromisoformat で読めない creation_time 向けのフォールバック書式
_CREATION_TIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)


def parse_creation_time(raw: Optional[str]) -> Optional[datetime]:
    """Parse an ffprobe creation time. Returns None when unusable."""
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _CREATION_TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def wall_clock_epoch(moment: datetime) -> int:
    """Epoch seconds whose UTC rendering equals ``moment``'s wall clock.

    drawtext formats the embedded epoch with gmtime, so the UTC offset is
    folded in: ``epoch = utc_seconds + offset_seconds``. Naive values are
    taken to be in the host's local zone.
    """
    if moment.tzinfo is None:
        moment = moment.astimezone()
    offset = moment.utcoffset()
    offset_seconds = int(offset.total_seconds()) if offset is not None else 0
    utc_seconds = calendar.timegm(moment.utctimetuple())
    return utc_seconds + offset_seconds


def resolve_timestamp_epoch(ts: TimestampSettings, meta: VideoMetadata) -> int:
    epoch = 0
    has_timestamp = False

    if ts.use_metadata_creation_time and meta.creation_time_raw:
        logger.debug(f"Raw creation time: {meta.creation_time_raw}")
        moment = parse_creation_time(meta.creation_time_raw)
        if moment is not None:
            epoch = wall_clock_epoch(moment)
            has_timestamp = True
            logger.debug(f"Parsed creation time {moment.isoformat()} -> wall clock epoch {epoch}")
        else:
            logger.info(f"Could not parse creation time '{meta.creation_time_raw}'")

    if ts.time_offset is not None:
        epoch += int(ts.time_offset)
        has_timestamp = True
        logger.debug(f"Applied time offset {ts.time_offset}s, epoch = {epoch}")

    if not has_timestamp:
        logger.info("No usable timestamp found; epoch falls back to 0.")
    return epoch


def _make_element(
    content: str,
    font: FontSettings,
    position: PositionSettings,
    meta: VideoMetadata,
    start: Optional[float] = None,
    end: Optional[float] = None,
    epoch: Optional[int] = None,
) -> TextElement:
    pos = resolve_anchor(
        position.anchor,
        meta.width,
        meta.height,
        font.size,
        estimate_text_width(font.size, content),
        position.x_offset,
        position.y_offset,
        position.x_pad,
        position.y_pad,
    )
    has_border = bool(font.border_color) and font.border_width is not None
    return TextElement(
        content=content,
        font_path=font.font_file,
        font_size=font.size,
        font_color=font.color,
        x_expr=pos.x_expr,
        y_expr=pos.y_expr,
        x_coord=pos.x_coord,
        y_coord=pos.y_coord,
        anchor_key=normalize_anchor(position.anchor),
        border_color=font.border_color if has_border else None,
        border_width=font.border_width if has_border else None,
        start=start,
        end=end,
        epoch=epoch,
    )


def build_timestamp_elements(ts: TimestampSettings, meta: VideoMetadata) -> AnchorGrouping:
    """One element per line of the translated timestamp format."""
    grouping: AnchorGrouping = {}
    epoch = resolve_timestamp_epoch(ts, meta)
    lines: List[str] = translate_date_format_lines(ts.format)
    for line in lines:
        element = _make_element(
            line,
            ts.font,
            ts.position,
            meta,
            start=ts.start,
            end=ts.end,
            epoch=epoch,
        )
        add_to_grouping(grouping, element)
    return grouping


def build_subtitle_elements(sub: SubtitleSettings, meta: VideoMetadata) -> AnchorGrouping:
    """One element per subtitle line, visible for ``[start, start + duration]``."""
    grouping: AnchorGrouping = {}
    for line in split_lines(sub.text):
        element = _make_element(
            line,
            sub.font,
            sub.position,
            meta,
            start=sub.start,
            end=sub.end,
        )
        add_to_grouping(grouping, element)
    return grouping

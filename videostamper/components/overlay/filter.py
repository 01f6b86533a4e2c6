"""1クリップ分の drawtext フィルタチェーンを組み立てる。"""

from __future__ import annotations

from typing import List

from videostamper.components.config.settings import InputSettings
from videostamper.utils.ffmpeg_probe import VideoMetadata
from videostamper.utils.logger import logger

from .builder import build_subtitle_elements, build_timestamp_elements
from .elements import AnchorGrouping, iter_elements, merge_groupings
from .overlap import resolve_overlaps

# テキストが 1 つも無いクリップ用のパススルーフィルタ
PASSTHROUGH_FILTER = "null"


def build_anchor_grouping(input_settings: InputSettings, meta: VideoMetadata) -> AnchorGrouping:
    """Timestamp lines first, then subtitles in source order."""
    grouping: AnchorGrouping = {}
    if input_settings.timestamp.enabled:
        merge_groupings(grouping, build_timestamp_elements(input_settings.timestamp, meta))
    for sub in input_settings.subtitles:
        merge_groupings(grouping, build_subtitle_elements(sub, meta))

    if input_settings.automatically_fix_overlapping_text:
        adjustments = resolve_overlaps(grouping)
        logger.debug(f"Overlap resolution applied {adjustments} adjustment(s)")
    return grouping


def build_drawtext_filters(input_settings: InputSettings, meta: VideoMetadata) -> List[str]:
    grouping = build_anchor_grouping(input_settings, meta)
    return [element.to_filter() for element in iter_elements(grouping)]


def build_filter_for_input(input_settings: InputSettings, meta: VideoMetadata) -> str:
    filters = build_drawtext_filters(input_settings, meta)
    if not filters:
        return PASSTHROUGH_FILTER
    return ",".join(filters)

"""Text overlay layout for drawtext filters."""

from .anchor import AnchorPosition, normalize_anchor, resolve_anchor
from .builder import (
    build_subtitle_elements,
    build_timestamp_elements,
    resolve_timestamp_epoch,
)
from .date_format import escape_drawtext, translate_date_format, translate_date_format_lines
from .elements import AnchorGrouping, TextElement, merge_groupings
from .filter import build_anchor_grouping, build_drawtext_filters, build_filter_for_input
from .overlap import resolve_overlaps

__all__ = [
    "AnchorGrouping",
    "AnchorPosition",
    "TextElement",
    "build_anchor_grouping",
    "build_drawtext_filters",
    "build_filter_for_input",
    "build_subtitle_elements",
    "build_timestamp_elements",
    "escape_drawtext",
    "merge_groupings",
    "normalize_anchor",
    "resolve_anchor",
    "resolve_overlaps",
    "resolve_timestamp_epoch",
    "translate_date_format",
    "translate_date_format_lines",
]

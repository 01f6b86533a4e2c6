"""アンカー名から drawtext の配置式と推定座標を求める。"""

from __future__ import annotations

from typing import NamedTuple

ORIGIN = "origin"

LEFT_COLUMN = {"topleft", "middleleft", "bottomleft"}
MIDDLE_COLUMN = {"topmiddle", "middle", "bottommiddle"}
RIGHT_COLUMN = {"topright", "middleright", "bottomright"}

TOP_ROW = {"topleft", "topmiddle", "topright"}
MIDDLE_ROW = {"middleleft", "middle", "middleright"}
BOTTOM_ROW = {"bottomleft", "bottommiddle", "bottomright"}

KNOWN_ANCHORS = LEFT_COLUMN | MIDDLE_COLUMN | RIGHT_COLUMN


class AnchorPosition(NamedTuple):
    x_expr: str
    y_expr: str
    x_coord: int
    y_coord: int


def normalize_anchor(anchor: str | None) -> str:
    """``"Bottom Right"`` -> ``"bottomright"``. Empty or unknown values become origin."""
    if not anchor:
        return ORIGIN
    key = str(anchor).lower().replace(" ", "")
    return key if key in KNOWN_ANCHORS else ORIGIN


def _num(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def _offset(value: int) -> str:
    return f"+{value}" if value >= 0 else f"-{abs(value)}"


def resolve_anchor(
    anchor: str | None,
    video_width: int,
    video_height: int,
    font_size: int,
    text_width_estimate: float,
    x_offset: int = 0,
    y_offset: int = 0,
    x_pad: float = 5.0,
    y_pad: float = 5.0,
) -> AnchorPosition:
    """Resolve a named anchor into symbolic and numeric positions.

    The x expression is left to ffmpeg (``w``/``text_w`` are evaluated at draw
    time); the numeric coordinates use ``text_width_estimate`` and exist only
    for overlap detection. Unknown anchors behave like ``origin``.
    """
    key = normalize_anchor(anchor)
    if key not in KNOWN_ANCHORS:
        return AnchorPosition(str(x_offset), str(y_offset), int(x_offset), int(y_offset))

    width = float(video_width)
    height = float(video_height)
    xp = _num(x_pad)
    yp = _num(y_pad)
    h = _num(height)

    if key in LEFT_COLUMN:
        x_expr = f"(w*{xp}/100){_offset(x_offset)}"
        x_val = width * (x_pad / 100.0)
    elif key in RIGHT_COLUMN:
        x_expr = f"(w-(w*{xp}/100)-text_w){_offset(x_offset)}"
        x_val = width * (1.0 - x_pad / 100.0) - text_width_estimate
    else:
        x_expr = f"(w/2-text_w/2){_offset(x_offset)}"
        x_val = width / 2.0 - text_width_estimate / 2.0

    if key in TOP_ROW:
        y_expr = f"({h}*{yp}/100){_offset(y_offset)}"
        y_val = height * (y_pad / 100.0)
    elif key in BOTTOM_ROW:
        y_expr = f"({h}-({h}*{yp}/100)-{font_size}){_offset(y_offset)}"
        y_val = height * (1.0 - y_pad / 100.0) - font_size
    else:
        y_expr = f"({h}/2-{font_size}/2){_offset(y_offset)}"
        y_val = height / 2.0 - font_size / 2.0

    return AnchorPosition(
        x_expr,
        y_expr,
        int(x_val + x_offset),
        int(y_val + y_offset),
    )

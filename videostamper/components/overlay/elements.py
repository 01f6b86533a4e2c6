"""drawtext 1行分のテキスト要素と、アンカー別のグルーピング。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .date_format import escape_drawtext

# アンカーキー -> 挿入順の要素リスト。dict の挿入順を保持したまま扱う。
AnchorGrouping = Dict[str, List["TextElement"]]

# 1文字あたりの推定幅 (font_size 比)。重なり判定のみに使う概算値
CHAR_WIDTH_RATIO = 0.5


def estimate_text_width(font_size: int, text: str) -> float:
    """Rough glyph-independent width estimate used for overlap math."""
    if not text:
        return 0.0
    return font_size * CHAR_WIDTH_RATIO * len(text)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass
class TextElement:
    """A single positioned drawtext line.

    ``x_expr``/``y_expr`` are evaluated by ffmpeg at draw time, while
    ``x_coord``/``y_coord`` are engine-side estimates that only feed overlap
    detection. ``shift_vertical`` is the only place that moves an element so
    both representations stay in step.
    """

    content: str
    font_path: str
    font_size: int
    font_color: str
    x_expr: str = "0"
    y_expr: str = "0"
    x_coord: int = 0
    y_coord: int = 0
    anchor_key: str = "origin"
    border_color: Optional[str] = None
    border_width: Optional[int] = None
    start: Optional[float] = None
    end: Optional[float] = None
    epoch: Optional[int] = None

    def __post_init__(self) -> None:
        if self.border_color is None or self.border_width is None:
            self.border_color = None
            self.border_width = None
        if not self.has_window:
            self.start = None
            self.end = None

    @property
    def has_window(self) -> bool:
        return (
            self.start is not None
            and self.end is not None
            and self.start >= 0.0
            and self.end > self.start
        )

    @property
    def estimated_width(self) -> float:
        # エスケープ前の content (タイムスタンプは strftime 書式) の長さで見積もる
        return estimate_text_width(self.font_size, self.content)

    @property
    def enable_predicate(self) -> Optional[str]:
        if not self.has_window:
            return None
        return f"between(t,{_format_number(self.start)},{_format_number(self.end)})"

    def shift_vertical(self, delta: int) -> bool:
        """Move the element by ``delta`` pixels on both representations.

        Returns False when ``|delta| < 1`` (nothing to do).
        """
        if abs(delta) < 1:
            return False
        self.y_coord += delta
        sign = "+" if delta >= 0 else "-"
        self.y_expr = f"({self.y_expr}){sign}{abs(delta)}"
        return True

    def render_text(self) -> str:
        """Escaped drawtext ``text`` value.

        Timestamp lines embed the epoch so ffmpeg formats the clock itself.
        """
        escaped = escape_drawtext(self.content)
        if self.epoch is None:
            return escaped
        return "%{pts\\:gmtime\\:" + str(self.epoch) + "\\:" + escaped + "}"

    def to_filter(self) -> str:
        parts = [
            f"fontfile='{self.font_path}'",
            f"fontsize={self.font_size}",
            f"fontcolor={self.font_color}",
        ]
        if self.border_color and self.border_width is not None:
            parts.append(f"bordercolor={self.border_color}")
            parts.append(f"borderw={self.border_width}")
        parts.append(f"x={self.x_expr}")
        parts.append(f"y={self.y_expr}")
        parts.append(f"text='{self.render_text()}'")
        predicate = self.enable_predicate
        if predicate:
            parts.append(f"enable='{predicate}'")
        return "drawtext=" + ":".join(parts)


def add_to_grouping(grouping: AnchorGrouping, element: TextElement) -> None:
    grouping.setdefault(element.anchor_key, []).append(element)


def merge_groupings(target: AnchorGrouping, source: AnchorGrouping) -> AnchorGrouping:
    """Append every list of ``source`` onto ``target`` keeping insertion order."""
    for key, elements in source.items():
        target.setdefault(key, []).extend(elements)
    return target


def iter_elements(grouping: AnchorGrouping):
    for elements in grouping.values():
        yield from elements

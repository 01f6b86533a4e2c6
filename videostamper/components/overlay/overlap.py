"""同一アンカーに並ぶテキストの重なりを縦方向にずらして解消する。"""

from __future__ import annotations

import math
from typing import List

from videostamper.utils.logger import is_trace_enabled, logger

from .elements import AnchorGrouping, TextElement

# 縦方向に確保する最小間隔 (font_size に加算する px)
LINE_GAP = 10

# Loose safety valve on relaxation passes. Groups are tiny in practice
# (factorial(c) <= 720 for c <= 6), so the factorial bound is what applies.
MAX_RELAXATION_PASSES = 10_000


def max_passes(count: int) -> int:
    """Pass cap for a group of ``count`` elements: ``min(cap, count!)``."""
    if count <= 1:
        return 1
    limit = 1
    for i in range(2, count + 1):
        limit *= i
        if limit >= MAX_RELAXATION_PASSES:
            return MAX_RELAXATION_PASSES
    return limit


def vertical_overlap(curr: TextElement, prev: TextElement) -> bool:
    return abs(curr.y_coord - prev.y_coord) < curr.font_size + LINE_GAP


def horizontal_overlap(curr: TextElement, prev: TextElement) -> bool:
    curr_left = curr.x_coord
    curr_right = curr_left + curr.estimated_width
    prev_left = prev.x_coord
    prev_right = prev_left + prev.estimated_width
    return curr_left < prev_right and prev_left < curr_right


def temporal_overlap(curr: TextElement, prev: TextElement) -> bool:
    """True when both may be on screen at once.

    Elements without a window are always visible. Otherwise the later
    element's start has to fall inside the earlier one's window.
    """
    curr_start = curr.start if curr.start is not None else -1.0
    prev_start = prev.start if prev.start is not None else -1.0
    prev_end = prev.end if prev.end is not None else math.inf
    if curr_start < 0 or prev_start < 0:
        return True
    return prev_start <= curr_start <= prev_end


def _resolve_group(anchor_key: str, elements: List[TextElement]) -> int:
    count = len(elements)
    limit = max_passes(count)
    push_earlier_up = "bottom" in anchor_key.lower()
    trace = is_trace_enabled()
    adjustments = 0
    passes = 0
    changed = True

    logger.debug(f"{count} texts at anchor '{anchor_key}', pass limit {limit}")

    while changed and passes < limit:
        changed = False
        for i in range(count):
            curr = elements[i]
            for j in range(i):
                prev = elements[j]
                vert = vertical_overlap(curr, prev)
                horiz = horizontal_overlap(curr, prev)
                timed = temporal_overlap(curr, prev)
                if trace:
                    logger.info(
                        f"Overlap check anchor={anchor_key} i={i} (x={curr.x_coord}, y={curr.y_coord}, "
                        f"start={curr.start}) j={j} (x={prev.x_coord}, y={prev.y_coord}, "
                        f"start={prev.start}, end={prev.end}) vert={vert} horiz={horiz} time={timed}"
                    )
                if not (vert and horiz and timed):
                    continue

                delta = (curr.font_size + LINE_GAP) - abs(curr.y_coord - prev.y_coord)
                if push_earlier_up:
                    moved = prev.shift_vertical(-delta)
                    target = j
                else:
                    moved = curr.shift_vertical(delta)
                    target = i
                if moved:
                    adjustments += 1
                    changed = True
                    logger.debug(
                        f"Moved text #{target} at '{anchor_key}' "
                        f"{'up' if push_earlier_up else 'down'} by {delta}px"
                    )
        passes += 1

    logger.debug(
        f"Finished overlap adjustment for '{anchor_key}' after {passes} passes "
        f"({adjustments} adjustments, converged={not changed})"
    )
    return adjustments


def resolve_overlaps(grouping: AnchorGrouping) -> int:
    """Nudge colliding elements apart, per anchor, in place.

    A greedy fixed-point relaxation: every pass checks each pair ``(i, j)``
    with ``j < i``. Colliding pairs are pushed apart vertically: the earlier
    element moves up for bottom anchors, the later element moves down for
    everything else. Passes repeat until nothing moves or the pass cap is hit.

    Returns the number of adjustments made.
    """
    total = 0
    for anchor_key, elements in grouping.items():
        if len(elements) <= 1:
            continue
        total += _resolve_group(anchor_key, elements)
    return total

import math
from typing import Any, Dict, List, Optional

from ...exceptions import ValidationError

OUTPUT_MODE_CHOICES = {"separate", "concat", "concatenate"}
OUTPUT_FORMAT_CHOICES = {"mp4", "webm", "gif"}


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _validate_font(font: Any, prefix: str, errors: List[str]) -> None:
    if font is None:
        return
    if not isinstance(font, dict):
        errors.append(f"{prefix}: Font must be a dictionary.")
        return
    if "size" in font:
        size = _as_number(font.get("size"))
        if size is None or size <= 0:
            errors.append(f"{prefix}: Font size must be greater than 0.")
    border_color = font.get("border_color")
    if isinstance(border_color, str) and border_color.strip():
        width = _as_number(font.get("border_width", 2))
        if width is None or width <= 0:
            errors.append(f"{prefix}: Border width must be > 0 when border color is set.")


def _validate_position(position: Any, prefix: str, errors: List[str]) -> None:
    if position is None:
        return
    if not isinstance(position, dict):
        errors.append(f"{prefix}: Position must be a dictionary.")
        return
    for key, label in (("x_pad", "X padding"), ("y_pad", "Y padding")):
        if key not in position:
            continue
        pad = _as_number(position.get(key))
        if pad is None or pad < 0 or pad > 100:
            errors.append(f"{prefix}: {label} must be between 0 and 100.")
    for key, label in (("x_offset", "X offset"), ("y_offset", "Y offset")):
        if key not in position:
            continue
        offset = _as_number(position.get(key))
        if offset is None or not offset.is_integer():
            errors.append(f"{prefix}: {label} must be an integer.")


def _validate_timestamp(ts: Any, prefix: str, errors: List[str]) -> None:
    if ts is None:
        return
    if not isinstance(ts, dict):
        errors.append(f"{prefix}: Timestamp settings must be a dictionary.")
        return
    if not ts.get("enabled", True):
        return
    if "format" in ts and not (isinstance(ts.get("format"), str) and ts.get("format")):
        errors.append(f"{prefix}: Format must be at least 1 character.")
    if ts.get("time_offset") is not None and _as_number(ts.get("time_offset")) is None:
        errors.append(f"{prefix}: Time offset must be a number of seconds.")
    _validate_font(ts.get("font"), prefix, errors)
    _validate_position(ts.get("position"), prefix, errors)


def _validate_subtitle(sub: Any, prefix: str, errors: List[str]) -> None:
    if not isinstance(sub, dict):
        errors.append(f"{prefix}: Subtitle must be a dictionary.")
        return

    start = _as_number(sub.get("start", 0.0))
    if start is None:
        errors.append(f"{prefix}: Start time must be a number.")
    elif start < 0:
        errors.append(f"{prefix}: Start time must be >= 0.")

    if sub.get("duration") is not None:
        duration = _as_number(sub.get("duration"))
    elif sub.get("end") is not None and start is not None:
        end = _as_number(sub.get("end"))
        duration = end - start if end is not None else None
    else:
        duration = 2.0
    if duration is None:
        errors.append(f"{prefix}: Duration must be a number.")
    elif duration <= 0:
        errors.append(f"{prefix}: Duration must be > 0.")

    _validate_font(sub.get("font"), prefix, errors)
    _validate_position(sub.get("position"), prefix, errors)


def validate_config(config: Dict[str, Any]) -> None:
    """Validate a normalized (snake_case) project document.

    Every problem is collected first so the user sees them all at once.

    Raises
    ------
    ValidationError
        If any entry is invalid.
    """
    errors: List[str] = []

    output = config.get("output")
    if output is not None and not isinstance(output, dict):
        errors.append("Output settings must be a dictionary.")
    elif output:
        mode = str(output.get("mode", "separate") or "separate").lower()
        if mode not in OUTPUT_MODE_CHOICES:
            errors.append(f"Output mode must be one of {sorted(OUTPUT_MODE_CHOICES)}.")
        fmt = str(output.get("format", "mp4") or "mp4").lower()
        if fmt not in OUTPUT_FORMAT_CHOICES:
            errors.append(f"Output format must be one of {sorted(OUTPUT_FORMAT_CHOICES)}.")

    inputs = config.get("inputs")
    if not isinstance(inputs, list) or not inputs:
        errors.append("No inputs defined in project.")
        inputs = []

    for idx, entry in enumerate(inputs, start=1):
        if not isinstance(entry, dict):
            errors.append(f"Input {idx}: must be a dictionary.")
            continue
        path = entry.get("path")
        if not isinstance(path, str) or not path.strip():
            errors.append(f"Input {idx}: Path is required.")
        _validate_timestamp(entry.get("timestamp"), f"Input {idx} Timestamp", errors)

        subtitles = entry.get("subtitles")
        if subtitles is None:
            continue
        if not isinstance(subtitles, list):
            errors.append(f"Input {idx}: Subtitles must be a list.")
            continue
        for s_idx, sub in enumerate(subtitles, start=1):
            _validate_subtitle(sub, f"Input {idx} / Subtitle {s_idx}", errors)

    if errors:
        raise ValidationError(
            "Please fix the following issues:\n\n- " + "\n- ".join(errors)
        )

"""日時書式 (yyyy-MM-dd HH:mm:ss 形式) を strftime 書式へ変換するユーティリティ。"""

from __future__ import annotations

import re
from typing import Dict, List

from videostamper.utils.logger import logger

# Custom date/time tokens -> strftime codes understood by drawtext's gmtime.
# Only whole runs of one character are looked up, so e.g. "yyy" stays literal.
DATE_TOKEN_MAP: Dict[str, str] = {
    "HH": "%H",  # hour 24h, zero padded
    "H": "%#H",
    "hh": "%I",  # hour 12h, zero padded
    "h": "%#I",
    "mm": "%M",
    "m": "%#M",
    "ss": "%S",
    "s": "%#S",
    "tt": "%p",
    "yyyy": "%Y",
    "yy": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "M": "%#m",
    "dddd": "%A",
    "ddd": "%a",
    "dd": "%d",
    "d": "%#d",
}

_LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")

# 置換順は固定。後段の置換が前段で挿入した文字を再エスケープしないよう、
# コロン/カンマ/スラッシュはバックスラッシュより後に処理する。
_DRAWTEXT_ESCAPES = (
    ("'", "\\'"),
    ("\\", "\\\\\\\\"),
    (":", "\\\\\\:"),
    (",", "\\\\,"),
    ("/", "\\\\/"),
)


def _iter_runs(pattern: str):
    run = ""
    for ch in pattern:
        if run and ch == run[-1]:
            run += ch
            continue
        if run:
            yield run
        run = ch
    if run:
        yield run


def translate_date_format(pattern: str) -> str:
    """Translate a custom date/time pattern into strftime codes.

    The pattern is scanned as maximal runs of one repeated character. A run
    with an entry in :data:`DATE_TOKEN_MAP` is substituted; any other run
    (separators, literal text, unsupported lengths) is kept verbatim.

    >>> translate_date_format("yyyy-MM-dd HH:mm:ss")
    '%Y-%m-%d %H:%M:%S'
    """
    if not pattern:
        return ""
    out: List[str] = []
    for run in _iter_runs(pattern):
        mapped = DATE_TOKEN_MAP.get(run)
        if mapped is None:
            logger.debug(f"No date token match for '{run}'. Keeping as is.")
            out.append(run)
        else:
            out.append(mapped)
    result = "".join(out)
    logger.debug(f"Date format '{pattern}' translated to '{result}'")
    return result


def split_lines(text: str) -> List[str]:
    """Split on any line-break convention, dropping empty lines."""
    if not text:
        return []
    return [line for line in _LINE_BREAK_PATTERN.split(text) if line]


def translate_date_format_lines(pattern: str) -> List[str]:
    """Translate ``pattern`` and return one strftime pattern per line."""
    return split_lines(translate_date_format(pattern))


def escape_drawtext(text: str) -> str:
    """Escape literal text for drawtext's ``text='...'`` option."""
    for target, replacement in _DRAWTEXT_ESCAPES:
        text = text.replace(target, replacement)
    return text

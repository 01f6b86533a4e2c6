# -*- coding: utf-8 -*-
"""スタンプ・結合・形式変換の FFmpeg 操作。"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Sequence

from ..exceptions import PipelineError
from .ffmpeg_locator import get_ffmpeg_path
from .ffmpeg_runner import run_ffmpeg_async as _run_ffmpeg_async
from .logger import logger

# webm/gif 変換時の縮小フィルタ (幅 720px 上限)
PREVIEW_SCALE = "scale='min(iw,720)':-1"
SUPPORTED_FORMATS = ("mp4", "webm", "gif")


def build_stamp_args(ffmpeg: str, input_path: str, filter_chain: str, output_path: str) -> List[str]:
    return [
        ffmpeg,
        "-y",
        "-i",
        input_path,
        "-vf",
        filter_chain,
        "-map_metadata",
        "0",
        "-movflags",
        "use_metadata_tags",
        output_path,
    ]


def build_concat_args(ffmpeg: str, list_file: str, output_path: str) -> List[str]:
    return [
        ffmpeg,
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "concat",
        "-safe",
        "0",  # 絶対パスを許可
        "-i",
        list_file,
        "-c",
        "copy",
        "-y",
        output_path,
    ]


def build_transcode_args(ffmpeg: str, input_path: str, output_path: str, fmt: str) -> List[str]:
    """Re-encode arguments for ``webm``/``gif`` output."""
    fmt = fmt.lower()
    if fmt == "webm":
        return [
            ffmpeg,
            "-y",
            "-i",
            input_path,
            "-c:v",
            "libvpx-vp9",
            "-b:v",
            "2000k",
            "-vf",
            PREVIEW_SCALE,
            "-movflags",
            "use_metadata_tags",
            "-preset",
            "ultrafast",
            "-r",
            "10",
            "-map_metadata",
            "0",
            output_path,
        ]
    if fmt == "gif":
        return [
            ffmpeg,
            "-y",
            "-i",
            input_path,
            "-vf",
            f"fps=10,{PREVIEW_SCALE}:flags=lanczos",
            "-loop",
            "0",
            output_path,
        ]
    raise PipelineError(f"Unsupported output format: {fmt}")


async def stamp_clip(
    input_path: str,
    filter_chain: str,
    output_path: str,
    ffmpeg_path: Optional[str] = None,
) -> None:
    """drawtext フィルタを適用して一時 mp4 を書き出す。"""
    cmd = build_stamp_args(ffmpeg_path or get_ffmpeg_path(), input_path, filter_chain, output_path)
    t0 = time.monotonic()
    await _run_ffmpeg_async(cmd)
    logger.debug(f"Stamped {input_path} -> {output_path} in {time.monotonic() - t0:.2f}s")


async def concat_videos_copy(
    input_paths: Sequence[str],
    output_path: str,
    ffmpeg_path: Optional[str] = None,
) -> None:
    """
    -f concat -c copy を使用して動画を再エンコードなしで結合する。
    入力はすべて同じスタンプ処理で作られた mp4 である前提。
    """
    if not input_paths:
        raise PipelineError("No stamped clips to concatenate.")

    out_dir = os.path.dirname(os.path.abspath(output_path)) or "."
    list_file_path = os.path.join(out_dir, "concat_list.txt")
    with open(list_file_path, "w", encoding="utf-8") as f:
        for path in input_paths:
            escaped = os.path.abspath(path).replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")

    cmd = build_concat_args(ffmpeg_path or get_ffmpeg_path(), list_file_path, output_path)
    t0 = time.time()
    try:
        await _run_ffmpeg_async(cmd)
        logger.info(
            "[ConcatCopy] inputs=%d, time=%.2fs -> %s",
            len(input_paths),
            time.time() - t0,
            output_path,
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"Error concatenating videos with -c copy: {e}")
        raise
    finally:
        if os.path.exists(list_file_path):
            os.remove(list_file_path)


async def transcode(
    input_path: str,
    output_path: str,
    fmt: str,
    ffmpeg_path: Optional[str] = None,
) -> None:
    cmd = build_transcode_args(ffmpeg_path or get_ffmpeg_path(), input_path, output_path, fmt)
    await _run_ffmpeg_async(cmd)


def _move(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.resolve() == dst.resolve():
        return
    if dst.exists():
        dst.unlink()
    shutil.move(str(src), str(dst))


async def finalize_clip(
    stamped_path: Path,
    output_path: Path,
    fmt: str,
    ffmpeg_path: Optional[str] = None,
) -> Path:
    """Write ``stamped_path`` to ``output_path`` in the requested format.

    mp4 is moved as is; webm and gif are re-encoded.
    """
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise PipelineError(f"Unsupported output format: {fmt}")
    if fmt == "mp4":
        _move(stamped_path, output_path)
    else:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        await transcode(str(stamped_path), str(output_path), fmt, ffmpeg_path)
    logger.info(f"Finished - stamped {fmt} saved to: {output_path}")
    return output_path

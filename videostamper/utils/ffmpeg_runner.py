"""ffmpeg/ffprobe を非同期サブプロセスとして実行するヘルパー。"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
import subprocess
import time
from typing import List, Optional, Sequence

from .logger import is_trace_enabled, logger

# 0 以下は無制限
TIMEOUT_ENV = "FFMPEG_RUN_TIMEOUT_SEC"
KILL_GRACE_ENV = "FFMPEG_KILL_GRACE_SEC"
LOG_CMD_ENV = "FFMPEG_LOG_CMD"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return default


def format_command(args: Sequence[str]) -> str:
    """Shell-quoted command line for logs."""
    return " ".join(shlex.quote(str(a)) for a in args)


async def _stop(process: asyncio.subprocess.Process, grace: float) -> None:
    """terminate してから ``grace`` 秒待ち、終わらなければ kill する。"""
    with contextlib.suppress(ProcessLookupError):
        process.terminate()
    try:
        await asyncio.wait_for(process.wait(), timeout=max(0.1, grace))
    except asyncio.TimeoutError:
        logger.error(f"PID={process.pid} ignored terminate for {grace:.1f}s; killing.")
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()


async def run_ffmpeg_async(
    args: List[str],
    *,
    timeout: Optional[float] = None,
    error_log_level: Optional[int] = logging.ERROR,
) -> subprocess.CompletedProcess:
    """
    Run ``args`` and collect its output.

    :param timeout: seconds; defaults to ``FFMPEG_RUN_TIMEOUT_SEC``.
    :param error_log_level: level used to report a non-zero exit, or ``None``
        to only log stderr at DEBUG.
    :raises subprocess.CalledProcessError: non-zero exit (stdout/stderr attached).
    :raises subprocess.TimeoutExpired: the process outlived ``timeout``.
    :raises FileNotFoundError: the executable does not exist.
    """
    cmd = [str(a) for a in args]
    tool = os.path.basename(cmd[0]) if cmd else "ffmpeg"
    if timeout is None:
        timeout = _env_float(TIMEOUT_ENV, 0.0)
    if timeout is not None and timeout <= 0:
        timeout = None

    cmd_str = format_command(cmd)
    trace = is_trace_enabled() or os.getenv(LOG_CMD_ENV, "0") == "1"
    logger.log(logging.INFO if trace else logging.DEBUG, f"Running command: {cmd_str}")

    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.error(f"{tool} not found. Install it or set VIDEOSTAMPER_FFMPEG/VIDEOSTAMPER_FFPROBE.")
        raise

    try:
        out_bytes, err_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"{tool} timed out after {timeout:.1f}s (PID={process.pid}); stopping.")
        await _stop(process, _env_float(KILL_GRACE_ENV, 5.0))
        raise subprocess.TimeoutExpired(cmd, timeout)
    except asyncio.CancelledError:
        logger.warning(f"Cancelled while {tool} was running (PID={process.pid}); stopping.")
        await _stop(process, 3.0)
        raise

    stdout = out_bytes.decode(errors="ignore")
    stderr = err_bytes.decode(errors="ignore")
    rc = process.returncode or 0
    logger.debug(f"{tool} exited rc={rc} after {time.monotonic() - started:.2f}s")

    if rc != 0:
        if error_log_level is None:
            logger.debug(f"{tool} failed rc={rc}: {cmd_str}\n{stderr}")
        else:
            logger.log(error_log_level, f"{tool} command failed rc={rc}. Command: {cmd_str}")
            if stderr:
                logger.log(error_log_level, f"stderr:\n{stderr}")
        raise subprocess.CalledProcessError(rc, cmd, output=stdout, stderr=stderr)

    if stderr:
        logger.debug(f"{tool} stderr:\n{stderr}")
    return subprocess.CompletedProcess(cmd, rc, stdout, stderr)

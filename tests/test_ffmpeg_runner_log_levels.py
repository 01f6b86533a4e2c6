import asyncio
import logging
import pathlib
import subprocess
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from videostamper.utils.ffmpeg_runner import format_command, run_ffmpeg_async


def test_run_ffmpeg_async_no_error_logs(caplog):
    """error_log_levelをWARNINGにするとERRORログが出ない"""
    with caplog.at_level(logging.ERROR, logger="videostamper"):
        with pytest.raises(subprocess.CalledProcessError):
            asyncio.run(
                run_ffmpeg_async(["bash", "-c", "exit 1"], error_log_level=logging.WARNING)
            )
    assert not caplog.records


def test_run_ffmpeg_async_returns_output():
    result = asyncio.run(run_ffmpeg_async(["bash", "-c", "echo ok; echo warn >&2"]))
    assert result.returncode == 0
    assert result.stdout.strip() == "ok"
    assert result.stderr.strip() == "warn"


def test_run_ffmpeg_async_carries_stderr_on_failure():
    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        asyncio.run(run_ffmpeg_async(["bash", "-c", "echo boom >&2; exit 3"], error_log_level=None))
    assert excinfo.value.returncode == 3
    assert "boom" in excinfo.value.stderr


def test_run_ffmpeg_async_timeout():
    with pytest.raises(subprocess.TimeoutExpired):
        asyncio.run(run_ffmpeg_async(["bash", "-c", "sleep 5"], timeout=0.2))


def test_run_ffmpeg_async_missing_binary():
    with pytest.raises(FileNotFoundError):
        asyncio.run(run_ffmpeg_async(["/nonexistent/ffmpeg-binary", "-version"]))


def test_format_command_quotes_filters():
    assert format_command(["ffmpeg", "-vf", "drawtext=text='a b'"]) == (
        "ffmpeg -vf 'drawtext=text='\"'\"'a b'\"'\"''"
    )

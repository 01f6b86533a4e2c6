import asyncio
import json
from pathlib import Path
import subprocess
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from videostamper.exceptions import ProbeError
from videostamper.utils import ffmpeg_probe
from videostamper.utils.ffmpeg_probe import VideoMetadata, get_video_metadata, parse_video_metadata


def _probe(stream=None, fmt=None):
    base_stream = {"codec_type": "video", "width": 1920, "height": 1080}
    base_stream.update(stream or {})
    return {"streams": [base_stream], "format": fmt or {}}


def test_apple_creation_tag_wins():
    info = _probe(
        fmt={
            "tags": {
                "creation_time": "2024-05-01T03:00:00.000000Z",
                "com.apple.quicktime.creationdate": "2024-05-01T12:00:00+0900",
            }
        }
    )
    assert parse_video_metadata(info).creation_time_raw == "2024-05-01T12:00:00+0900"


def test_creation_time_fallback():
    info = _probe(fmt={"tags": {"creation_time": "2024-05-01T03:00:00.000000Z"}})
    assert parse_video_metadata(info).creation_time_raw == "2024-05-01T03:00:00.000000Z"


def test_missing_tags():
    meta = parse_video_metadata(_probe())
    assert meta == VideoMetadata(width=1920, height=1080, duration_seconds=0.0)


def test_stream_duration_overrides_format_duration():
    info = _probe(stream={"duration": "12.5"}, fmt={"duration": "13.0"})
    assert parse_video_metadata(info).duration_seconds == 12.5
    assert parse_video_metadata(_probe(fmt={"duration": "13.0"})).duration_seconds == 13.0


@pytest.mark.parametrize(
    "stream",
    [
        {"side_data_list": [{"side_data_type": "Display Matrix", "rotation": -90}]},
        {"tags": {"rotate": "90"}},
        {"tags": {"rotation": "270"}},
    ],
)
def test_rotation_swaps_dimensions(stream):
    meta = parse_video_metadata(_probe(stream=stream))
    assert (meta.width, meta.height) == (1080, 1920)


def test_half_turn_keeps_dimensions():
    meta = parse_video_metadata(_probe(stream={"tags": {"rotate": "180"}}))
    assert (meta.width, meta.height) == (1920, 1080)


def test_non_video_streams_are_skipped():
    info = {
        "streams": [
            {"codec_type": "audio"},
            {"codec_type": "video", "width": 640, "height": 480},
        ]
    }
    meta = parse_video_metadata(info)
    assert (meta.width, meta.height) == (640, 480)


def test_get_video_metadata_runs_ffprobe(monkeypatch):
    calls = []

    async def fake_run(cmd, **kwargs):
        calls.append(cmd)
        body = json.dumps(_probe(fmt={"tags": {"creation_time": "2024-05-01T03:00:00Z"}}))
        return subprocess.CompletedProcess(cmd, 0, body, "")

    monkeypatch.setattr(ffmpeg_probe, "run_ffmpeg_async", fake_run)
    meta = asyncio.run(get_video_metadata("clip.mp4", ffprobe_path="/opt/ffprobe"))
    assert meta.width == 1920
    assert calls[0][0] == "/opt/ffprobe"
    assert calls[0][-1] == "clip.mp4"
    assert "-show_entries" in calls[0]


def test_get_video_metadata_bad_json(monkeypatch):
    async def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, "not json", "")

    monkeypatch.setattr(ffmpeg_probe, "run_ffmpeg_async", fake_run)
    with pytest.raises(ProbeError):
        asyncio.run(get_video_metadata("clip.mp4", ffprobe_path="/opt/ffprobe"))

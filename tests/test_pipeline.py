import asyncio
from pathlib import Path
import subprocess
import sys
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from videostamper import pipeline as pipeline_module
from videostamper.components.config import prepare_project
from videostamper.pipeline import StampPipeline
from videostamper.utils import ffmpeg_ops
from videostamper.utils.ffmpeg_probe import VideoMetadata


class FakeFFmpeg:
    """Records commands and writes the output file named by the last argument."""

    def __init__(self, fail_on: str = ""):
        self.commands: List[List[str]] = []
        self.fail_on = fail_on

    async def __call__(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        if self.fail_on and self.fail_on in cmd:
            raise subprocess.CalledProcessError(1, cmd, stderr="boom")
        out = Path(cmd[-1])
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(b"video:" + Path(cmd[-1]).name.encode())
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def filters(self):
        return [c[c.index("-vf") + 1] for c in self.commands if "-map_metadata" in c and "-c:v" not in c]


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    fake = FakeFFmpeg()
    monkeypatch.setattr(ffmpeg_ops, "_run_ffmpeg_async", fake)

    async def fake_probe(path, ffprobe_path=None):
        return VideoMetadata(1920, 1080, 5.0, "2024-05-01T12:00:00Z")

    monkeypatch.setattr(pipeline_module, "get_video_metadata", fake_probe)
    return fake


def _clips(tmp_path, *names):
    paths = []
    for name in names:
        p = tmp_path / name
        p.write_bytes(b"source")
        paths.append(p)
    return paths


def _pipeline(raw, project_path=None):
    settings = prepare_project(raw)
    return StampPipeline(settings, project_path=project_path, ffmpeg_path="ffmpeg", ffprobe_path="ffprobe")


def test_separate_mode_writes_next_to_inputs(tmp_path, fake_ffmpeg):
    a, b = _clips(tmp_path, "a.mov", "b.mov")
    raw = {"inputs": [{"path": str(a)}, {"path": str(b), "subtitles": [{"text": "hi"}]}]}

    result = asyncio.run(_pipeline(raw).run())

    assert result.success, result.message
    assert result.outputs == [str(tmp_path / "a-stamped.mp4"), str(tmp_path / "b-stamped.mp4")]
    assert all(Path(p).exists() for p in result.outputs)
    filters = fake_ffmpeg.filters()
    assert len(filters) == 2
    assert "gmtime" in filters[0]
    assert "text='hi'" in filters[1]


def test_concat_mode_names_output_after_project(tmp_path, fake_ffmpeg):
    a, b = _clips(tmp_path, "a.mov", "b.mov")
    project = tmp_path / "trip.yaml"
    raw = {"output": {"mode": "concat"}, "inputs": [{"path": "a.mov"}, {"path": "b.mov"}]}

    result = asyncio.run(_pipeline(raw, project_path=str(project)).run())

    assert result.success, result.message
    assert result.outputs == [str(tmp_path.resolve() / "trip.mp4")]
    assert (tmp_path / "trip.mp4").exists()
    assert any("concat" in c for c in fake_ffmpeg.commands)


def test_concat_single_clip_skips_concat(tmp_path, fake_ffmpeg):
    (a,) = _clips(tmp_path, "only.mov")
    raw = {"output": {"mode": "concatenate", "format": "gif"}, "inputs": [{"path": str(a)}]}

    result = asyncio.run(_pipeline(raw).run())

    assert result.success, result.message
    assert result.outputs == [str(tmp_path / "only.gif")]
    assert not any("concat" in c for c in fake_ffmpeg.commands)
    assert any("-loop" in c for c in fake_ffmpeg.commands)


def test_missing_input_fails(tmp_path, fake_ffmpeg):
    raw = {"inputs": [{"path": str(tmp_path / "ghost.mov")}]}
    result = asyncio.run(_pipeline(raw).run())
    assert not result.success
    assert "Input file not found" in result.message
    assert fake_ffmpeg.commands == []


def test_ffmpeg_failure_reported(tmp_path, fake_ffmpeg):
    (a,) = _clips(tmp_path, "a.mov")
    fake_ffmpeg.fail_on = "-vf"
    result = asyncio.run(_pipeline({"inputs": [{"path": str(a)}]}).run())
    assert not result.success
    assert "exit code 1" in result.message


def test_no_inputs_rejected():
    pipeline = StampPipeline(prepare_project({"inputs": [{"path": "x"}]}), ffmpeg_path="ffmpeg")
    pipeline.settings.inputs = []
    result = asyncio.run(pipeline.run())
    assert not result.success
    assert "No inputs" in result.message


def test_relative_paths_use_project_directory(tmp_path):
    pipeline = StampPipeline(prepare_project({"inputs": [{"path": "x"}]}), project_path=str(tmp_path / "p.json"))
    assert pipeline.resolve_input_path("clips/a.mov") == tmp_path.resolve() / "clips" / "a.mov"
    assert pipeline.resolve_input_path(str(tmp_path / "b.mov")) == tmp_path / "b.mov"


def test_run_project_loads_file(tmp_path, fake_ffmpeg, monkeypatch):
    (a,) = _clips(tmp_path, "a.mov")
    project = tmp_path / "p.yaml"
    project.write_text(f"inputs:\n  - path: {a.name}\n", encoding="utf-8")
    monkeypatch.setattr(pipeline_module.StampPipeline, "ffmpeg_path", "ffmpeg")
    monkeypatch.setattr(pipeline_module.StampPipeline, "ffprobe_path", "ffprobe")

    result = asyncio.run(pipeline_module.run_project(str(project)))
    assert result.success, result.message
    assert result.outputs == [str(tmp_path.resolve() / "a-stamped.mp4")]

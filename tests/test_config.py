import json
from pathlib import Path
import sys

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from videostamper.components.config import (
    load_config,
    load_project,
    merge_defaults,
    normalize_keys,
    prepare_project,
    validate_config,
)
from videostamper.components.config.io import to_snake_case
from videostamper.exceptions import ValidationError


def test_to_snake_case_variants():
    assert to_snake_case("AutomaticallyFixOverlappingText") == "automatically_fix_overlapping_text"
    assert to_snake_case("xPad") == "x_pad"
    assert to_snake_case("XPad") == "x_pad"
    assert to_snake_case("font_file") == "font_file"
    assert to_snake_case("border-color") == "border_color"


def test_normalize_keys_is_recursive_and_leaves_values():
    data = {"Inputs": [{"Path": "A.mp4", "Timestamp": {"Format": "yyyy-MM-dd"}}]}
    assert normalize_keys(data) == {
        "inputs": [{"path": "A.mp4", "timestamp": {"format": "yyyy-MM-dd"}}]
    }


def test_load_json_project_with_pascal_case(tmp_path):
    project = {
        "Output": {"Mode": "Concat", "Format": "webm"},
        "Inputs": [
            {
                "Path": "clip.mov",
                "AutomaticallyFixOverlappingText": False,
                "Timestamp": {
                    "Format": "HH:mm",
                    "TimeOffset": -3600,
                    "Font": {"FontFile": "/f.ttf", "Size": 40, "BorderColor": "red", "BorderWidth": 3},
                    "Position": {"Anchor": "topLeft", "XPad": 2.5, "YOffset": 4},
                },
                "Subtitles": [{"Text": "hello", "Start": 1, "End": 4}],
            }
        ],
    }
    path = tmp_path / "project.json"
    path.write_text(json.dumps(project), encoding="utf-8")

    settings = load_project(str(path))
    assert settings.output.is_concat
    assert settings.output.extension == ".webm"
    entry = settings.inputs[0]
    assert entry.path == "clip.mov"
    assert entry.automatically_fix_overlapping_text is False
    assert entry.timestamp.time_offset == -3600
    assert entry.timestamp.font.size == 40
    assert entry.timestamp.font.border_color == "red"
    assert entry.timestamp.position.x_pad == 2.5
    assert entry.timestamp.position.y_offset == 4
    sub = entry.subtitles[0]
    assert (sub.start, sub.duration, sub.end) == (1.0, 3.0, 4.0)


def test_defaults_are_merged_under_entries():
    raw = {
        "defaults": {
            "font": {"font_file": "/shared.ttf", "size": 20},
            "position": {"anchor": "topLeft"},
            "subtitle": {"font": {"size": 28}},
            "automatically_fix_overlapping_text": False,
        },
        "inputs": [
            {
                "path": "a.mp4",
                "timestamp": {"position": {"anchor": "bottomRight"}},
                "subtitles": [{"text": "x"}, {"text": "y", "font": {"color": "red"}}],
            }
        ],
    }
    settings = prepare_project(raw)
    entry = settings.inputs[0]
    assert entry.automatically_fix_overlapping_text is False
    assert entry.timestamp.font.font_file == "/shared.ttf"
    assert entry.timestamp.font.size == 20
    assert entry.timestamp.position.anchor == "bottomRight"
    assert entry.subtitles[0].font.size == 28
    assert entry.subtitles[0].position.anchor == "topLeft"
    assert entry.subtitles[1].font.color == "red"
    assert entry.subtitles[1].font.font_file == "/shared.ttf"
    # the raw document is left untouched
    assert "font" not in raw["inputs"][0]["timestamp"]


def test_settings_defaults():
    settings = prepare_project({"inputs": [{"path": "a.mp4"}]})
    entry = settings.inputs[0]
    assert settings.output.mode == "separate"
    assert settings.output.format == "mp4"
    assert entry.automatically_fix_overlapping_text is True
    assert entry.timestamp.enabled is True
    assert entry.timestamp.format == "yyyy-MM-dd HH:mm:ss"
    assert entry.timestamp.position.anchor == "bottomRight"
    assert entry.timestamp.font.border_width == 2
    assert entry.subtitles == []


def test_validation_collects_every_problem():
    config = {
        "output": {"mode": "sideways", "format": "avi"},
        "inputs": [
            {
                "path": "",
                "timestamp": {
                    "format": "",
                    "font": {"size": 0, "border_color": "black", "border_width": 0},
                    "position": {"x_pad": 150, "y_offset": 1.5},
                },
                "subtitles": [{"text": "a", "start": -1}, {"text": "b", "start": 2, "end": 1}],
            }
        ],
    }
    with pytest.raises(ValidationError) as excinfo:
        validate_config(config)
    message = excinfo.value.message
    for fragment in (
        "Output mode must be one of",
        "Output format must be one of",
        "Input 1: Path is required.",
        "Format must be at least 1 character.",
        "Font size must be greater than 0.",
        "Border width must be > 0 when border color is set.",
        "X padding must be between 0 and 100.",
        "Y offset must be an integer.",
        "Subtitle 1: Start time must be >= 0.",
        "Subtitle 2: Duration must be > 0.",
    ):
        assert fragment in message


def test_validation_requires_inputs():
    with pytest.raises(ValidationError, match="No inputs defined"):
        validate_config({"inputs": []})


def test_disabled_timestamp_skips_its_checks():
    validate_config({"inputs": [{"path": "a.mp4", "timestamp": {"enabled": False, "format": ""}}]})


def test_load_config_reports_yaml_position(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("inputs:\n  - path: a.mp4\n    timestamp: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValidationError) as excinfo:
        load_config(str(path))
    assert excinfo.value.line_number is not None


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ValidationError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text(yaml.safe_dump([1, 2]), encoding="utf-8")
    with pytest.raises(ValidationError, match="mapping"):
        load_config(str(path))


def test_load_config_accepts_bom(tmp_path):
    path = tmp_path / "bom.json"
    path.write_bytes(b"\xef\xbb\xbf" + b'{"inputs": []}')
    assert load_config(str(path)) == {"inputs": []}


def test_merge_defaults_is_deep_and_does_not_share_state():
    defaults = {"font": {"size": 20, "color": "white"}, "anchor": "topLeft"}
    merged = merge_defaults(defaults, {"font": {"color": "red"}, "tags": [1]})
    assert merged == {"font": {"size": 20, "color": "red"}, "anchor": "topLeft", "tags": [1]}
    merged["font"]["size"] = 99
    assert defaults["font"]["size"] == 20


def test_defaults_subtitles_list_is_not_copied_into_inputs():
    raw = {
        "defaults": {"subtitles": [{"text": "shared"}]},
        "inputs": [
            {"path": "a.mp4"},
            {"path": "b.mp4", "subtitles": [{"text": "own"}]},
        ],
    }
    settings = prepare_project(raw)
    assert settings.inputs[0].subtitles == []
    assert [s.text for s in settings.inputs[1].subtitles] == ["own"]

import pytest

from response_parsing import (
    strip_code_fences, extract_json, parse_storyline, parse_beat_sheet,
    parse_shots, parse_frames, parse_budget_items,
)
from exceptions import InvalidAIResponseError
from conftest import BEAT_SHEET_JSON, STORYLINE_JSON


def test_strip_code_fences_removes_json_fence():
    assert strip_code_fences('```json\n[1, 2]\n```') == "[1, 2]"
    assert strip_code_fences("```\nplain\n```") == "plain"
    assert strip_code_fences("  no fences  ") == "no fences"


def test_extract_json_falls_back_to_bracket_span():
    text = 'Here are the frames:\n[{"frame_number": 1}]\nHope this helps!'
    assert extract_json(text, expect="array") == [{"frame_number": 1}]


def test_extract_json_rejects_wrong_shape():
    with pytest.raises(InvalidAIResponseError):
        extract_json('{"a": 1}', expect="array")


def test_extract_json_rejects_garbage():
    with pytest.raises(InvalidAIResponseError) as excinfo:
        extract_json("no json at all", expect="object")
    assert excinfo.value.raw_content == "no json at all"


def test_parse_storyline_requires_all_acts():
    assert parse_storyline(STORYLINE_JSON)["act3"] == "She finds a home."
    with pytest.raises(InvalidAIResponseError):
        parse_storyline('{"act1": "a", "act2": "b"}')


def test_parse_beat_sheet_normalizes_scenes():
    scenes = parse_beat_sheet(BEAT_SHEET_JSON)
    assert [s["number"] for s in scenes] == [1, 2]
    assert scenes[1]["id"] == "scene-2"
    assert scenes[1]["intExt"] == "EXT"
    assert scenes[1]["characters"] == ["Ana", "Driver"]
    assert all(isinstance(s["duration"], int) and s["duration"] >= 1 for s in scenes)


def test_parse_beat_sheet_empty_list_is_invalid():
    with pytest.raises(InvalidAIResponseError):
        parse_beat_sheet("[]")


def test_parse_shots_coerces_fields():
    shots = parse_shots('[{"shot_number": 1.1, "equipment": "Tripod, Dolly", "estimated_setup_time": "15"}]')
    assert shots[0]["shot_number"] == "1.1"
    assert shots[0]["equipment"] == ["Tripod", "Dolly"]
    assert shots[0]["estimated_setup_time"] == 15



def test_non_finite_numbers_fall_back_to_defaults():
    scenes = parse_beat_sheet('[{"description": "x", "duration": 1e999}, {"description": "y", "duration": NaN}]')
    assert [s["duration"] for s in scenes] == [2, 2]
    shots = parse_shots('[{"shot_type": "Wide", "estimated_setup_time": Infinity}]')
    assert shots[0]["estimated_setup_time"] == 0


def test_parse_frames_numbers_missing_frames():
    frames = parse_frames('[{"description": "a"}, {"frame_number": "7", "description": "b"}]')
    assert [f["frame_number"] for f in frames] == [1, 7]


def test_parse_budget_items_accepts_object_or_list():
    assert parse_budget_items('{"items": [{"item_name": "Camera"}]}') == [{"item_name": "Camera"}]
    assert parse_budget_items('```json\n[{"item_name": "Lights"}]\n```') == [{"item_name": "Lights"}]
    with pytest.raises(InvalidAIResponseError):
        parse_budget_items('{"total": 10}')

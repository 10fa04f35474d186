"""
Helpers that turn raw completion text into the structures each stage stores.

Models often wrap JSON in markdown fences or add a sentence around it, so every
parser strips fences first and falls back to the outermost bracketed span.
"""

import json
import re
import logging

import config
from exceptions import InvalidAIResponseError

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")
_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    """Removes markdown code fences (```json ... ```) around a response."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
        cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    elif "```" in cleaned:
        cleaned = re.sub(r"```[a-zA-Z]*\s*", "", cleaned)
    return cleaned.strip()


def extract_json(text: str, expect: str = "array"):
    """Parses a JSON array or object out of a completion.

    Args:
        text: Raw completion content.
        expect: "array" or "object".

    Raises:
        InvalidAIResponseError: nothing of the expected shape could be parsed.
    """
    if expect not in ("array", "object"):
        raise ValueError(f"expect must be 'array' or 'object', got {expect!r}")
    expected_type = list if expect == "array" else dict
    cleaned = strip_code_fences(text)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        span = (_ARRAY_SPAN if expect == "array" else _OBJECT_SPAN).search(cleaned)
        if not span:
            logger.error(f"Failed to parse AI response: {cleaned[:500]}")
            raise InvalidAIResponseError("Invalid AI response: no JSON found.", raw_content=text)
        try:
            parsed = json.loads(span.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse AI response: {cleaned[:500]}")
            raise InvalidAIResponseError(f"Invalid AI response: {e}", raw_content=text) from e

    if not isinstance(parsed, expected_type):
        raise InvalidAIResponseError(f"Invalid AI response: expected a JSON {expect}.", raw_content=text)
    return parsed


def parse_storyline(text: str) -> dict:
    acts = extract_json(text, expect="object")
    missing = [key for key in ("act1", "act2", "act3") if not acts.get(key)]
    if missing:
        raise InvalidAIResponseError(f"Storyline is missing {', '.join(missing)}.", raw_content=text)
    return {key: str(acts[key]).strip() for key in ("act1", "act2", "act3")}


def _as_int(value, default: int) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def normalize_beat_scene(raw: dict, position: int) -> dict:
    """Coerces one beat sheet scene into the stored shape.

    Durations are whole minutes, numbers follow list order, INT/EXT and
    day/night are upper-cased.
    """
    int_ext = str(raw.get("intExt") or raw.get("int_ext") or "INT").upper().rstrip(".")
    day_night = str(raw.get("dayNight") or raw.get("time_of_day") or "DAY").upper()
    duration = _as_int(raw.get("duration", raw.get("estimated_duration")), 2)
    return {
        "id": str(raw.get("id") or f"scene-{position}"),
        "number": position,
        "intExt": int_ext if int_ext in config.INT_EXT_VALUES else "INT",
        "location": str(raw.get("location") or "").strip(),
        "dayNight": day_night,
        "description": str(raw.get("description") or "").strip(),
        "characters": _as_list(raw.get("characters")),
        "duration": max(duration, 1),
    }


def parse_beat_sheet(text: str) -> list:
    scenes = extract_json(text, expect="array")
    normalized = [normalize_beat_scene(scene, i) for i, scene in enumerate(scenes, start=1) if isinstance(scene, dict)]
    if not normalized:
        raise InvalidAIResponseError("Beat sheet has no scenes.", raw_content=text)
    return normalized


def parse_shots(text: str) -> list:
    shots = [shot for shot in extract_json(text, expect="array") if isinstance(shot, dict)]
    for shot in shots:
        shot["equipment"] = _as_list(shot.get("equipment"))
        shot["estimated_setup_time"] = _as_int(shot.get("estimated_setup_time"), 0)
        if shot.get("shot_number") is not None:
            shot["shot_number"] = str(shot["shot_number"])
    return shots


def parse_frames(text: str) -> list:
    frames = [frame for frame in extract_json(text, expect="array") if isinstance(frame, dict)]
    for i, frame in enumerate(frames, start=1):
        frame["frame_number"] = _as_int(frame.get("frame_number"), i)
    return frames


def parse_budget_items(text: str) -> list:
    """Accepts either {"items": [...]} or a bare list of items."""
    cleaned = strip_code_fences(text)
    if cleaned.startswith("["):
        items = extract_json(cleaned, expect="array")
    else:
        parsed = extract_json(cleaned, expect="object")
        items = parsed.get("items")
        if not isinstance(items, list):
            raise InvalidAIResponseError("Budget response has no 'items' list.", raw_content=text)
    return [item for item in items if isinstance(item, dict)]

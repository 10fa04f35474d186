import json

import pytest

import config
from exceptions import (PipelineError, MissingContextError, RateLimitExceededError, InvalidContentTypeError,
                        InvalidAIResponseError)
from conftest import BEAT_SHEET_JSON, STORYLINE_JSON

SHOTS_JSON = json.dumps([
    {"shot_number": "1.1", "shot_type": "Wide Shot", "equipment": ["Tripod"], "estimated_setup_time": 10},
    {"shot_number": "1.2", "shot_type": "Close-up", "equipment": "Handheld", "estimated_setup_time": 5},
])
FRAMES_JSON = json.dumps([
    {"frame_number": 1, "description": "Toast smokes", "camera_angle": "Close-up", "camera_movement": "Static",
     "image_prompt": "smoking toaster"},
])


def test_generate_stage_saves_text_and_logs(runner, projects, store, project, fake_groq):
    fake_groq.queue("```\nA baker loses her shop.\n```")
    content = runner.generate_stage(project["id"], "premise")
    assert content == {"text": "A baker loses her shop."}
    assert projects.get_content(project["id"])["premise"] == content
    log = store.select_one("ai_generations", {"project_id": project["id"]})
    assert log["generation_type"] == "premise"
    assert log["status"] == "completed"


def test_generate_storyline_parses_acts(runner, projects, project, fake_groq):
    projects.save_content(project["id"], "premise", {"text": "P"})
    fake_groq.queue(STORYLINE_JSON)
    content = runner.generate_stage(project["id"], "storyline")
    assert content["acts"]["act2"] == "She searches the city."
    assert "Premise: P" in fake_groq.calls[0]["prompt"]


def test_generate_beat_sheet_syncs_scenes(runner, projects, production, project, fake_groq):
    projects.save_content(project["id"], "storyline", {"acts": {"act1": "a", "act2": "b", "act3": "c"}})
    fake_groq.queue(BEAT_SHEET_JSON)
    content = runner.generate_stage(project["id"], "beat_sheet")
    assert len(content["scenes"]) == 2
    scenes = production.list_scenes(project["id"])
    assert [s["location"] for s in scenes] == ["Kitchen", "Street"]


def test_generate_script_stores_a_version(runner, projects, project, fake_groq):
    scenes = [{"number": 1, "intExt": "INT", "location": "Bakery", "dayNight": "DAY", "description": "Opening."}]
    projects.save_content(project["id"], "beat_sheet", {"scenes": scenes})
    fake_groq.queue("FADE IN:\nINT. BAKERY - DAY")
    runner.generate_stage(project["id"], "script")
    latest = projects.latest_script(project["id"])
    assert latest["source"] == "ai_generated"
    assert latest["content"] == "FADE IN:\nINT. BAKERY - DAY"


def test_generate_stage_from_script(runner, projects, project, fake_groq):
    projects.save_script(project["id"], "INT. LIGHTHOUSE - NIGHT", source="uploaded")
    runner.generate_stage(project["id"], "premise", from_script=True)
    assert "INT. LIGHTHOUSE - NIGHT" in fake_groq.calls[0]["prompt"]


def test_generate_stage_from_missing_script(runner, project, fake_groq):
    with pytest.raises(MissingContextError):
        runner.generate_stage(project["id"], "premise", from_script=True)


def test_generate_stage_rejects_non_story_stage(runner, project):
    with pytest.raises(InvalidContentTypeError):
        runner.generate_stage(project["id"], "budget")


def test_failed_generation_is_logged(runner, store, project, fake_groq, monkeypatch):
    def rate_limited(*args, **kwargs):
        raise RateLimitExceededError()
    monkeypatch.setattr(runner.generator, "complete", rate_limited)
    with pytest.raises(RateLimitExceededError):
        runner.generate_stage(project["id"], "premise")
    log = store.select_one("ai_generations", {"project_id": project["id"]})
    assert log["status"] == "failed"



def test_unparsable_generation_is_logged_as_failed(runner, projects, store, project, fake_groq):
    projects.save_content(project["id"], "premise", {"text": "P"})
    fake_groq.queue("not json at all")
    with pytest.raises(InvalidAIResponseError):
        runner.generate_stage(project["id"], "storyline")
    logs = store.select("ai_generations", {"project_id": project["id"]})
    assert [log["status"] for log in logs] == ["failed"]
    assert logs[0]["error_message"]
    assert "storyline" not in projects.get_content(project["id"])


def test_unparsable_shots_are_logged_as_failed(runner, production, store, project, fake_groq):
    scene = production.create_scene(project["id"], {"description": "Ana burns toast."})
    fake_groq.queue("garbage")
    with pytest.raises(InvalidAIResponseError):
        runner.generate_scene_breakdown(scene["id"])
    logs = store.select("ai_generations", {"generation_type": "technical_breakdown"})
    assert [log["status"] for log in logs] == ["failed"]


def test_process_uploaded_script_runs_all_steps(runner, projects, production, project, fake_groq):
    script = "INT. KITCHEN - DAY\n" + "x" * 7000
    fake_groq.queue("The premise.", "The argument.", STORYLINE_JSON, BEAT_SHEET_JSON)
    result = runner.process_uploaded_script(project["id"], script)
    assert result["generated"] == {"premise": True, "argument": True, "storyline": True, "beatSheet": True}
    content = projects.get_content(project["id"])
    assert content["argument"] == {"text": "The argument."}
    assert len(production.list_scenes(project["id"])) == 2
    prompts = [call["prompt"] for call in fake_groq.calls]
    assert "The premise." in prompts[1]
    assert "x" * (config.UPLOAD_PREMISE_CHARS - 20) in prompts[0]
    assert "x" * config.UPLOAD_PREMISE_CHARS not in prompts[0]
    assert fake_groq.calls[3]["model"] == config.DETAILED_MODEL


def test_process_uploaded_script_stops_without_rollback(runner, projects, project, fake_groq):
    fake_groq.queue("The premise.", "The argument.", "not json at all")
    with pytest.raises(PipelineError) as excinfo:
        runner.process_uploaded_script(project["id"], "FADE IN:")
    assert excinfo.value.stage == "storyline"
    assert excinfo.value.completed == ["premise", "argument"]
    assert projects.completed_steps(projects.get_content(project["id"])) == ["premise", "argument"]


def test_generate_storyboards_for_each_scene(runner, production, project, fake_groq):
    with pytest.raises(MissingContextError, match="beat sheet"):
        runner.generate_storyboards(project["id"])
    production.create_scene(project["id"], {"description": "one"})
    production.create_scene(project["id"], {"description": "two"})
    fake_groq.default = FRAMES_JSON
    result = runner.generate_storyboards(project["id"])
    assert result == {"success": True, "message": "Storyboards generated successfully", "total_scenes": 2}
    assert all(len(s["frames"]) == 1 for s in production.storyboards_by_scene(project["id"]))


def test_generate_breakdowns_skips_scenes_without_description(runner, production, project, fake_groq):
    production.create_scene(project["id"], {"description": "Ana burns toast."})
    empty = production.create_scene(project["id"], {"description": ""})
    fake_groq.default = SHOTS_JSON
    result = runner.generate_breakdowns(project["id"])
    assert result["total_scenes"] == 2
    assert len(fake_groq.calls) == 1
    scenes = production.breakdown_by_scene(project["id"])
    assert [s["shot_number"] for s in scenes[0]["shots"]] == ["1.1", "1.2"]
    assert scenes[0]["shots"][1]["equipment"] == ["Handheld"]
    assert production.list_shots(empty["id"]) == []


def test_generate_breakdowns_reports_progress_on_failure(runner, production, project, fake_groq):
    production.create_scene(project["id"], {"description": "one"})
    production.create_scene(project["id"], {"description": "two"})
    fake_groq.queue(SHOTS_JSON, "garbage")
    with pytest.raises(PipelineError) as excinfo:
        runner.generate_breakdowns(project["id"])
    assert excinfo.value.completed == [1]


def test_generate_budget_inserts_normalized_items(runner, production, project, fake_groq):
    production.create_scene(project["id"], {"description": "one"})
    fake_groq.queue(json.dumps({"items": [
        {"item_name": "Director", "category": "crew", "quantity": 5, "unit": "day", "unit_price": 1500},
        {"name": "Van", "unitPrice": 300},
    ]}))
    items = runner.generate_budget(project["id"])
    assert [i["total_price"] for i in items] == [7500, 300]
    assert items[1]["category"] == config.DEFAULT_BUDGET_CATEGORY
    assert "Number of scenes: 1" in fake_groq.calls[0]["prompt"]


def test_generate_storyboard_image_builds_default_prompt(runner, production, project, image_calls):
    scene = production.create_scene(project["id"], {"scene_number": 2, "int_ext": "EXT", "location": "Pier",
                                                    "time_of_day": "DUSK", "description": "Boats leave."})
    frame = runner.generate_storyboard_image(scene["id"], camera_angle="Wide shot", frame_number=3)
    assert frame["image_url"].startswith("data:image/png;base64,")
    assert frame["frame_number"] == 3
    assert "Scene 2: EXT. Pier - DUSK. Boats leave." in image_calls[0]
    assert "Angle: Wide shot." in frame["image_prompt"]
    assert frame["description"] == "Boats leave."

import pytest

from exceptions import ProjectNotFoundError, InvalidContentTypeError


def test_create_requires_title_genre_and_format(projects):
    with pytest.raises(ValueError):
        projects.create_project("user-1", "Title", "", "short")
    project = projects.create_project("user-1", " Title ", "Drama", "feature")
    assert project["title"] == "Title"
    assert project["status"] == "draft"


def test_list_projects_is_per_user_and_newest_first(projects):
    first = projects.create_project("user-1", "First", "Drama", "short")
    second = projects.create_project("user-1", "Second", "Drama", "short")
    projects.create_project("user-2", "Other", "Drama", "short")
    projects.save_content(first["id"], "premise", {"text": "touched"})
    titles = [p["title"] for p in projects.list_projects("user-1")]
    assert titles == ["First", "Second"]
    assert second["id"] in [p["id"] for p in projects.list_projects("user-1")]


def test_get_project_checks_owner(projects, project):
    assert projects.get_project(project["id"], "user-1")["id"] == project["id"]
    with pytest.raises(ProjectNotFoundError):
        projects.get_project(project["id"], "user-2")


def test_update_project_ignores_unknown_fields(projects, project):
    updated = projects.update_project(project["id"], {"title": "New", "user_id": "hijack"})
    assert updated["title"] == "New"
    assert updated["user_id"] == "user-1"


def test_save_and_get_content(projects, project):
    projects.save_content(project["id"], "premise", {"text": "A"})
    projects.save_content(project["id"], "premise", {"text": "B"})
    projects.save_content(project["id"], "storyline", {"acts": {"act1": "x"}})
    content = projects.get_content(project["id"])
    assert content["premise"] == {"text": "B"}
    assert projects.completed_steps(content) == ["premise", "storyline"]


def test_save_content_rejects_unknown_type(projects, project):
    with pytest.raises(InvalidContentTypeError):
        projects.save_content(project["id"], "poster", {"text": "x"})


def test_save_script_versions_and_stats(projects, project):
    first = projects.save_script(project["id"], "word " * 500, source="uploaded", file_name="draft.pdf")
    second = projects.save_script(project["id"], "FADE IN: the end", source="manual")
    assert first["version"] == 1 and second["version"] == 2
    assert first["word_count"] == 500
    assert first["page_count"] == 2
    assert projects.latest_script_text(project["id"]) == "FADE IN: the end"
    assert projects.get_content(project["id"])["script"] == {"text": "FADE IN: the end"}


def test_latest_script_text_falls_back_to_blob(projects, project):
    assert projects.latest_script_text(project["id"]) == ""
    projects.save_content(project["id"], "script", {"text": "INT. ROOM"})
    assert projects.latest_script_text(project["id"]) == "INT. ROOM"


def test_pipeline_status_ai_workflow(projects, production, project):
    projects.save_content(project["id"], "premise", {"text": "P"})
    scene = production.create_scene(project["id"], {"description": "d"})
    production.add_frame(scene["id"], {"description": "f"})
    stages = projects.pipeline_status(project["id"], "ai")
    assert [s["id"] for s in stages][:3] == ["premise", "argument", "storyline"]
    done = {s["id"] for s in stages if s["completed"]}
    assert done == {"premise", "storyboard"}


def test_pipeline_status_upload_workflow(projects, project):
    projects.save_script(project["id"], "FADE IN:", source="uploaded")
    stages = projects.pipeline_status(project["id"], "upload")
    assert stages[0] == {"id": "script", "label": "Script", "completed": True, "optional": False}
    assert [s["id"] for s in stages if s["optional"]] == ["premise", "argument", "storyline", "beat_sheet"]


def test_delete_project_cascades(projects, production, store, project):
    projects.save_content(project["id"], "premise", {"text": "P"})
    scene = production.create_scene(project["id"], {"description": "d"})
    production.add_shot(scene["id"], {"shot_type": "Wide"})
    production.add_budget_item(project["id"], {"item_name": "Camera"})
    projects.record_generation(project["id"], "premise", "m")
    projects.delete_project(project["id"], "user-1")
    for table in ("projects", "project_content", "scenes", "technical_breakdown", "budget_items", "ai_generations"):
        assert store.select(table) == []


def test_record_generation(projects, project, store):
    projects.record_generation(project["id"], "budget", "model-x", status="failed", error_message="boom")
    row = store.select_one("ai_generations", {"project_id": project["id"]})
    assert row["status"] == "failed"
    assert row["error_message"] == "boom"

import logging
from datetime import datetime, timezone

import config
from data_client import DataClient
from exceptions import ProjectNotFoundError, InvalidContentTypeError
from file_import import script_stats

logger = logging.getLogger(__name__)

SCRIPT_SOURCES = ("ai_generated", "uploaded", "manual")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def has_content(blob) -> bool:
    """A stage counts as done when its blob has text, scenes or acts."""
    if not isinstance(blob, dict):
        return False
    return bool(blob.get("text") or blob.get("scenes") or blob.get("acts"))


class ProjectManager:
    """Projects, their content blobs (premise..script) and script versions."""

    def __init__(self, data_client: DataClient):
        self.db = data_client

    # --- Projects ---

    def list_projects(self, user_id: str) -> list[dict]:
        """Returns the user's projects, most recently updated first."""
        return self.db.select("projects", {"user_id": user_id}, order="updated_at", descending=True)

    def create_project(self, user_id: str, title: str, genre: str, format: str) -> dict:
        """Creates a draft project. Title, genre and format are all required."""
        title, genre, format = (title or "").strip(), (genre or "").strip(), (format or "").strip()
        if not title or not genre or not format:
            raise ValueError("Project title, genre and format are required.")
        project = self.db.insert("projects", {
            "user_id": user_id,
            "title": title,
            "genre": genre,
            "format": format,
            "status": "draft",
            "thumbnail_url": None,
        })[0]
        logger.info(f"New project '{title}' created ({project['id']}).")
        return project

    def get_project(self, project_id: str, user_id: str = None) -> dict:
        """Loads a project; with ``user_id`` only the owner can see it."""
        filters = {"id": project_id}
        if user_id is not None:
            filters["user_id"] = user_id
        project = self.db.select_one("projects", filters)
        if not project:
            logger.warning(f"Project not found: {project_id}")
            raise ProjectNotFoundError(project_id)
        return project

    def update_project(self, project_id: str, values: dict, user_id: str = None) -> dict:
        self.get_project(project_id, user_id)
        allowed = {k: v for k, v in values.items() if k in ("title", "genre", "format", "status", "thumbnail_url")}
        if "title" in allowed and not (allowed["title"] or "").strip():
            raise ValueError("Project title cannot be empty.")
        if not allowed:
            return self.get_project(project_id, user_id)
        return self.db.update("projects", allowed, {"id": project_id})[0]

    def touch_project(self, project_id: str):
        self.db.update("projects", {"updated_at": _now()}, {"id": project_id})

    def delete_project(self, project_id: str, user_id: str = None) -> bool:
        """Deletes a project and every row that hangs off it."""
        self.get_project(project_id, user_id)
        scene_ids = [s["id"] for s in self.db.select("scenes", {"project_id": project_id})]
        if scene_ids:
            self.db.delete("storyboards", in_filters={"scene_id": scene_ids})
            self.db.delete("technical_breakdown", in_filters={"scene_id": scene_ids})
        for table in ("scenes", "project_content", "scripts", "budget_items", "ai_generations"):
            self.db.delete(table, {"project_id": project_id})
        self.db.delete("projects", {"id": project_id})
        logger.info(f"Project deleted: {project_id}")
        return True

    # --- Content blobs ---

    def get_content(self, project_id: str) -> dict:
        """Returns {content_type: content} for every stored stage."""
        rows = self.db.select("project_content", {"project_id": project_id})
        return {row["content_type"]: row.get("content") or {} for row in rows}

    def save_content(self, project_id: str, content_type: str, content: dict) -> dict:
        if content_type not in config.CONTENT_TYPES:
            raise InvalidContentTypeError(content_type)
        row = self.db.upsert(
            "project_content",
            {"project_id": project_id, "content_type": content_type, "content": content},
            on_conflict=("project_id", "content_type"),
        )
        self.touch_project(project_id)
        logger.info(f"Saved {content_type} for project {project_id}")
        return row

    @staticmethod
    def completed_steps(content: dict) -> list[str]:
        return [t for t in config.CONTENT_TYPES if has_content(content.get(t))]

    def pipeline_status(self, project_id: str, workflow: str = "ai") -> list[dict]:
        """Ordered stages of a workflow with their completion flags.

        The upload workflow starts at the script; the narrative stages it can
        derive from the script trail as optional.
        """
        if workflow not in ("ai", "upload"):
            raise ValueError(f"Unknown workflow: {workflow}")
        content = self.get_content(project_id)
        completed = set(self.completed_steps(content))
        scene_ids = [s["id"] for s in self.db.select("scenes", {"project_id": project_id})]
        if scene_ids:
            if self.db.select("storyboards", in_filters={"scene_id": scene_ids}, limit=1):
                completed.add("storyboard")
            if self.db.select("technical_breakdown", in_filters={"scene_id": scene_ids}, limit=1):
                completed.add("breakdown")
        if self.db.select("budget_items", {"project_id": project_id}, limit=1):
            completed.add("budget")
        if "script" not in completed and self.db.select("scripts", {"project_id": project_id}, limit=1):
            completed.add("script")

        if workflow == "ai":
            stages = [(s, False) for s in config.AI_WORKFLOW_STAGES]
        else:
            stages = [(s, False) for s in config.UPLOAD_WORKFLOW_STAGES] + [(s, True) for s in config.UPLOAD_OPTIONAL_STAGES]
        return [
            {"id": stage, "label": config.STAGE_LABELS[stage], "completed": stage in completed, "optional": optional}
            for stage, optional in stages
        ]

    # --- Scripts ---

    def save_script(self, project_id: str, text: str, source: str = "manual", file_name: str = None,
                    script_type: str = "screenplay") -> dict:
        """Stores a new script version and mirrors it into the ``script`` content blob."""
        if not text or not text.strip():
            raise ValueError("Script text cannot be empty.")
        if source not in SCRIPT_SOURCES:
            raise ValueError(f"Unknown script source: {source}")
        latest = self.db.select("scripts", {"project_id": project_id}, order="version", descending=True, limit=1)
        version = (latest[0].get("version") or 0) + 1 if latest else 1
        record = self.db.insert("scripts", {
            "project_id": project_id,
            "content": text,
            "type": script_type,
            "source": source,
            "file_name": file_name,
            "version": version,
            **script_stats(text),
        })[0]
        self.save_content(project_id, "script", {"text": text})
        logger.info(f"Saved script v{version} ({source}) for project {project_id}")
        return record

    def latest_script(self, project_id: str) -> dict | None:
        rows = self.db.select("scripts", {"project_id": project_id}, order="version", descending=True, limit=1)
        return rows[0] if rows else None

    def latest_script_text(self, project_id: str) -> str:
        """Newest script version, falling back to the ``script`` content blob."""
        latest = self.latest_script(project_id)
        if latest and latest.get("content"):
            return latest["content"]
        blob = self.get_content(project_id).get("script") or {}
        return blob.get("text") or ""

    # --- Generation log ---

    def record_generation(self, project_id: str, generation_type: str, model: str, status: str = "completed",
                          processing_time_ms: int = None, error_message: str = None,
                          prompt: str = None, result: dict = None) -> dict:
        return self.db.insert("ai_generations", {
            "project_id": project_id,
            "generation_type": generation_type,
            "model_used": model,
            "status": status,
            "processing_time_ms": processing_time_ms,
            "error_message": error_message,
            "prompt": prompt,
            "result": result,
        })[0]

"""
Multi-step generation over a stored project.

``PipelineRunner`` builds each stage's context from what is already saved,
calls the generation function, parses structured answers and writes the
results back. Steps run sequentially; a failure stops the run and leaves the
earlier steps saved.
"""

import time
import logging

import config
from content_generator import ContentGenerator
from project_manager import ProjectManager
from production_manager import ProductionManager
from agents.breakdown_agent import BreakdownAgent
from image_generator import generate_image_from_prompt
from response_parsing import parse_storyline, parse_beat_sheet, parse_shots, parse_frames, parse_budget_items, strip_code_fences
from exceptions import InvalidContentTypeError, MissingContextError, PipelineError, ReelPlanError

logger = logging.getLogger(__name__)

NO_SCENES_MESSAGE = "No scenes found. Create the beat sheet first."


class PipelineRunner:
    def __init__(self, projects: ProjectManager, production: ProductionManager,
                 generator: ContentGenerator = None, image_generator=generate_image_from_prompt):
        self.projects = projects
        self.production = production
        self.generator = generator or ContentGenerator()
        self.image_generator = image_generator

    # --- Single stages ---

    def build_context(self, project_id: str, stage: str, from_script: bool = False) -> dict:
        """Context payload for ``stage`` from the stored content.

        With ``from_script`` the narrative stages are derived from the latest
        script instead of the previous stage.
        """
        content = self.projects.get_content(project_id)
        context = {
            "premise": (content.get("premise") or {}).get("text", ""),
            "argument": (content.get("argument") or {}).get("text", ""),
            "storyline": content.get("storyline") or {},
            "beatSheet": content.get("beat_sheet") or {},
        }
        if stage == "budget" or (from_script and stage in config.UPLOAD_OPTIONAL_STAGES):
            context["script"] = self.projects.latest_script_text(project_id)
        if stage == "budget":
            scenes = self.production.list_scenes(project_id)
            context["scenes"] = scenes
            context["scenesCount"] = len(scenes) or len(context["beatSheet"].get("scenes") or [])
        return context

    def _run_generation(self, project_id: str, generation_type: str, context: dict, parse=None):
        """Generates one completion, parses it with ``parse`` and logs it in ``ai_generations``.

        The row is marked failed when either the call or the parse raises.
        """
        model = self.generator.model_for(generation_type, context)
        started = time.monotonic()
        try:
            raw = self.generator.generate(generation_type, context)
            result = parse(raw) if parse else raw
        except ReelPlanError as e:
            elapsed = int((time.monotonic() - started) * 1000)
            self.projects.record_generation(project_id, generation_type, model, status="failed",
                                            processing_time_ms=elapsed, error_message=e.message)
            raise
        elapsed = int((time.monotonic() - started) * 1000)
        self.projects.record_generation(project_id, generation_type, model, processing_time_ms=elapsed,
                                        result={"length": len(raw)})
        logger.info(f"Generated {generation_type} for project {project_id} in {elapsed} ms ({len(raw)} chars)")
        return result

    @staticmethod
    def _parse_stage(stage: str, raw: str) -> dict:
        if stage == "storyline":
            return {"acts": parse_storyline(raw)}
        if stage == "beat_sheet":
            return {"scenes": parse_beat_sheet(raw)}
        return {"text": strip_code_fences(raw)}

    def _save_stage(self, project_id: str, stage: str, content: dict):
        """Stores parsed stage content. Returns it."""
        if stage == "script":
            self.projects.save_script(project_id, content["text"], source="ai_generated")
        else:
            self.projects.save_content(project_id, stage, content)
        if stage == "beat_sheet":
            self.production.sync_scenes_from_beat_sheet(project_id, content["scenes"])
        return content

    def generate_stage(self, project_id: str, stage: str, from_script: bool = False) -> dict:
        """Generates one narrative stage and saves it.

        Beat sheet generation also replaces the project's scenes.
        """
        if stage not in config.CONTENT_TYPES:
            raise InvalidContentTypeError(stage)
        context = self.build_context(project_id, stage, from_script=from_script)
        if from_script and stage in config.UPLOAD_OPTIONAL_STAGES and not context.get("script"):
            raise MissingContextError("The project has no script to extract from.")
        content = self._run_generation(project_id, stage, context, parse=lambda raw: self._parse_stage(stage, raw))
        return self._save_stage(project_id, stage, content)

    # --- Upload workflow ---

    def process_uploaded_script(self, project_id: str, script_text: str) -> dict:
        """Derives premise, argument, storyline and beat sheet from a script.

        Each step is saved as soon as it completes. On failure a PipelineError
        names the failing step and the steps already saved.
        """
        if not script_text or not script_text.strip():
            raise MissingContextError("Script text is required.")
        generated = {"premise": False, "argument": False, "storyline": False, "beatSheet": False}
        completed = []
        steps = [
            ("premise", lambda saved: {"script": script_text[:config.UPLOAD_PREMISE_CHARS]}),
            ("argument", lambda saved: {"premise": saved["premise"]["text"],
                                        "script": script_text[:config.UPLOAD_ARGUMENT_CHARS]}),
            ("storyline", lambda saved: {"script": script_text[:config.UPLOAD_STORYLINE_CHARS]}),
            ("beat_sheet", lambda saved: {"script": script_text[:config.UPLOAD_BEAT_SHEET_CHARS]}),
        ]
        saved = {}
        for stage, context_for in steps:
            logger.info(f"Processing uploaded script for project {project_id}: {stage}...")
            try:
                content = self._run_generation(project_id, stage, context_for(saved),
                                               parse=lambda raw: self._parse_stage(stage, raw))
                saved[stage] = self._save_stage(project_id, stage, content)
            except ReelPlanError as e:
                logger.error(f"Upload pipeline stopped at {stage} for project {project_id}: {e.message}")
                raise PipelineError(stage, completed, e) from e
            completed.append(stage)
            generated["beatSheet" if stage == "beat_sheet" else stage] = True

        return {"success": True, "message": "All content generated successfully!", "generated": generated}

    # --- Per-scene generation ---

    def _scenes_or_fail(self, project_id: str) -> list[dict]:
        scenes = self.production.list_scenes(project_id)
        if not scenes:
            raise MissingContextError(NO_SCENES_MESSAGE)
        return scenes

    def generate_storyboards(self, project_id: str) -> dict:
        """Generates 3-5 frames for every scene of the project, in scene order."""
        scenes = self._scenes_or_fail(project_id)
        logger.info(f"Generating storyboards for {len(scenes)} scenes...")
        agent = self.generator.breakdown_agent
        done = []
        for scene in scenes:
            try:
                frames = parse_frames(agent.storyboard_frames(scene))
            except ReelPlanError as e:
                raise PipelineError(f"storyboard scene {scene.get('scene_number')}", done, e) from e
            self.production.add_frames(scene["id"], frames)
            done.append(scene.get("scene_number"))
            logger.info(f"Storyboard generated for scene {scene.get('scene_number')}")
        return {"success": True, "message": "Storyboards generated successfully", "total_scenes": len(scenes)}

    def generate_scene_breakdown(self, scene_id: str) -> list[dict]:
        """Generates and stores the shots for one scene."""
        scene = self.production.get_scene(scene_id)
        shots = self._run_generation(scene["project_id"], "technical_breakdown", {"scene": scene}, parse=parse_shots)
        return self.production.add_shots(scene_id, shots)

    def generate_breakdowns(self, project_id: str) -> dict:
        """Generates the technical breakdown for every scene with a description."""
        scenes = self._scenes_or_fail(project_id)
        logger.info(f"Generating technical breakdown for {len(scenes)} scenes...")
        done = []
        for scene in scenes:
            if not scene.get("description"):
                logger.warning(f"Skipping scene {scene.get('scene_number')} without description")
                continue
            try:
                self.generate_scene_breakdown(scene["id"])
            except ReelPlanError as e:
                raise PipelineError(f"breakdown scene {scene.get('scene_number')}", done, e) from e
            done.append(scene.get("scene_number"))
            logger.info(f"Breakdown generated for scene {scene.get('scene_number')}")
        return {"success": True, "message": "Technical breakdown generated successfully", "total_scenes": len(scenes)}

    def generate_budget(self, project_id: str) -> list[dict]:
        context = self.build_context(project_id, "budget")
        items = self._run_generation(project_id, "budget", context, parse=parse_budget_items)
        return self.production.add_budget_items(project_id, items)

    def generate_storyboard_image(self, scene_id: str, prompt: str = None, frame_number: int = None,
                                  camera_angle: str = None, camera_movement: str = None,
                                  description: str = None) -> dict:
        """Generates an image for a frame and stores it as a new storyboard row."""
        scene = self.production.get_scene(scene_id)
        image_prompt = prompt or BreakdownAgent.frame_image_prompt(scene, camera_angle, camera_movement)
        image_url = self.image_generator(image_prompt)
        return self.production.add_frame(scene_id, {
            "frame_number": frame_number,
            "description": description or scene.get("description"),
            "camera_angle": camera_angle,
            "camera_movement": camera_movement,
            "image_prompt": image_prompt,
            "image_url": image_url,
        })

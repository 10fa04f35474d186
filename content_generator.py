import logging
import config
from groq_client import call_groq
from agents.story_agent import StoryAgent
from agents.breakdown_agent import BreakdownAgent
from agents.budget_agent import BudgetAgent
from exceptions import InvalidContentTypeError, MissingContextError

logger = logging.getLogger(__name__)


def _text_of(value) -> str:
    # Context values arrive either as plain strings or as stored blobs ({"text": ...})
    if isinstance(value, dict):
        value = value.get("text")
    return value if isinstance(value, str) else ""


def _acts_of(storyline) -> dict:
    # Either the stored blob ({"acts": {...}}) or the acts themselves
    if isinstance(storyline, dict) and "acts" in storyline:
        storyline = storyline["acts"]
    return storyline if isinstance(storyline, dict) else {}


def _scenes_of(beat_sheet) -> list:
    scenes = beat_sheet.get("scenes") if isinstance(beat_sheet, dict) else beat_sheet
    if not isinstance(scenes, list) or not all(isinstance(s, dict) for s in scenes):
        return []
    return scenes


class ContentGenerator:
    """Stateless generation function: maps a {type, context} payload to an agent call.

    Context keys follow what the web client sends: ``premise``, ``argument``,
    ``script`` (strings or ``{"text": ...}`` blobs), ``storyline``
    (``{"acts": {...}}``), ``beatSheet`` (``{"scenes": [...]}``), the scene
    columns for a technical breakdown, and ``scenes``/``scenesCount`` for a
    budget.
    """

    def __init__(self, complete=call_groq):
        self.complete = complete
        self.story_agent = StoryAgent(complete=self._complete)
        self.breakdown_agent = BreakdownAgent(complete=self._complete)
        self.budget_agent = BudgetAgent(complete=self._complete)

    def _complete(self, prompt, system_prompt, model=config.DEFAULT_MODEL):
        # Agents pick the model; this indirection lets tests swap ``complete`` after construction
        return self.complete(prompt, system_prompt, model=model)

    @staticmethod
    def model_for(content_type: str, context: dict = None) -> str:
        context = context or {}
        if (content_type == "beat_sheet" and _text_of(context.get("script"))) or content_type == "technical_breakdown":
            return config.DETAILED_MODEL
        return config.DEFAULT_MODEL

    def generate(self, content_type: str, context: dict = None) -> str:
        """Returns the raw completion text for one stage.

        Raises:
            InvalidContentTypeError: unknown ``content_type``.
            MissingContextError: the stage's inputs are missing from ``context``.
        """
        if content_type not in config.GENERATION_TYPES:
            raise InvalidContentTypeError(content_type)
        context = context or {}
        script = _text_of(context.get("script"))
        logger.info(f"Generating {content_type} with {self.model_for(content_type, context)}")

        if content_type == "premise":
            return self.story_agent.premise(script=script or None)

        if content_type == "argument":
            premise = _text_of(context.get("premise"))
            if not premise and not script:
                raise MissingContextError("A premise or a script is required to generate the argument.")
            return self.story_agent.argument(premise=premise or None, script=script or None)

        if content_type == "storyline":
            return self.story_agent.storyline(
                premise=_text_of(context.get("premise")) or None,
                argument=_text_of(context.get("argument")) or None,
                script=script or None,
            )

        if content_type == "beat_sheet":
            if script:
                return self.story_agent.beat_sheet(script=script)
            acts = _acts_of(context.get("storyline"))
            if not any(acts.values()):
                raise MissingContextError("A storyline or a script is required to generate the beat sheet.")
            return self.story_agent.beat_sheet(acts=acts)

        if content_type == "script":
            scenes = _scenes_of(context.get("beatSheet") or context.get("beat_sheet"))
            if not scenes:
                raise MissingContextError("The beat sheet needs scenes before the script can be written.")
            return self.story_agent.script(scenes)

        if content_type == "technical_breakdown":
            scene = context.get("scene") or context
            if not isinstance(scene, dict) or not scene.get("description"):
                raise MissingContextError("The scene needs a description to generate its breakdown.")
            return self.breakdown_agent.technical_breakdown(scene)

        # budget
        scenes = _scenes_of(context.get("scenes"))
        return self.budget_agent.budget(script=script, scenes=scenes, scenes_count=context.get("scenesCount"))

from groq_client import call_groq
import config


class StoryAgent:
    """Writes the narrative stages: premise, argument, storyline, beat sheet and script.

    Every stage can be invented from the previous one or extracted from an
    existing script. Storyline and beat sheet answers are JSON.
    """

    def __init__(self, complete=call_groq):
        self.complete = complete
        self.sp_premise = "You are a professional screenwriter specialized in crafting compelling film premises."
        self.sp_argument = "You are a professional screenwriter specialized in developing complete narrative arguments (story treatments)."
        self.sp_storyline = "You are a professional screenwriter specialized in three-act structure. Answer ONLY with valid JSON."
        self.sp_beat_sheet = "You are a professional screenwriter specialized in building detailed beat sheets (scene lists) from stories and scripts. Answer ONLY with valid JSON."
        self.sp_writer = "You are a professional screenwriter specialized in screenplay formatting. Adhere strictly to standard screenplay format (scene headings, action lines, character cues, dialogue)."

    def premise(self, script: str = None) -> str:
        """Creates an original premise, or extracts one from a script."""
        if script:
            prompt = f"""
        Analyze the following complete script and extract its premise in 2-3 lines.
        The premise must present the protagonist, the central conflict and what makes the story unique.

        Script:
        {script}
        """
        else:
            prompt = """
        Create an original, engaging premise for an audiovisual project in 2-3 lines.
        The premise must present the protagonist, the central conflict and what makes the story unique.
        Be creative and specific.
        """
        return self.complete(prompt, self.sp_premise)

    def argument(self, premise: str = None, script: str = None) -> str:
        """Expands a premise (or synthesizes a script) into a 300-400 word argument."""
        if not premise and not script:
            raise ValueError("A premise or a script is required to write the argument.")
        structure = (
            "Develop the main characters, the basic narrative structure "
            "(setup, development, climax, resolution) and the central themes of the story."
        )
        if script:
            premise_line = f"\n        Premise: {premise}\n" if premise else ""
            prompt = f"""
        Analyze the following complete script and extract/synthesize its argument in approximately 300-400 words.
        {structure}
        {premise_line}
        Script:
        {script}
        """
        else:
            prompt = f"""
        Expand the following premise into a complete argument of approximately 300-400 words.
        {structure}

        Premise: {premise}
        """
        return self.complete(prompt, self.sp_argument)

    def storyline(self, premise: str = None, argument: str = None, script: str = None) -> str:
        """Three-act storyline as a JSON object {"act1", "act2", "act3"}."""
        json_format = '{"act1": "act 1 text", "act2": "act 2 text", "act3": "act 3 text"}'
        if script:
            prompt = f"""
        Analyze the following complete script and structure a storyline in three acts.
        Return ONLY a valid JSON object in the format: {json_format}
        Each act must have at least 100 words describing what happens in the script.

        Script:
        {script}
        """
        else:
            prompt = f"""
        Based on the following context, create a storyline structured in three acts.
        Return ONLY a valid JSON object in the format: {json_format}
        Each act must have at least 100 words.

        Context:
        Premise: {premise or 'Not specified'}
        Argument: {argument or 'Not specified'}
        """
        return self.complete(prompt, self.sp_storyline)

    def beat_sheet(self, acts: dict = None, script: str = None) -> str:
        """Scene list as a JSON array.

        From a script every scene is extracted with the detailed model; from a
        storyline 8-12 scenes are invented.
        """
        day_night = "/".join(config.DAY_NIGHT_VALUES)
        if script:
            json_format = ('[{"id": "scene-X", "number": 1, "intExt": "INT", "location": "location name", '
                           '"dayNight": "DAY", "description": "short summary of the action", '
                           '"characters": ["character1", "character2"], "duration": 2}]')
            prompt = f"""
        Analyze the following complete script and extract ALL of its scenes as a beat sheet.
        For each scene identify its number, whether it is INT or EXT, the location, the time of day ({day_night}),
        a description of what happens, the characters involved and the estimated duration in minutes.
        Return ONLY a valid JSON array of objects in the format: {json_format}

        IMPORTANT:
        - Extract ALL scenes of the script, do not limit yourself to 8-12. If the script has 19 scenes, return 19. If it has 8, return 8.
        - The "duration" field MUST always be a whole number (1, 2, 3, 4, 5...), NEVER decimals such as 0.5 or 1.5.

        Script:
        {script}
        """
            return self.complete(prompt, self.sp_beat_sheet, model=config.DETAILED_MODEL)

        acts = acts or {}
        json_format = ('[{"id": "scene-X", "number": 1, "intExt": "INT", "location": "location name", '
                       '"dayNight": "DAY", "description": "scene description", "characters": [], "duration": 2}]')
        prompt = f"""
        Based on the following storyline, create a beat sheet with 8-12 scenes.
        Use {day_night} for the time of day.
        Return ONLY a valid JSON array of objects in the format: {json_format}

        IMPORTANT: The "duration" field MUST always be a whole number (1, 2, 3, 4, 5...), NEVER decimals.

        Storyline:
        Act 1: {acts.get('act1', '')}
        Act 2: {acts.get('act2', '')}
        Act 3: {acts.get('act3', '')}
        """
        return self.complete(prompt, self.sp_beat_sheet)

    def script(self, scenes: list) -> str:
        """Full screenplay written from the beat sheet scenes."""
        if not scenes:
            raise ValueError("The beat sheet has no scenes.")
        scenes_desc = "\n\n".join(
            f"SCENE {s.get('number')} - {s.get('intExt')}. {s.get('location')} - {s.get('dayNight')}\n{s.get('description')}"
            for s in scenes
        )
        prompt = f"""
        Based on the following beat sheet, write a complete, professionally formatted screenplay.
        Include scene headings (INT/EXT, location, time of day), action lines and realistic dialogue.
        Keep traditional screenplay formatting.

        Beat sheet:
        {scenes_desc}
        """
        return self.complete(prompt, self.sp_writer)

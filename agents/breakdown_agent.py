from groq_client import call_groq
import config


def scene_heading(scene: dict) -> str:
    return f"SCENE {scene.get('scene_number')} - {scene.get('int_ext')}. {scene.get('location')} - {scene.get('time_of_day')}"


class BreakdownAgent:
    """Turns a single scene row into camera shots or storyboard frames."""

    def __init__(self, complete=call_groq):
        self.complete = complete
        self.sp_cinematographer = (
            "You are an experienced director of photography. Analyze the scene description and generate ONLY the "
            "shots that are NECESSARY and SPECIFIC to what is described. Do NOT generate generic or unnecessary shots.\n\n"
            "PRINCIPLE: Less is more. Every shot must have a clear purpose grounded in the described action."
        )
        self.sp_storyboard = "You are a film director specialized in storyboarding. Answer ONLY with valid JSON."

    def technical_breakdown(self, scene: dict) -> str:
        """JSON array of shots for one scene."""
        if not scene.get("description"):
            raise ValueError("The scene needs a description to be broken down.")
        number = scene.get("scene_number")
        prompt = f"""
Analyze this scene and create a technical breakdown with ONLY the shots NECESSARY to tell what is described. Do NOT add generic shots.

{scene_heading(scene)}

DESCRIPTION:
{scene.get('description')}

RULES:
1. Read the description carefully and identify ONLY the actions and elements that must be shown
2. Generate the EXACT number of shots needed (it may be 3, 5, 8 or more, depending on what the scene describes)
3. For short, simple scenes 3-5 shots are enough
4. Complex scenes with several actions need more shots
5. Each shot must show something SPECIFIC from the description
6. Do NOT add "reaction" shots or inserts unless they are mentioned or implied by the description

FORMAT - Return ONLY a JSON array:
[
  {{
    "shot_number": "{number}.1",
    "shot_type": "Wide Shot",
    "framing": "Frontal",
    "movement": "Static",
    "lens": "35mm",
    "equipment": ["Tripod"],
    "lighting_setup": "Lighting description",
    "sound_notes": "Sound notes",
    "vfx_notes": "None",
    "notes": "Specific purpose of the shot based on the description",
    "estimated_setup_time": 10
  }}
]

IMPORTANT: Generate only what the scene REALLY needs. Quality over quantity.
"""
        return self.complete(prompt, self.sp_cinematographer, model=config.DETAILED_MODEL)

    def storyboard_frames(self, scene: dict) -> str:
        """JSON array of 3-5 storyboard frames for one scene."""
        prompt = f"""
Analyze the following scene and create 3-5 storyboard frames to visualize it:

{scene_heading(scene)}
Description: {scene.get('description') or ''}

Return ONLY a JSON array of frames in the format:
[
  {{
    "frame_number": 1,
    "description": "what is shown in the frame",
    "camera_angle": "camera angle (e.g. Close-up, Medium shot, Wide shot)",
    "camera_movement": "camera movement (e.g. Static, Pan, Tilt, Tracking)",
    "image_prompt": "detailed prompt to generate the image of this frame"
  }}
]
"""
        return self.complete(prompt, self.sp_storyboard)

    @staticmethod
    def frame_image_prompt(scene: dict, camera_angle: str = None, camera_movement: str = None) -> str:
        """Default image prompt for a frame that has none."""
        parts = [f"Scene {scene.get('scene_number')}: {scene.get('int_ext')}. {scene.get('location')} - {scene.get('time_of_day')}. {scene.get('description') or ''}"]
        if camera_angle:
            parts.append(f"Angle: {camera_angle}.")
        if camera_movement:
            parts.append(f"Movement: {camera_movement}.")
        parts.append("Professional cinematic style, striking visual composition.")
        return " ".join(parts)

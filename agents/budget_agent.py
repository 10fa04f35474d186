import json
from groq_client import call_groq
import config


class BudgetAgent:
    def __init__(self, complete=call_groq):
        self.complete = complete
        self.system_prompt = (
            f"You are an experienced film executive producer, expert in {config.BUDGET_MARKET} audiovisual production budgets. "
            "Create detailed, realistic budgets based on the project content."
        )

    def budget(self, script: str = "", scenes: list = None, scenes_count: int = None) -> str:
        """Budget line items as a JSON object {"items": [...]}."""
        scenes = scenes or []
        if scenes_count is None:
            scenes_count = len(scenes)
        # Only a sample of scenes keeps the prompt short
        sample = [
            {k: s.get(k) for k in ("scene_number", "int_ext", "location", "time_of_day", "description") if k in s}
            for s in scenes[:5]
        ]
        categories = ", ".join(config.BUDGET_CATEGORIES)
        prompt = f"""
Based on the following audiovisual project, create a complete and realistic list of budget items.

PROJECT INFORMATION:
- Number of scenes: {scenes_count or 'not specified'}
- Script: {'Yes' if script else 'Not available'}
- Scenes: {json.dumps(sample, ensure_ascii=False)}

INSTRUCTIONS:
1. Create between 15 and 30 budget items covering all main categories
2. Include: pre-production, production, post-production, cast, crew, locations, equipment, art, wardrobe, catering, transport
3. Use realistic values in {config.BUDGET_CURRENCY} for the {config.BUDGET_MARKET} market
4. Scale the budget to the number of scenes

FORMAT - Return ONLY a JSON object:
{{
  "items": [
    {{
      "item_name": "Director of Photography",
      "description": "Shooting days + prep",
      "category": "crew",
      "quantity": 5,
      "unit": "day",
      "unit_price": 1500,
      "notes": "Includes own equipment"
    }}
  ]
}}

Valid categories: {categories}
"""
        return self.complete(prompt, self.system_prompt)

"""
Production rows derived from the story: scenes, storyboard frames, camera
shots and budget line items.
"""

import logging
from collections import OrderedDict

import config
from data_client import DataClient
from exceptions import SceneNotFoundError, RecordNotFoundError

logger = logging.getLogger(__name__)

SCENE_FIELDS = ("scene_number", "int_ext", "location", "time_of_day", "description",
                "characters", "props", "estimated_duration", "notes")
FRAME_FIELDS = ("frame_number", "description", "camera_angle", "camera_movement", "image_prompt", "image_url")
SHOT_FIELDS = ("shot_number", "shot_type", "framing", "movement", "lens", "equipment", "lighting_setup",
               "sound_notes", "vfx_notes", "notes", "estimated_setup_time")
BUDGET_FIELDS = ("item_name", "category", "description", "subcategory", "quantity", "unit", "unit_price",
                 "supplier", "contact", "status", "payment_method", "notes")


def _pick(values: dict, fields) -> dict:
    return {k: v for k, v in values.items() if k in fields}


def parse_decimal(value: str) -> float:
    """Parses "1500", "1500,5", "1.500,00" or "1,500.00".

    Whichever separator comes last is the decimal one. Raises ValueError.
    """
    value = str(value).strip().replace(" ", "")
    if "," in value and "." in value:
        if value.rfind(",") > value.rfind("."):
            value = value.replace(".", "").replace(",", ".")
        else:
            value = value.replace(",", "")
    else:
        value = value.replace(",", ".")
    return float(value)


def _number(value, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        return parse_decimal(value)
    except ValueError:
        return default


def split_equipment(value) -> list:
    if not value:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def compute_total(quantity, unit_price) -> float:
    return (quantity or 1) * (unit_price or 0)


def normalize_budget_item(raw: dict) -> dict:
    """Coerces an AI or CSV budget row into the stored column set.

    Accepts ``name``/``unitPrice`` style keys, falls back to the
    default category and unit, and keeps ``total_price`` consistent.
    """
    item_name = str(raw.get("item_name") or raw.get("name") or raw.get("item") or "").strip()
    if not item_name:
        raise ValueError("Budget item needs a name.")
    category = str(raw.get("category") or config.DEFAULT_BUDGET_CATEGORY).strip().lower().replace("-", "_").replace(" ", "_")
    quantity = _number(raw.get("quantity"), 1)
    unit_price = _number(raw.get("unit_price", raw.get("unitPrice")), 0)
    return {
        "item_name": item_name,
        "category": category if category in config.BUDGET_CATEGORIES else "other",
        "description": raw.get("description") or None,
        "subcategory": raw.get("subcategory") or None,
        "quantity": quantity,
        "unit": raw.get("unit") or config.DEFAULT_BUDGET_UNIT,
        "unit_price": unit_price,
        "total_price": compute_total(quantity, unit_price),
        "currency": raw.get("currency") or config.BUDGET_CURRENCY,
        "supplier": raw.get("supplier") or None,
        "contact": raw.get("contact") or None,
        "status": raw.get("status") or "estimated",
        "payment_method": raw.get("payment_method") or None,
        "notes": raw.get("notes") or None,
    }


def budget_summary(items: list, currency: str = config.BUDGET_CURRENCY) -> dict:
    """Groups items by category with subtotals and a grand total."""
    groups = OrderedDict()
    for item in items:
        groups.setdefault(item.get("category") or "other", []).append(item)
    categories = []
    for category, group in groups.items():
        subtotal = sum(item.get("total_price") or compute_total(item.get("quantity"), item.get("unit_price")) for item in group)
        categories.append({"category": category, "items": group, "subtotal": subtotal})
    return {
        "currency": currency,
        "categories": categories,
        "total": sum(c["subtotal"] for c in categories),
    }


def beat_scene_to_row(project_id: str, beat: dict, position: int) -> dict:
    """Maps a beat sheet scene (camelCase JSON) to a scenes table row."""
    number = beat.get("number") or position
    return {
        "project_id": project_id,
        "scene_number": number,
        "order_position": position,
        "int_ext": beat.get("intExt") or "INT",
        "location": beat.get("location") or "",
        "time_of_day": beat.get("dayNight") or "DAY",
        "description": beat.get("description") or "",
        "characters": beat.get("characters") or [],
        "props": [],
        "estimated_duration": beat.get("duration"),
    }


class ProductionManager:
    def __init__(self, data_client: DataClient):
        self.db = data_client

    # --- Scenes ---

    def list_scenes(self, project_id: str) -> list[dict]:
        return self.db.select("scenes", {"project_id": project_id}, order="scene_number")

    def get_scene(self, scene_id: str) -> dict:
        scene = self.db.select_one("scenes", {"id": scene_id})
        if not scene:
            raise SceneNotFoundError(scene_id)
        return scene

    def create_scene(self, project_id: str, values: dict) -> dict:
        existing = self.list_scenes(project_id)
        row = _pick(values, SCENE_FIELDS)
        if not row.get("scene_number"):
            row["scene_number"] = max((s.get("scene_number") or 0 for s in existing), default=0) + 1
        row["project_id"] = project_id
        row["order_position"] = len(existing) + 1
        return self.db.insert("scenes", row)[0]

    def update_scene(self, scene_id: str, values: dict) -> dict:
        self.get_scene(scene_id)
        changes = _pick(values, SCENE_FIELDS)
        if not changes:
            return self.get_scene(scene_id)
        return self.db.update("scenes", changes, {"id": scene_id})[0]

    def delete_scene(self, scene_id: str):
        self.get_scene(scene_id)
        self.db.delete("storyboards", {"scene_id": scene_id})
        self.db.delete("technical_breakdown", {"scene_id": scene_id})
        self.db.delete("scenes", {"id": scene_id})

    def reorder_scenes(self, project_id: str, scene_ids: list) -> list[dict]:
        """Renumbers the project's scenes 1..n in the given order."""
        known = {s["id"] for s in self.list_scenes(project_id)}
        unknown = [sid for sid in scene_ids if sid not in known]
        if unknown:
            raise SceneNotFoundError(unknown[0])
        if len(set(scene_ids)) != len(scene_ids) or set(scene_ids) != known:
            raise ValueError("Reorder needs every scene of the project exactly once.")
        for position, scene_id in enumerate(scene_ids, start=1):
            self.db.update("scenes", {"scene_number": position, "order_position": position}, {"id": scene_id})
        return self.list_scenes(project_id)

    def sync_scenes_from_beat_sheet(self, project_id: str, beat_scenes: list) -> list[dict]:
        """Replaces the project's scenes with the beat sheet scenes.

        Frames and shots of the replaced scenes go with them.
        """
        old_ids = [s["id"] for s in self.db.select("scenes", {"project_id": project_id})]
        if old_ids:
            self.db.delete("storyboards", in_filters={"scene_id": old_ids})
            self.db.delete("technical_breakdown", in_filters={"scene_id": old_ids})
            self.db.delete("scenes", {"project_id": project_id})
        rows = [beat_scene_to_row(project_id, beat, i) for i, beat in enumerate(beat_scenes or [], start=1)]
        inserted = self.db.insert("scenes", rows) if rows else []
        logger.info(f"Synced {len(inserted)} scenes from beat sheet for project {project_id}")
        return inserted

    # --- Storyboards ---

    def _frames_for(self, scene_ids: list) -> list[dict]:
        if not scene_ids:
            return []
        return self.db.select("storyboards", in_filters={"scene_id": scene_ids}, order="frame_number")

    def list_frames(self, scene_id: str) -> list[dict]:
        return self.db.select("storyboards", {"scene_id": scene_id}, order="frame_number")

    def storyboards_by_scene(self, project_id: str) -> list[dict]:
        """Scenes in order, each with its ``frames``."""
        scenes = self.list_scenes(project_id)
        frames = self._frames_for([s["id"] for s in scenes])
        for scene in scenes:
            scene["frames"] = [f for f in frames if f["scene_id"] == scene["id"]]
        return scenes

    def add_frame(self, scene_id: str, values: dict) -> dict:
        self.get_scene(scene_id)
        row = _pick(values, FRAME_FIELDS)
        if not row.get("frame_number"):
            row["frame_number"] = max((f.get("frame_number") or 0 for f in self.list_frames(scene_id)), default=0) + 1
        row["scene_id"] = scene_id
        return self.db.insert("storyboards", row)[0]

    def add_frames(self, scene_id: str, frames: list) -> list[dict]:
        rows = [dict(_pick(f, FRAME_FIELDS), scene_id=scene_id) for f in frames]
        return self.db.insert("storyboards", rows) if rows else []

    def get_frame(self, frame_id: str) -> dict:
        frame = self.db.select_one("storyboards", {"id": frame_id})
        if not frame:
            raise RecordNotFoundError("storyboards", frame_id)
        return frame

    def update_frame(self, frame_id: str, values: dict) -> dict:
        rows = self.db.update("storyboards", _pick(values, FRAME_FIELDS), {"id": frame_id})
        if not rows:
            raise RecordNotFoundError("storyboards", frame_id)
        return rows[0]

    def delete_frame(self, frame_id: str):
        if not self.db.delete("storyboards", {"id": frame_id}):
            raise RecordNotFoundError("storyboards", frame_id)

    # --- Technical breakdown ---

    def list_shots(self, scene_id: str) -> list[dict]:
        shots = self.db.select("technical_breakdown", {"scene_id": scene_id})
        return sorted(shots, key=lambda s: _shot_sort_key(s.get("shot_number")))

    def breakdown_by_scene(self, project_id: str) -> list[dict]:
        """Scenes in order, each with its ``shots``."""
        scenes = self.list_scenes(project_id)
        scene_ids = [s["id"] for s in scenes]
        shots = self.db.select("technical_breakdown", in_filters={"scene_id": scene_ids}) if scene_ids else []
        for scene in scenes:
            scene["shots"] = sorted((s for s in shots if s["scene_id"] == scene["id"]),
                                    key=lambda s: _shot_sort_key(s.get("shot_number")))
        return scenes

    def next_shot_number(self, scene: dict) -> str:
        count = len(self.db.select("technical_breakdown", {"scene_id": scene["id"]}))
        return f"{scene.get('scene_number')}.{count + 1}"

    def _shot_row(self, scene_id: str, values: dict) -> dict:
        row = _pick(values, SHOT_FIELDS)
        row["equipment"] = split_equipment(row.get("equipment"))
        row["scene_id"] = scene_id
        return row

    def add_shot(self, scene_id: str, values: dict) -> dict:
        scene = self.get_scene(scene_id)
        row = self._shot_row(scene_id, values)
        if not row.get("shot_number"):
            row["shot_number"] = self.next_shot_number(scene)
        return self.db.insert("technical_breakdown", row)[0]

    def add_shots(self, scene_id: str, shots: list) -> list[dict]:
        scene = self.get_scene(scene_id)
        existing = len(self.db.select("technical_breakdown", {"scene_id": scene_id}))
        rows = []
        for i, shot in enumerate(shots, start=existing + 1):
            row = self._shot_row(scene_id, shot)
            if not row.get("shot_number"):
                row["shot_number"] = f"{scene.get('scene_number')}.{i}"
            rows.append(row)
        return self.db.insert("technical_breakdown", rows) if rows else []

    def get_shot(self, shot_id: str) -> dict:
        shot = self.db.select_one("technical_breakdown", {"id": shot_id})
        if not shot:
            raise RecordNotFoundError("technical_breakdown", shot_id)
        return shot

    def update_shot(self, shot_id: str, values: dict) -> dict:
        changes = _pick(values, SHOT_FIELDS)
        if "equipment" in changes:
            changes["equipment"] = split_equipment(changes["equipment"])
        rows = self.db.update("technical_breakdown", changes, {"id": shot_id})
        if not rows:
            raise RecordNotFoundError("technical_breakdown", shot_id)
        return rows[0]

    def delete_shot(self, shot_id: str):
        if not self.db.delete("technical_breakdown", {"id": shot_id}):
            raise RecordNotFoundError("technical_breakdown", shot_id)

    # --- Budget ---

    def list_budget_items(self, project_id: str) -> list[dict]:
        return self.db.select("budget_items", {"project_id": project_id}, order="category")

    def get_budget_item(self, item_id: str) -> dict:
        item = self.db.select_one("budget_items", {"id": item_id})
        if not item:
            raise RecordNotFoundError("budget_items", item_id)
        return item

    def add_budget_item(self, project_id: str, values: dict) -> dict:
        row = normalize_budget_item(values)
        row["project_id"] = project_id
        return self.db.insert("budget_items", row)[0]

    def add_budget_items(self, project_id: str, items: list) -> list[dict]:
        """Bulk insert; rows without a name are skipped."""
        rows = []
        for raw in items:
            try:
                rows.append(dict(normalize_budget_item(raw), project_id=project_id))
            except ValueError:
                logger.warning(f"Skipping budget item without a name: {raw}")
        inserted = self.db.insert("budget_items", rows) if rows else []
        logger.info(f"Inserted {len(inserted)} budget items for project {project_id}")
        return inserted

    def update_budget_item(self, item_id: str, values: dict) -> dict:
        current = self.get_budget_item(item_id)
        changes = _pick(values, BUDGET_FIELDS)
        if "item_name" in changes and not (changes["item_name"] or "").strip():
            raise ValueError("Budget item needs a name.")
        if "quantity" in changes or "unit_price" in changes:
            quantity = changes.get("quantity", current.get("quantity"))
            unit_price = changes.get("unit_price", current.get("unit_price"))
            changes["total_price"] = compute_total(quantity, unit_price)
        if not changes:
            return current
        return self.db.update("budget_items", changes, {"id": item_id})[0]

    def delete_budget_item(self, item_id: str):
        if not self.db.delete("budget_items", {"id": item_id}):
            raise RecordNotFoundError("budget_items", item_id)

    def budget_summary(self, project_id: str) -> dict:
        return budget_summary(self.list_budget_items(project_id))


def _shot_sort_key(shot_number):
    # "3.10" sorts after "3.9"
    parts = []
    for part in str(shot_number or "").split("."):
        parts.append(int(part) if part.isdigit() else 0)
    return parts

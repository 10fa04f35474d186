from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, List, Any, Literal

ContentType = Literal["premise", "argument", "storyline", "beat_sheet", "script"]
GenerationType = Literal["premise", "argument", "storyline", "beat_sheet", "script", "technical_breakdown", "budget"]
Workflow = Literal["ai", "upload"]


def _split_equipment(v):
    # Accepts "Tripod, Dolly" as well as ["Tripod", "Dolly"]
    if v is None:
        return v
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


# Stored rows

class Project(BaseModel):
    id: str
    user_id: str
    title: str
    genre: Optional[str] = None
    format: Optional[str] = None
    status: Optional[str] = "draft"
    thumbnail_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StorylineActs(BaseModel):
    act1: str = ""
    act2: str = ""
    act3: str = ""


class BeatSheetScene(BaseModel):
    # Field names follow the JSON stored in the beat_sheet blob
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    number: int = 1
    int_ext: Literal["INT", "EXT"] = Field("INT", alias="intExt")
    location: str = ""
    day_night: str = Field("DAY", alias="dayNight")
    description: str = ""
    characters: List[str] = []
    duration: int = 2


class Scene(BaseModel):
    id: str
    project_id: str
    scene_number: int
    order_position: int = 0
    int_ext: Optional[str] = None
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    description: Optional[str] = None
    characters: Optional[List[str]] = None
    props: Optional[List[str]] = None
    estimated_duration: Optional[int] = None
    notes: Optional[str] = None


class StoryboardFrame(BaseModel):
    id: str
    scene_id: str
    frame_number: int
    description: Optional[str] = None
    camera_angle: Optional[str] = None
    camera_movement: Optional[str] = None
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None


class Shot(BaseModel):
    id: str
    scene_id: str
    shot_number: Optional[str] = None
    shot_type: Optional[str] = None
    framing: Optional[str] = None
    movement: Optional[str] = None
    lens: Optional[str] = None
    equipment: Optional[List[str]] = None
    lighting_setup: Optional[str] = None
    sound_notes: Optional[str] = None
    vfx_notes: Optional[str] = None
    notes: Optional[str] = None
    estimated_setup_time: Optional[int] = None


class BudgetItem(BaseModel):
    id: str
    project_id: str
    item_name: str
    category: str
    description: Optional[str] = None
    subcategory: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    currency: Optional[str] = None
    supplier: Optional[str] = None
    contact: Optional[str] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class ScriptRecord(BaseModel):
    id: str
    project_id: str
    content: Optional[str] = None
    type: str
    source: Optional[str] = None
    file_name: Optional[str] = None
    version: Optional[int] = None
    word_count: Optional[int] = None
    page_count: Optional[int] = None
    created_at: Optional[str] = None


class SceneWithShots(Scene):
    shots: List[Shot] = []


class SceneWithFrames(Scene):
    frames: List[StoryboardFrame] = []


# API Request Models

class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    full_name: str = ""


class SignInRequest(BaseModel):
    email: str
    password: str


class CreateProjectRequest(BaseModel):
    title: str = Field(..., min_length=1, description="Project title")
    genre: str = Field(..., min_length=1)
    format: str = Field(..., min_length=1, description="e.g. feature, short, series")


class UpdateProjectRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    genre: Optional[str] = None
    format: Optional[str] = None
    status: Optional[str] = None
    thumbnail_url: Optional[str] = None


class SaveContentRequest(BaseModel):
    content: Dict[str, Any]


class SaveScriptRequest(BaseModel):
    text: str = Field(..., min_length=1)
    file_name: Optional[str] = None


class SceneCreate(BaseModel):
    scene_number: Optional[int] = None
    int_ext: Optional[Literal["INT", "EXT"]] = "INT"
    location: Optional[str] = ""
    time_of_day: Optional[str] = "DAY"
    description: Optional[str] = ""
    characters: List[str] = []
    props: List[str] = []
    estimated_duration: Optional[int] = 2
    notes: Optional[str] = None


class SceneUpdate(BaseModel):
    scene_number: Optional[int] = None
    int_ext: Optional[Literal["INT", "EXT"]] = None
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    description: Optional[str] = None
    characters: Optional[List[str]] = None
    props: Optional[List[str]] = None
    estimated_duration: Optional[int] = None
    notes: Optional[str] = None


class ReorderScenesRequest(BaseModel):
    scene_ids: List[str] = Field(..., min_length=1)


class FrameCreate(BaseModel):
    frame_number: Optional[int] = None
    description: Optional[str] = None
    camera_angle: Optional[str] = None
    camera_movement: Optional[str] = None
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None


class FrameUpdate(BaseModel):
    frame_number: Optional[int] = None
    description: Optional[str] = None
    camera_angle: Optional[str] = None
    camera_movement: Optional[str] = None
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None


class ShotCreate(BaseModel):
    shot_number: Optional[str] = None
    shot_type: Optional[str] = ""
    framing: Optional[str] = ""
    movement: Optional[str] = ""
    lens: Optional[str] = ""
    equipment: Optional[List[str]] = None
    lighting_setup: Optional[str] = ""
    sound_notes: Optional[str] = ""
    vfx_notes: Optional[str] = ""
    notes: Optional[str] = ""
    estimated_setup_time: Optional[int] = 0

    @field_validator("equipment", mode="before")
    @classmethod
    def split_equipment(cls, v):
        return _split_equipment(v)


class ShotUpdate(BaseModel):
    shot_number: Optional[str] = None
    shot_type: Optional[str] = None
    framing: Optional[str] = None
    movement: Optional[str] = None
    lens: Optional[str] = None
    equipment: Optional[List[str]] = None
    lighting_setup: Optional[str] = None
    sound_notes: Optional[str] = None
    vfx_notes: Optional[str] = None
    notes: Optional[str] = None
    estimated_setup_time: Optional[int] = None

    @field_validator("equipment", mode="before")
    @classmethod
    def split_equipment(cls, v):
        return _split_equipment(v)


class BudgetItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1)
    category: str = "production"
    description: Optional[str] = None
    subcategory: Optional[str] = None
    quantity: Optional[float] = Field(1, ge=0)
    unit: Optional[str] = "unit"
    unit_price: Optional[float] = Field(0, ge=0)
    supplier: Optional[str] = None
    contact: Optional[str] = None
    status: Optional[str] = "estimated"
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class BudgetItemUpdate(BaseModel):
    item_name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    subcategory: Optional[str] = None
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = None
    contact: Optional[str] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


# Generation function payloads. Field names match what the web client sends.

class GenerateContentRequest(BaseModel):
    type: str = Field(..., min_length=1)
    context: Dict[str, Any] = {}


class ProjectFunctionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")


class ProcessScriptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    script_text: str = Field(..., min_length=1, alias="scriptText")


class StoryboardImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    scene_id: str = Field(..., alias="sceneId")
    frame_number: Optional[int] = Field(None, alias="frameNumber")
    camera_angle: Optional[str] = Field(None, alias="cameraAngle")
    camera_movement: Optional[str] = Field(None, alias="cameraMovement")
    description: Optional[str] = None


# Response Models

class SuccessResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str = ""


class AuthSessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ProjectListResponse(BaseModel):
    projects: List[Project]


class ContentMapResponse(BaseModel):
    content: Dict[str, Any]
    completed_steps: List[str]


class GeneratedContentResponse(BaseModel):
    content: str


class StageGenerationResponse(BaseModel):
    content_type: str
    content: Any


class PipelineStage(BaseModel):
    id: str
    label: str
    completed: bool
    optional: bool = False


class PipelineStatusResponse(BaseModel):
    workflow: Workflow
    stages: List[PipelineStage]


class PipelineRunResponse(BaseModel):
    success: bool
    message: str
    total_scenes: int = Field(0, serialization_alias="totalScenes")


class ProcessScriptResponse(BaseModel):
    success: bool
    message: str
    generated: Dict[str, bool]


class StoryboardImageResponse(BaseModel):
    storyboard: StoryboardFrame


class BudgetCategorySummary(BaseModel):
    category: str
    items: List[BudgetItem]
    subtotal: float


class BudgetSummaryResponse(BaseModel):
    currency: str
    categories: List[BudgetCategorySummary]
    total: float


class ScriptUploadResponse(BaseModel):
    script: ScriptRecord
    processing: Optional[ProcessScriptResponse] = None

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Header, UploadFile, File, Form, Query
from fastapi.responses import JSONResponse

import config

# Configure logging for FastAPI and its modules
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__) # Logger for this module

# --- Project Imports ---
from data_client import DataClient, LocalTableStore, create_data_client
from auth import AuthUser, create_auth_service
from project_manager import ProjectManager
from production_manager import ProductionManager
from content_generator import ContentGenerator
from pipeline import PipelineRunner
from image_generator import generate_image_from_prompt
from file_import import extract_script_text, parse_budget_csv
from response_parsing import normalize_beat_scene
from exceptions import ReelPlanError, PipelineError, MissingContextError
from models import (
    Project, Scene, StoryboardFrame, Shot, BudgetItem, ScriptRecord,
    SceneWithFrames, SceneWithShots,
    SignUpRequest, SignInRequest, CreateProjectRequest, UpdateProjectRequest,
    SaveContentRequest, SaveScriptRequest, SceneCreate, SceneUpdate, ReorderScenesRequest,
    FrameCreate, FrameUpdate, ShotCreate, ShotUpdate, BudgetItemCreate, BudgetItemUpdate,
    GenerateContentRequest, ProjectFunctionRequest, ProcessScriptRequest, StoryboardImageRequest,
    SuccessResponse, UserResponse, AuthSessionResponse, ProjectListResponse, ContentMapResponse,
    GeneratedContentResponse, StageGenerationResponse, PipelineStatusResponse, PipelineRunResponse,
    ProcessScriptResponse, StoryboardImageResponse, BudgetSummaryResponse, ScriptUploadResponse,
    Workflow,
)

# --- FastAPI App Setup ---
app = FastAPI(
    title="ReelPlan API",
    description="Film pre-production pipeline: story development, storyboards, technical breakdown and budget.",
    version="0.1.0",
)

# --- Services ---
# Built once at import; tests rebuild them against a temporary store with configure_services().
data_client: DataClient = None
auth_service = None
project_manager: ProjectManager = None
production_manager: ProductionManager = None
content_generator: ContentGenerator = None
pipeline_runner: PipelineRunner = None


def configure_services(client: DataClient, generator: ContentGenerator = None, image_generator=generate_image_from_prompt):
    global data_client, auth_service, project_manager, production_manager, content_generator, pipeline_runner
    data_client = client
    auth_service = create_auth_service(client)
    project_manager = ProjectManager(client)
    production_manager = ProductionManager(client)
    content_generator = generator or ContentGenerator()
    pipeline_runner = PipelineRunner(project_manager, production_manager, content_generator, image_generator)


configure_services(create_data_client())


# --- Error handling ---

@app.exception_handler(ReelPlanError)
async def reelplan_error_handler(request, exc: ReelPlanError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    body = {"detail": exc.message, "error_code": exc.error_code}
    if isinstance(exc, PipelineError):
        body["stage"] = exc.stage
        body["completed"] = exc.completed
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# --- Dependencies ---

def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token.")
    return authorization.split(" ", 1)[1].strip()


def get_current_user(token: str = Depends(get_bearer_token)) -> AuthUser:
    return auth_service.get_user(token)


def owned_project(project_id: str, user: AuthUser = Depends(get_current_user)) -> dict:
    """Loads a project the current user owns, or 404s."""
    return project_manager.get_project(project_id, user.id)


def owned_scene(scene_id: str, user: AuthUser = Depends(get_current_user)) -> dict:
    scene = production_manager.get_scene(scene_id)
    project_manager.get_project(scene["project_id"], user.id)
    return scene


def _check_scene_owner(scene_id: str, user: AuthUser):
    owned_scene(scene_id, user)


# --- Endpoints ---

@app.get("/", summary="Root endpoint", tags=["General"])
async def read_root():
    return {"message": "ReelPlan API"}


# --- Auth Endpoints ---
@app.post("/auth/signup", response_model=AuthSessionResponse, status_code=201, summary="Create an account", tags=["Auth"])
def sign_up(request: SignUpRequest):
    session = auth_service.sign_up(request.email, request.password, request.full_name)
    return {"access_token": session.access_token, "user": vars(session.user)}


@app.post("/auth/signin", response_model=AuthSessionResponse, summary="Sign in with email and password", tags=["Auth"])
def sign_in(request: SignInRequest):
    session = auth_service.sign_in(request.email, request.password)
    return {"access_token": session.access_token, "user": vars(session.user)}


@app.post("/auth/signout", response_model=SuccessResponse, summary="End the current session", tags=["Auth"])
def sign_out(token: str = Depends(get_bearer_token)):
    auth_service.sign_out(token)
    return {"message": "Signed out."}


@app.get("/auth/me", response_model=UserResponse, summary="Current user", tags=["Auth"])
def me(user: AuthUser = Depends(get_current_user)):
    return vars(user)


# --- Project Management Endpoints ---
@app.get("/projects", response_model=ProjectListResponse, summary="List projects", tags=["Project Management"])
def list_projects(user: AuthUser = Depends(get_current_user)):
    """Lists the current user's projects, most recently updated first."""
    return {"projects": project_manager.list_projects(user.id)}


@app.post("/projects", response_model=Project, status_code=201, summary="Create a new project", tags=["Project Management"])
def create_project(request: CreateProjectRequest, user: AuthUser = Depends(get_current_user)):
    return project_manager.create_project(user.id, request.title, request.genre, request.format)


@app.get("/projects/{project_id}", response_model=Project, summary="Load a project", tags=["Project Management"])
def get_project(project: dict = Depends(owned_project)):
    return project


@app.patch("/projects/{project_id}", response_model=Project, summary="Update project details", tags=["Project Management"])
def update_project(request: UpdateProjectRequest, project: dict = Depends(owned_project)):
    return project_manager.update_project(project["id"], request.model_dump(exclude_unset=True))


@app.delete("/projects/{project_id}", response_model=SuccessResponse, summary="Delete a project", tags=["Project Management"])
def delete_project(project: dict = Depends(owned_project)):
    """Deletes a project with all its content, scenes and budget."""
    project_manager.delete_project(project["id"])
    return {"message": f"Project '{project['title']}' deleted successfully."}


@app.get("/projects/{project_id}/pipeline", response_model=PipelineStatusResponse, summary="Pipeline progress", tags=["Project Management"])
def pipeline_status(workflow: Workflow = Query("ai"), project: dict = Depends(owned_project)):
    return {"workflow": workflow, "stages": project_manager.pipeline_status(project["id"], workflow)}


# --- Story Content Endpoints ---
@app.get("/projects/{project_id}/content", response_model=ContentMapResponse, summary="All story content", tags=["Story Development"])
def get_content(project: dict = Depends(owned_project)):
    content = project_manager.get_content(project["id"])
    return {"content": content, "completed_steps": project_manager.completed_steps(content)}


@app.put("/projects/{project_id}/content/{content_type}", response_model=SuccessResponse, summary="Save a story stage", tags=["Story Development"])
def save_content(content_type: str, request: SaveContentRequest, project: dict = Depends(owned_project)):
    """Saves hand-edited content for one stage."""
    content = request.content
    if content_type == "beat_sheet" and "scenes" in content:
        scenes = content["scenes"]
        if not isinstance(scenes, list) or not all(isinstance(s, dict) for s in scenes):
            raise ValueError("Beat sheet scenes must be a list of scene objects.")
        content = dict(content, scenes=[normalize_beat_scene(s, i) for i, s in enumerate(content["scenes"], start=1)])
    project_manager.save_content(project["id"], content_type, content)
    return {"message": f"{content_type} saved."}


@app.post("/projects/{project_id}/generate/{stage}", response_model=StageGenerationResponse, summary="Generate a story stage", tags=["Story Development"])
def generate_stage(stage: str, from_script: bool = Query(False), project: dict = Depends(owned_project)):
    """Generates one stage from the previous ones (or from the script) and saves it."""
    content = pipeline_runner.generate_stage(project["id"], stage, from_script=from_script)
    return {"content_type": stage, "content": content}


# --- Script Endpoints ---
@app.post("/projects/{project_id}/scripts", response_model=ScriptRecord, status_code=201, summary="Save a script version", tags=["Screenwriting"])
def save_script(request: SaveScriptRequest, project: dict = Depends(owned_project)):
    return project_manager.save_script(project["id"], request.text, source="manual", file_name=request.file_name)


@app.post("/projects/{project_id}/scripts/upload", response_model=ScriptUploadResponse, status_code=201, summary="Upload a script file", tags=["Screenwriting"])
def upload_script(file: UploadFile = File(...), process: bool = Form(False), project: dict = Depends(owned_project)):
    """Stores an uploaded PDF, DOCX or TXT script; with ``process`` derives the story stages from it."""
    text = extract_script_text(file.filename, file.file.read())
    record = project_manager.save_script(project["id"], text, source="uploaded", file_name=file.filename)
    processing = pipeline_runner.process_uploaded_script(project["id"], text) if process else None
    return {"script": record, "processing": processing}


@app.get("/projects/{project_id}/scripts/latest", response_model=ScriptRecord, summary="Latest script version", tags=["Screenwriting"])
def latest_script(project: dict = Depends(owned_project)):
    record = project_manager.latest_script(project["id"])
    if not record:
        raise HTTPException(status_code=404, detail="Project has no script yet.")
    return record


# --- Scene Endpoints ---
@app.get("/projects/{project_id}/scenes", response_model=List[Scene], summary="List scenes", tags=["Scenes"])
def list_scenes(project: dict = Depends(owned_project)):
    return production_manager.list_scenes(project["id"])


@app.post("/projects/{project_id}/scenes", response_model=Scene, status_code=201, summary="Add a scene", tags=["Scenes"])
def create_scene(request: SceneCreate, project: dict = Depends(owned_project)):
    return production_manager.create_scene(project["id"], request.model_dump(exclude_none=True))


@app.post("/projects/{project_id}/scenes/sync", response_model=List[Scene], summary="Rebuild scenes from the beat sheet", tags=["Scenes"])
def sync_scenes(project: dict = Depends(owned_project)):
    beat_sheet = project_manager.get_content(project["id"]).get("beat_sheet") or {}
    if not beat_sheet.get("scenes"):
        raise MissingContextError("The beat sheet has no scenes to sync.")
    return production_manager.sync_scenes_from_beat_sheet(project["id"], beat_sheet["scenes"])


@app.post("/projects/{project_id}/scenes/reorder", response_model=List[Scene], summary="Reorder scenes", tags=["Scenes"])
def reorder_scenes(request: ReorderScenesRequest, project: dict = Depends(owned_project)):
    return production_manager.reorder_scenes(project["id"], request.scene_ids)


@app.patch("/scenes/{scene_id}", response_model=Scene, summary="Update a scene", tags=["Scenes"])
def update_scene(request: SceneUpdate, scene: dict = Depends(owned_scene)):
    return production_manager.update_scene(scene["id"], request.model_dump(exclude_unset=True))


@app.delete("/scenes/{scene_id}", response_model=SuccessResponse, summary="Delete a scene", tags=["Scenes"])
def delete_scene(scene: dict = Depends(owned_scene)):
    production_manager.delete_scene(scene["id"])
    return {"message": f"Scene {scene.get('scene_number')} deleted."}


# --- Storyboard Endpoints ---
@app.get("/projects/{project_id}/storyboards", response_model=List[SceneWithFrames], summary="Frames by scene", tags=["Storyboard"])
def list_storyboards(project: dict = Depends(owned_project)):
    return production_manager.storyboards_by_scene(project["id"])


@app.post("/scenes/{scene_id}/frames", response_model=StoryboardFrame, status_code=201, summary="Add a frame", tags=["Storyboard"])
def add_frame(request: FrameCreate, scene: dict = Depends(owned_scene)):
    return production_manager.add_frame(scene["id"], request.model_dump(exclude_none=True))


@app.patch("/frames/{frame_id}", response_model=StoryboardFrame, summary="Update a frame", tags=["Storyboard"])
def update_frame(frame_id: str, request: FrameUpdate, user: AuthUser = Depends(get_current_user)):
    _check_scene_owner(production_manager.get_frame(frame_id)["scene_id"], user)
    return production_manager.update_frame(frame_id, request.model_dump(exclude_unset=True))


@app.delete("/frames/{frame_id}", response_model=SuccessResponse, summary="Delete a frame", tags=["Storyboard"])
def delete_frame(frame_id: str, user: AuthUser = Depends(get_current_user)):
    _check_scene_owner(production_manager.get_frame(frame_id)["scene_id"], user)
    production_manager.delete_frame(frame_id)
    return {"message": "Frame deleted."}


# --- Technical Breakdown Endpoints ---
@app.get("/projects/{project_id}/breakdown", response_model=List[SceneWithShots], summary="Shots by scene", tags=["Technical Breakdown"])
def get_breakdown(project: dict = Depends(owned_project)):
    return production_manager.breakdown_by_scene(project["id"])


@app.post("/scenes/{scene_id}/shots", response_model=Shot, status_code=201, summary="Add a shot", tags=["Technical Breakdown"])
def add_shot(request: ShotCreate, scene: dict = Depends(owned_scene)):
    return production_manager.add_shot(scene["id"], request.model_dump(exclude_none=True))


@app.post("/scenes/{scene_id}/shots/generate", response_model=List[Shot], status_code=201, summary="Generate shots for a scene", tags=["Technical Breakdown"])
def generate_scene_shots(scene: dict = Depends(owned_scene)):
    return pipeline_runner.generate_scene_breakdown(scene["id"])


@app.patch("/shots/{shot_id}", response_model=Shot, summary="Update a shot", tags=["Technical Breakdown"])
def update_shot(shot_id: str, request: ShotUpdate, user: AuthUser = Depends(get_current_user)):
    _check_scene_owner(production_manager.get_shot(shot_id)["scene_id"], user)
    return production_manager.update_shot(shot_id, request.model_dump(exclude_unset=True))


@app.delete("/shots/{shot_id}", response_model=SuccessResponse, summary="Delete a shot", tags=["Technical Breakdown"])
def delete_shot(shot_id: str, user: AuthUser = Depends(get_current_user)):
    _check_scene_owner(production_manager.get_shot(shot_id)["scene_id"], user)
    production_manager.delete_shot(shot_id)
    return {"message": "Shot deleted."}


# --- Budget Endpoints ---
@app.get("/projects/{project_id}/budget", response_model=List[BudgetItem], summary="Budget items", tags=["Budget"])
def list_budget(project: dict = Depends(owned_project)):
    return production_manager.list_budget_items(project["id"])


@app.post("/projects/{project_id}/budget", response_model=BudgetItem, status_code=201, summary="Add a budget item", tags=["Budget"])
def add_budget_item(request: BudgetItemCreate, project: dict = Depends(owned_project)):
    return production_manager.add_budget_item(project["id"], request.model_dump(exclude_none=True))


@app.get("/projects/{project_id}/budget/summary", response_model=BudgetSummaryResponse, summary="Budget totals by category", tags=["Budget"])
def get_budget_summary(project: dict = Depends(owned_project)):
    return production_manager.budget_summary(project["id"])


@app.post("/projects/{project_id}/budget/generate", response_model=List[BudgetItem], status_code=201, summary="Generate a budget", tags=["Budget"])
def generate_budget(project: dict = Depends(owned_project)):
    return pipeline_runner.generate_budget(project["id"])


@app.post("/projects/{project_id}/budget/import", response_model=List[BudgetItem], status_code=201, summary="Import budget items from CSV", tags=["Budget"])
def import_budget(file: UploadFile = File(...), project: dict = Depends(owned_project)):
    items = parse_budget_csv(file.file.read())
    if not items:
        raise HTTPException(status_code=400, detail="The CSV file has no budget rows.")
    return production_manager.add_budget_items(project["id"], items)


@app.patch("/budget/{item_id}", response_model=BudgetItem, summary="Update a budget item", tags=["Budget"])
def update_budget_item(item_id: str, request: BudgetItemUpdate, user: AuthUser = Depends(get_current_user)):
    project_manager.get_project(production_manager.get_budget_item(item_id)["project_id"], user.id)
    return production_manager.update_budget_item(item_id, request.model_dump(exclude_unset=True))


@app.delete("/budget/{item_id}", response_model=SuccessResponse, summary="Delete a budget item", tags=["Budget"])
def delete_budget_item(item_id: str, user: AuthUser = Depends(get_current_user)):
    project_manager.get_project(production_manager.get_budget_item(item_id)["project_id"], user.id)
    production_manager.delete_budget_item(item_id)
    return {"message": "Budget item deleted."}


# --- Generation Functions ---
@app.post("/functions/generate-content", response_model=GeneratedContentResponse, summary="Generate raw stage content", tags=["Functions"])
def generate_content(request: GenerateContentRequest, user: AuthUser = Depends(get_current_user)):
    """Stateless: maps {type, context} to a prompt and returns the completion text."""
    return {"content": content_generator.generate(request.type, request.context)}


@app.post("/functions/process-uploaded-script", response_model=ProcessScriptResponse, summary="Derive story stages from a script", tags=["Functions"])
def process_uploaded_script(request: ProcessScriptRequest, user: AuthUser = Depends(get_current_user)):
    project_manager.get_project(request.project_id, user.id)
    return pipeline_runner.process_uploaded_script(request.project_id, request.script_text)


@app.post("/functions/generate-storyboard", response_model=PipelineRunResponse, summary="Generate storyboards for every scene", tags=["Functions"])
def generate_storyboards(request: ProjectFunctionRequest, user: AuthUser = Depends(get_current_user)):
    project_manager.get_project(request.project_id, user.id)
    return pipeline_runner.generate_storyboards(request.project_id)


@app.post("/functions/generate-breakdown", response_model=PipelineRunResponse, summary="Generate the technical breakdown for every scene", tags=["Functions"])
def generate_breakdowns(request: ProjectFunctionRequest, user: AuthUser = Depends(get_current_user)):
    project_manager.get_project(request.project_id, user.id)
    return pipeline_runner.generate_breakdowns(request.project_id)


@app.post("/functions/generate-storyboard-image", response_model=StoryboardImageResponse, summary="Generate a storyboard image", tags=["Functions"])
def generate_storyboard_image(request: StoryboardImageRequest, user: AuthUser = Depends(get_current_user)):
    _check_scene_owner(request.scene_id, user)
    frame = pipeline_runner.generate_storyboard_image(
        request.scene_id,
        prompt=request.prompt,
        frame_number=request.frame_number,
        camera_angle=request.camera_angle,
        camera_movement=request.camera_movement,
        description=request.description,
    )
    return {"storyboard": frame}


# --- API Key Check (Startup) ---
@app.on_event("startup")
async def startup_event():
    if not config.GROQ_API_KEY:
        logger.error("GROQ_API_KEY environment variable not set. Text generation calls will fail.")
    if not config.GOOGLE_API_KEY:
        logger.error("GOOGLE_API_KEY environment variable not set. Storyboard image generation will fail.")
    backend = "local table store" if isinstance(data_client, LocalTableStore) else "Supabase"
    logger.info(f"ReelPlan API started ({backend}).")

# Run from your terminal in the project directory:
# uvicorn fastapi_app:app --reload
# The API documentation will be available at http://127.0.0.1:8000/docs

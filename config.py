import os
from dotenv import load_dotenv

load_dotenv() # Load environment variables from a .env file

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "llama-3.3-70b-versatile")
# Heavier model for script extraction and shot breakdowns
DETAILED_MODEL = os.getenv("DETAILED_MODEL", "openai/gpt-oss-120b")
GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.7"))
GENERATION_MAX_TOKENS = int(os.getenv("GENERATION_MAX_TOKENS", "8000"))
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image")

# Hosted database. When URL and service key are missing the local table store is used.
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Base directory for the local table store
DATA_DIR = os.getenv("REELPLAN_DATA_DIR", "reelplan_data")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

BUDGET_CURRENCY = os.getenv("BUDGET_CURRENCY", "BRL")
BUDGET_MARKET = os.getenv("BUDGET_MARKET", "Brazilian")

# Stages stored as JSON blobs in project_content
CONTENT_TYPES = ["premise", "argument", "storyline", "beat_sheet", "script"]
GENERATION_TYPES = CONTENT_TYPES + ["technical_breakdown", "budget"]

# Stage order per workflow. "upload" starts from an existing script.
AI_WORKFLOW_STAGES = ["premise", "argument", "storyline", "beat_sheet", "script", "storyboard", "breakdown", "budget"]
UPLOAD_WORKFLOW_STAGES = ["script", "storyboard", "breakdown", "budget"]
UPLOAD_OPTIONAL_STAGES = ["premise", "argument", "storyline", "beat_sheet"]

STAGE_LABELS = {
    "premise": "Premise",
    "argument": "Argument",
    "storyline": "Storyline",
    "beat_sheet": "Beat Sheet",
    "script": "Script",
    "storyboard": "Storyboard",
    "breakdown": "Technical Breakdown",
    "budget": "Budget",
}

INT_EXT_VALUES = ["INT", "EXT"]
DAY_NIGHT_VALUES = ["DAY", "NIGHT", "DUSK", "DAWN"]

BUDGET_CATEGORIES = [
    "pre_production", "production", "post_production", "cast", "crew", "location",
    "equipment", "art", "wardrobe", "makeup", "catering", "transport",
    "insurance", "marketing", "contingency", "other",
]
DEFAULT_BUDGET_CATEGORY = "production"
DEFAULT_BUDGET_UNIT = "unit"

# Roughly one screenplay page
CHARS_PER_PAGE = 1800

# Script excerpt sizes for each step of the upload pipeline
UPLOAD_PREMISE_CHARS = 3000
UPLOAD_ARGUMENT_CHARS = 4000
UPLOAD_STORYLINE_CHARS = 5000
UPLOAD_BEAT_SHEET_CHARS = 6000

"""
Exception types for ReelPlan.

Each error carries an ``error_code`` and the HTTP status the API answers with.
"""


class ReelPlanError(Exception):
    """Base exception for all ReelPlan errors."""

    status_code = 500

    def __init__(self, message: str, error_code: str = "REELPLAN_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ProjectNotFoundError(ReelPlanError):
    """Raised when a project does not exist or belongs to someone else."""

    status_code = 404

    def __init__(self, project_id: str):
        super().__init__(f"Project '{project_id}' not found", error_code="PROJECT_NOT_FOUND")
        self.project_id = project_id


class SceneNotFoundError(ReelPlanError):
    status_code = 404

    def __init__(self, scene_id: str):
        super().__init__(f"Scene '{scene_id}' not found", error_code="SCENE_NOT_FOUND")
        self.scene_id = scene_id


class RecordNotFoundError(ReelPlanError):
    """Raised when a row in a child table (frame, shot, budget item) is missing."""

    status_code = 404

    def __init__(self, table: str, record_id: str):
        super().__init__(f"No record '{record_id}' in {table}", error_code="RECORD_NOT_FOUND")
        self.table = table
        self.record_id = record_id


class InvalidContentTypeError(ReelPlanError):
    status_code = 400

    def __init__(self, content_type: str):
        super().__init__(f"Invalid content type: '{content_type}'", error_code="INVALID_CONTENT_TYPE")
        self.content_type = content_type


class MissingContextError(ReelPlanError):
    """Raised when a stage is generated before the stages it depends on exist."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, error_code="MISSING_CONTEXT")


class DatabaseError(ReelPlanError):
    """Raised when a storage operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message, error_code="DATABASE_ERROR")
        self.original_error = original_error


class AuthError(ReelPlanError):
    status_code = 401

    def __init__(self, message: str = "Invalid or expired credentials"):
        super().__init__(message, error_code="AUTH_ERROR")


class UserAlreadyExistsError(ReelPlanError):
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"User '{email}' already registered", error_code="USER_EXISTS")
        self.email = email


class AIServiceNotConfiguredError(ReelPlanError):
    def __init__(self, message: str = "Groq API key not configured."):
        super().__init__(message, error_code="AI_NOT_CONFIGURED")


class GenerationError(ReelPlanError):
    """Raised when the completion API fails or answers with nothing usable."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message, error_code="GENERATION_ERROR")
        self.original_error = original_error


class RateLimitExceededError(GenerationError):
    status_code = 429

    def __init__(self, message: str = "Rate limit reached. Try again in a few moments.", original_error: Exception = None):
        super().__init__(message, original_error)
        self.error_code = "RATE_LIMITED"


class CreditsExhaustedError(GenerationError):
    status_code = 402

    def __init__(self, message: str = "AI credits exhausted. Add credits to your workspace.", original_error: Exception = None):
        super().__init__(message, original_error)
        self.error_code = "CREDITS_EXHAUSTED"


class InvalidAIResponseError(ReelPlanError):
    """Raised when a structured stage cannot be parsed from the AI output."""

    def __init__(self, message: str, raw_content: str = ""):
        super().__init__(message, error_code="INVALID_AI_RESPONSE")
        self.raw_content = raw_content


class ImageGenerationError(ReelPlanError):
    def __init__(self, message: str):
        super().__init__(message, error_code="IMAGE_GENERATION_ERROR")


class PipelineError(ReelPlanError):
    """Raised when a multi-step generation stops part way.

    Steps finished before ``stage`` stay persisted; nothing is rolled back.
    """

    def __init__(self, stage: str, completed: list, cause: Exception):
        message = f"Pipeline failed at '{stage}': {cause}"
        if completed:
            message += f" (already saved: {', '.join(str(c) for c in completed)})"
        super().__init__(message, error_code="PIPELINE_ERROR")
        self.stage = stage
        self.completed = completed
        self.cause = cause
        if isinstance(cause, ReelPlanError):
            self.status_code = cause.status_code


class UnsupportedFileError(ReelPlanError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, error_code="UNSUPPORTED_FILE")

import base64
import logging
from io import BytesIO
from PIL import Image
import config
from google import genai
from google.genai import types
from exceptions import ImageGenerationError

logger = logging.getLogger(__name__)

SAVE_FORMATS = ("JPEG", "PNG", "WEBP")


def _client():
    if not config.GOOGLE_API_KEY:
        raise ImageGenerationError("Google API key not configured.")
    return genai.Client(api_key=config.GOOGLE_API_KEY)


def to_data_url(image_bytes: bytes) -> str:
    """Re-encodes image bytes with Pillow and returns a base64 data URL."""
    img = Image.open(BytesIO(image_bytes))
    img_format = img.format if img.format in SAVE_FORMATS else "PNG" # Convert unsupported formats (like GIF) to PNG
    buffered = BytesIO()
    if img_format == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    img.save(buffered, format=img_format)
    encoded = base64.b64encode(buffered.getvalue()).decode("utf-8")
    return f"data:image/{img_format.lower()};base64,{encoded}"


def generate_image_from_prompt(prompt: str) -> str:
    """Generates one storyboard image and returns it as a data URL.

    Raises:
        ImageGenerationError: no key configured, the call failed, or no image came back.
    """
    if not prompt or not prompt.strip():
        raise ImageGenerationError("An image prompt is required.")
    client = _client()

    try:
        logger.info(f"Calling Google GenAI for image generation with prompt: '{prompt[:200]}...'")
        response = client.models.generate_content(
            model=config.IMAGE_MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"]
            )
        )
    except Exception as e:
        logger.exception("An error occurred during Google GenAI image generation:")
        raise ImageGenerationError(f"An error occurred generating image: {e}") from e

    if not response.candidates or not response.candidates[0].content:
        error_detail = "No candidates or content in Google GenAI response."
        if getattr(response, "prompt_feedback", None):
            error_detail += f" Prompt Feedback: {response.prompt_feedback}"
        logger.error(f"Google GenAI response structure invalid: {error_detail}")
        raise ImageGenerationError(error_detail)

    for part in response.candidates[0].content.parts or []:
        if part.inline_data is not None and part.inline_data.data:
            try:
                data_url = to_data_url(part.inline_data.data)
            except OSError as e:
                logger.error(f"Error processing image data from Google GenAI: {e}")
                raise ImageGenerationError(f"Failed to process image: {e}") from e
            logger.info(f"Google GenAI image generation successful ({len(data_url)} chars).")
            return data_url
        if part.text is not None:
            logger.info(f"Received text part: {part.text[:50]}...")

    logger.error("Google GenAI call succeeded but returned no image.")
    raise ImageGenerationError("No image was generated.")

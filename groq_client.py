import time
import logging
from groq import Groq, RateLimitError, APIStatusError, APIError
import config
from exceptions import (
    AIServiceNotConfiguredError, GenerationError,
    RateLimitExceededError, CreditsExhaustedError,
)

logger = logging.getLogger(__name__)

# Initialize client only if key exists
groq_client = None
if config.GROQ_API_KEY:
    groq_client = Groq(api_key=config.GROQ_API_KEY)
else:
    logger.warning("Groq client not initialized due to missing API key.")


def call_groq(prompt: str, system_prompt: str = "You are a helpful AI assistant.", model: str = config.DEFAULT_MODEL,
              temperature: float = config.GENERATION_TEMPERATURE, max_tokens: int = config.GENERATION_MAX_TOKENS,
              max_retries: int = 3, initial_delay: float = 5) -> str:
    """
    Calls the Groq API with retry logic for rate limiting.

    Args:
        prompt: The user's prompt.
        system_prompt: The system message to set the AI's role.
        model: The Groq model to use.
        temperature: Sampling temperature.
        max_tokens: Upper bound on the completion length.
        max_retries: Maximum number of attempts on rate limit errors.
        initial_delay: Initial delay in seconds before retrying.

    Returns:
        The AI's response content as a string.

    Raises:
        AIServiceNotConfiguredError: no API key is configured.
        RateLimitExceededError: still rate limited after the last retry.
        CreditsExhaustedError: the provider answered 402.
        GenerationError: any other API failure or an empty answer.
    """
    if not groq_client:
        raise AIServiceNotConfiguredError()

    delay = initial_delay
    last_error = None
    for attempt in range(max_retries):
        try:
            chat_completion = groq_client.chat.completions.create(
                messages=[
                    {
                        "role": "system",
                        "content": system_prompt
                    },
                    {
                        "role": "user",
                        "content": prompt,
                    }
                ],
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except RateLimitError as e:
            last_error = e
            if attempt == max_retries - 1:
                break
            logger.warning(f"Rate limit hit. Retrying in {delay} seconds... (Attempt {attempt + 1}/{max_retries})")
            time.sleep(delay)
            delay *= 2 # Exponential backoff
            continue
        except APIStatusError as e:
            logger.error(f"Groq API error {e.status_code}: {e}")
            if e.status_code == 402:
                raise CreditsExhaustedError(original_error=e) from e
            raise GenerationError(f"AI API error: {e.status_code}", e) from e
        except APIError as e: # Connection errors and other SDK failures
            logger.error(f"An API error occurred calling Groq: {e}")
            raise GenerationError(f"Could not get response from Groq: {e}", e) from e

        content = ""
        if chat_completion.choices and chat_completion.choices[0].message:
            content = chat_completion.choices[0].message.content or ""
        if not content.strip():
            logger.error(f"Empty content in Groq response: {str(chat_completion)[:500]}")
            raise GenerationError("Empty content in AI response.")
        logger.info(f"Groq response received from {model}, length: {len(content)} chars")
        return content

    raise RateLimitExceededError(
        f"Exceeded maximum retries ({max_retries}) due to rate limiting. Try again in a few moments.",
        original_error=last_error,
    )

"""LLM client for structured-output extraction."""

import json
import logging
from typing import Type, TypeVar

from litellm import acompletion
from pydantic import BaseModel, ValidationError

from backend.config import settings
from backend.errors import AiExtractionError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _strip_to_json(content: str) -> str:
    """Pull the JSON payload out of a model reply that may wrap it in prose or fences."""
    content = content.strip()

    # Handle both "```json" and "```" styles, and text before the block
    if "```" in content:
        parts = content.split("```")
        if len(parts) >= 3:
            json_content = parts[1]
            if json_content.lstrip().startswith("json"):
                json_content = json_content.lstrip()[4:]
            content = json_content.strip()
        elif len(parts) == 2:
            # Only one ``` marker (truncated response)
            content = parts[1].strip()

    # Drop anything before the first { or [
    json_start = min(
        content.find("{") if "{" in content else len(content),
        content.find("[") if "[" in content else len(content),
    )
    if 0 < json_start < len(content):
        content = content[json_start:]

    return content


async def llm_extract_json(prompt: str, response_model: Type[T], timeout: float | None = None) -> T:
    """
    Call the LLM once and validate its JSON reply against a schema.

    Args:
        prompt: The prompt to send to the LLM
        response_model: Pydantic model class the reply must satisfy
        timeout: Timeout in seconds for the call (defaults to settings.llm_timeout)

    Returns:
        Instance of response_model with parsed data

    Raises:
        AiExtractionError: If the call fails, or the reply is not valid JSON
            or does not match the schema
    """
    model_name = settings.llm_model_name()
    logger.info(f"Calling {model_name} ({len(prompt)} prompt chars)")

    try:
        response = await acompletion(
            model=model_name,
            messages=[{"role": "user", "content": prompt}],
            api_base=settings.llm_api_base(),
            api_key=settings.llm_api_key(),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            response_format={"type": "json_object"},
            timeout=timeout or settings.llm_timeout,
        )
        content = response.choices[0].message.content or ""
    except Exception as e:
        logger.error(f"LLM call failed: {e}")
        raise AiExtractionError("Failed to extract transactions with AI") from e

    content = _strip_to_json(content)

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON from LLM: {e}")
        logger.error(f"Content preview: {content[:200]}...")
        if content and not content.rstrip().endswith(("}", "]")):
            logger.error("Response appears truncated")
        raise AiExtractionError("Failed to extract transactions with AI: response was not valid JSON") from e

    try:
        return response_model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Pydantic validation failed: {e}")
        raise AiExtractionError("Failed to extract transactions with AI: response did not match schema") from e

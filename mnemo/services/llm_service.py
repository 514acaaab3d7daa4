"""
LLM client for chat generation.

Speaks two wire dialects, chosen from the configured URL: OpenAI-style
chat completions and plain text completion (Hugging Face style). Responses
from either are normalised into a single output string.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Sequence

import httpx

from mnemo.core.config import Settings, settings as default_settings
from mnemo.core.exceptions import LLMConfigurationError, LLMRequestError
from mnemo.memory.prompts import build_completion_prompt, build_system_prompt

logger = logging.getLogger(__name__)

OutputExtractor = Callable[[Any], Any]


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _get(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return None


# Tried in order; the first non-empty string wins
OUTPUT_EXTRACTORS: Sequence[OutputExtractor] = (
    lambda payload: _get(payload, "output"),
    lambda payload: _get(payload, "text"),
    lambda payload: _get(_first(_get(payload, "results")), "output"),
    lambda payload: _get(_first(_get(payload, "results")), "text"),
    lambda payload: _get(_first(_get(payload, "generations")), "text"),
    lambda payload: _get(_get(_first(_get(payload, "choices")), "message"), "content"),
    lambda payload: _get(_first(_get(payload, "choices")), "text"),
    lambda payload: _get(_get(_first(_get(payload, "choices")), "delta"), "content"),
)


def normalize_output(payload: Any) -> str:
    """
    Pull the generated text out of a provider response.

    Args:
        payload: Decoded JSON response

    Returns:
        str: Generated text, or the JSON-encoded payload when no known
        field carries it

    Example:
        >>> normalize_output({"choices": [{"message": {"content": "Hi"}}]})
        'Hi'
    """
    for extractor in OUTPUT_EXTRACTORS:
        value = extractor(payload)
        if isinstance(value, str) and value:
            return value
    return json.dumps(payload)


def is_chat_completions_url(url: str) -> bool:
    """True when the endpoint expects the chat-completions request shape."""
    return "api.openai.com" in url or "/v1/chat/completions" in url


class LLMService:
    """
    Service for calling the configured LLM endpoint.

    Single attempt per call; the chat turn fails if the model does.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize LLM service.

        Args:
            config: Settings holding the endpoint, key, model and timeout
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or default_settings
        self.transport = transport

    def build_payload(self, prompt: str, user_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Build the request body for the configured dialect.

        Args:
            prompt: Prompt text (question, optionally with memory context)
            user_name: User's display name, if known

        Returns:
            Dict[str, Any]: JSON request body
        """
        assistant = self.config.assistant_name

        if is_chat_completions_url(self.config.llm_api_url or ""):
            return {
                "model": self.config.llm_model,
                "messages": [
                    {"role": "system", "content": build_system_prompt(assistant, user_name)},
                    {"role": "user", "content": prompt},
                ],
            }

        return {"inputs": build_completion_prompt(prompt, assistant, user_name)}

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.llm_api_key:
            headers["Authorization"] = f"Bearer {self.config.llm_api_key}"
        return headers

    async def generate(self, prompt: str, user_name: Optional[str] = None) -> str:
        """
        Generate a reply.

        Args:
            prompt: Prompt text
            user_name: User's display name, if known

        Returns:
            str: Raw model output, annotations included

        Raises:
            LLMConfigurationError: If no endpoint is configured
            LLMRequestError: On transport errors or a non-OK response
        """
        if not self.config.llm_api_url:
            raise LLMConfigurationError("No LLM configured (LLM_API_URL missing)")

        start_time = time.time()
        payload = self.build_payload(prompt, user_name)

        try:
            async with httpx.AsyncClient(
                timeout=self.config.llm_timeout,
                transport=self.transport
            ) as client:
                response = await client.post(
                    self.config.llm_api_url,
                    json=payload,
                    headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM request error: {e}")
            raise LLMRequestError(f"LLM request failed: {e}") from e

        if response.is_error:
            logger.error(f"LLM returned {response.status_code}")
            raise LLMRequestError(
                f"LLM request failed: {response.status_code} {response.text}",
                status_code=response.status_code
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            output = response.text
        else:
            try:
                output = normalize_output(response.json())
            except ValueError as e:
                raise LLMRequestError(f"LLM returned invalid JSON: {e}") from e

        duration = time.time() - start_time
        logger.info(f"LLM generated {len(output)} chars in {duration:.2f}s")
        return output

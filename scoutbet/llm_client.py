"""LLM completion client for intent classification and result summaries."""
import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .errors import ConfigurationError, LLMError
from .models import Intent
from .prompts import (
    CLASSIFY_SYSTEM_PROMPT,
    DEFAULT_CONTEXT,
    QUERY_TYPES,
    SUMMARY_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)

# Degraded intent returned when classification fails
FALLBACK_QUERY_TYPE = "general"
FALLBACK_CONFIDENCE = 0.3


def strip_code_fence(content: str) -> str:
    """Return the body of a markdown code fence, or the stripped content."""
    match = CODE_FENCE_RE.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_intent(content: str, original: str) -> Intent:
    """
    Parse classification output into an Intent.

    Accepts both the English keys (queryType, normalizedQuery, explanation)
    and the Portuguese ones (tipo_consulta, query, explicacao).

    Raises:
        LLMError: If the content is not a JSON object
    """
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise LLMError(f"Classification is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("Classification is not a JSON object")

    query_type = _first(data, "queryType", "tipo_consulta") or FALLBACK_QUERY_TYPE
    if query_type not in QUERY_TYPES:
        logger.warning(f"Unknown query type from classifier: {query_type}")

    try:
        confidence = float(_first(data, "confidence") or 0.5)
    except (TypeError, ValueError):
        confidence = 0.5

    return Intent(
        query_type=str(query_type),
        normalized_query=str(_first(data, "normalizedQuery", "query") or original),
        explanation=str(_first(data, "explanation", "explicacao") or ""),
        confidence=max(0.0, min(1.0, confidence)),
    )


class LLMClient:
    """
    Client for an OpenAI-compatible chat-completions endpoint.

    Used for two things: classifying a chat message into an Intent and
    turning a discovery result into a readable summary.
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.perplexity.ai/chat/completions",
        model: str = "sonar",
        timeout: float = 60.0,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Bearer token for the completion service
            api_url: Chat-completions endpoint
            model: Model name sent with every request
            timeout: Request timeout in seconds
            backoff_base: First retry delay in seconds; doubles per attempt
            transport: Optional httpx transport (tests use MockTransport)

        Raises:
            ConfigurationError: If no API key is given
        """
        if not api_key:
            raise ConfigurationError("LLM API key is not configured", missing=["PERPLEXITY_API_KEY"])

        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.backoff_base = backoff_base
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_key=settings.perplexity_api_key,
            api_url=settings.perplexity_api_url,
            model=settings.perplexity_model,
            timeout=settings.llm_timeout_seconds,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _call_llm(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        """
        Make one chat-completions request.

        Returns:
            Model response text

        Raises:
            httpx.HTTPError: On transport or HTTP status failures
            LLMError: If the response carries no content
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            response = await self.client.post(self.api_url, headers=headers, json=payload)
            response.raise_for_status()

            data = response.json()

            if not isinstance(data, dict):
                raise LLMError(f"Response from {self.model} is not a JSON object")
            choices = data.get("choices")
            if not choices or not isinstance(choices, list):
                raise LLMError(f"No choices in response from {self.model}")

            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if not isinstance(content, str) or not content.strip():
                raise LLMError(f"Empty response from {self.model}")

            usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
            logger.info(
                f"Received response from {self.model} ({len(content)} chars, "
                f"{usage.get('total_tokens', '?')} tokens)"
            )
            return content

        except httpx.HTTPStatusError as e:
            logger.error(f"LLM API error: {e.response.status_code} - {e.response.text}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Error calling {self.model}: {e}")
            raise

    async def _call_llm_with_retry(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        max_retries: int = 3,
    ) -> str:
        """
        Call the LLM with retry logic and exponential backoff.

        Raises:
            LLMError: If all retries fail
        """
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                return await self._call_llm(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
            except Exception as e:
                last_error = e
                if attempt < max_retries - 1:
                    wait_time = self.backoff_base * 2 ** attempt  # 1s, 2s, 4s
                    logger.warning(f"Retry {attempt + 1}/{max_retries} after {wait_time}s: {e}")
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"All {max_retries} retries failed: {e}")

        raise LLMError(f"LLM request failed after {max_retries} attempts: {last_error}") from last_error

    async def classify_intent(self, text: str) -> Intent:
        """
        Classify a chat message.

        Never raises: malformed output or transport failures degrade to a
        general intent over the original text with confidence 0.3.
        """
        system_prompt = CLASSIFY_SYSTEM_PROMPT.format(query_types="|".join(QUERY_TYPES))
        try:
            content = await self._call_llm_with_retry(
                system_prompt=system_prompt,
                user_prompt=text,
                max_tokens=200,
                temperature=0.1,
            )
            intent = parse_intent(content, text)
        except LLMError as e:
            logger.warning(f"Intent classification failed, using general intent: {e}")
            return Intent(
                query_type=FALLBACK_QUERY_TYPE,
                normalized_query=text,
                explanation="Classification failed",
                confidence=FALLBACK_CONFIDENCE,
            )

        logger.info(f"Classified query as {intent.query_type} ({intent.confidence:.2f})")
        return intent

    async def summarize(
        self,
        prompt: str,
        data: Dict[str, Any],
        context: str = DEFAULT_CONTEXT,
        **fields: str,
    ) -> str:
        """
        Summarize discovery data.

        Args:
            prompt: User prompt template with a ``{data}`` placeholder
            data: JSON-serializable discovery data
            context: Context line for the system prompt
            **fields: Extra template fields (e.g. the user message)

        Returns:
            Summary text

        Raises:
            LLMError: If the completion service fails after retries
        """
        user_prompt = prompt.format(
            data=json.dumps(data, indent=2, ensure_ascii=False, default=str),
            **fields,
        )
        return await self._call_llm_with_retry(
            system_prompt=SUMMARY_SYSTEM_PROMPT.format(context=context),
            user_prompt=user_prompt,
            max_tokens=1500,
            temperature=0.3,
        )

"""Managed headless-browser extraction client (Browserbase sessions + Stagehand extract)."""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from .config import Settings
from .errors import ConfigurationError, ExtractionError, QuotaExceededError

logger = logging.getLogger(__name__)

QUOTA_STATUS = 402
QUOTA_MESSAGE = "free plan"


class BrowserSession:
    """One open browser session. Navigates and extracts on behalf of the Extractor."""

    def __init__(self, client: "BrowserClient", session_id: str):
        self.client = client
        self.session_id = session_id

    async def extract(self, url: str, instruction: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        await self.client.navigate(self.session_id, url)
        return await self.client.extract(self.session_id, instruction, schema)


class BrowserClient:
    """
    HTTP client for the extraction service.

    A 402 response, or an error response mentioning the free plan limit, raises
    QuotaExceededError and marks the client as plan-limited for the rest of
    its life.
    """

    def __init__(
        self,
        api_key: Optional[str],
        project_id: Optional[str],
        api_url: str = "https://api.browserbase.com/v1",
        stagehand_url: str = "https://api.stagehand.browserbase.com/v1",
        model_api_key: Optional[str] = None,
        timeout: float = 45.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Browserbase API key
            project_id: Browserbase project id
            api_url: Session API base URL
            stagehand_url: Stagehand API base URL
            model_api_key: Key for the model that runs extraction instructions
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)

        Raises:
            ConfigurationError: If the API key or project id is missing
        """
        missing = []
        if not api_key:
            missing.append("BROWSERBASE_API_KEY")
        if not project_id:
            missing.append("BROWSERBASE_PROJECT_ID")
        if missing:
            raise ConfigurationError(f"Extraction service not configured: {', '.join(missing)}", missing=missing)

        self.api_key = api_key
        self.project_id = project_id
        self.api_url = api_url.rstrip("/")
        self.stagehand_url = stagehand_url.rstrip("/")
        self.model_api_key = model_api_key
        self.plan_limit_reached = False
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrowserClient":
        return cls(
            api_key=settings.browserbase_api_key,
            project_id=settings.browserbase_project_id,
            api_url=settings.browserbase_api_url,
            stagehand_url=settings.stagehand_api_url,
            model_api_key=settings.model_api_key,
            timeout=settings.extraction_timeout_seconds,
        )

    def is_available(self) -> bool:
        return not self.plan_limit_reached

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "X-BB-API-Key": self.api_key,
            "X-BB-Project-Id": self.project_id,
            "Content-Type": "application/json",
        }
        if self.model_api_key:
            headers["X-Model-API-Key"] = self.model_api_key
        return headers

    def _check_quota(self, response: httpx.Response) -> None:
        quota_message = response.is_error and QUOTA_MESSAGE in response.text.lower()
        if response.status_code == QUOTA_STATUS or quota_message:
            self.plan_limit_reached = True
            logger.warning("Extraction service plan limit reached")
            raise QuotaExceededError(
                f"Extraction plan limit reached ({response.status_code}): {response.text[:200]}"
            )

    async def _post(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POST and decode the JSON body ({} when empty).

        Raises:
            QuotaExceededError: On the plan limit
            httpx.HTTPStatusError: On any other error status
        """
        response = await self.client.post(url, headers=self._headers(), json=payload)
        self._check_quota(response)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Extraction API error: {e.response.status_code} - {e.response.text}")
            raise

        if not response.content:
            return {}
        return response.json()

    async def create_session(self) -> str:
        """Create a browser session and return its id."""
        data = await self._post(f"{self.api_url}/sessions", {"projectId": self.project_id})
        session_id = data.get("id") if isinstance(data, dict) else None
        if not session_id:
            raise ExtractionError("Session response has no id")
        logger.info(f"Created browser session {session_id}")
        return session_id

    async def release_session(self, session_id: str):
        """Ask the service to release a session."""
        await self._post(
            f"{self.api_url}/sessions/{session_id}",
            {"projectId": self.project_id, "status": "REQUEST_RELEASE"},
        )
        logger.info(f"Released browser session {session_id}")

    async def navigate(self, session_id: str, url: str):
        await self._post(
            f"{self.stagehand_url}/sessions/{session_id}/navigate",
            {"url": url, "options": {"waitUntil": "networkidle"}},
        )

    async def extract(self, session_id: str, instruction: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run an extraction instruction against the current page.

        Returns:
            The extracted object, unwrapped from a ``data``/``result`` envelope

        Raises:
            ExtractionError: If the service returns something other than an object
        """
        data = await self._post(
            f"{self.stagehand_url}/sessions/{session_id}/extract",
            {"instruction": instruction, "schema": schema},
        )
        if isinstance(data, dict):
            for key in ("data", "result"):
                if isinstance(data.get(key), dict):
                    data = data[key]
                    break
        if not isinstance(data, dict):
            raise ExtractionError("Extraction result is not an object")
        return data

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        """
        Open a session for one discovery run and release it on exit.

        Raises:
            QuotaExceededError: If the plan limit is hit while creating it
        """
        session_id = await self.create_session()
        try:
            yield BrowserSession(self, session_id)
        finally:
            try:
                await self.release_session(session_id)
            except (httpx.HTTPError, QuotaExceededError) as e:
                logger.error(f"Failed to release session {session_id}: {e}")

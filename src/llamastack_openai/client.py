"""LlamaStack HTTP client for model listing and health checks."""

import asyncio
from typing import List, Optional

import httpx
import structlog
from pydantic import ValidationError

from . import __version__
from .models import PublicModel, UpstreamModelList
from .translate import translate_upstream_models

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_ERROR_BODY = 512
USER_AGENT = f"llamastack-adapter/{__version__}"


class LlamaStackError(Exception):
    """Base exception for LlamaStack client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnreachableError(LlamaStackError):
    """Raised when LlamaStack cannot be reached (DNS, refused, reset)."""


class UpstreamTimeoutError(UpstreamUnreachableError):
    """Raised when a LlamaStack call does not finish within its deadline."""

    def __init__(self, message: str = "Request to LlamaStack timed out"):
        super().__init__(message)


class UpstreamStatusError(LlamaStackError):
    """Raised when LlamaStack answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.body = body[:MAX_ERROR_BODY]
        message = f"LlamaStack returned status {status_code}"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message, status_code=status_code)


class UpstreamDecodeError(LlamaStackError):
    """Raised when a LlamaStack response body cannot be decoded."""


def join_url(base_url: str, path: str) -> str:
    """Join a base URL and a path with exactly one slash between them."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class LlamaStackClient:
    """Client for the LlamaStack models and health endpoints.

    Each call is a single attempt. Callers decide whether to retry.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def url_for(self, path: str) -> str:
        return join_url(self.base_url, path)

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def effective_timeout(self, timeout: Optional[float] = None) -> float:
        """Return the tighter of the client timeout and the caller's ceiling."""
        if timeout is None:
            return self.timeout
        return min(self.timeout, timeout)

    async def _get(self, path: str, timeout: Optional[float]) -> httpx.Response:
        deadline = self.effective_timeout(timeout)
        url = self.url_for(path)

        async def send() -> httpx.Response:
            async with httpx.AsyncClient(transport=self._transport) as client:
                return await client.get(url, headers=self._headers(), timeout=deadline)

        try:
            return await asyncio.wait_for(send(), timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise UpstreamTimeoutError(
                f"Request to {url} did not complete within {deadline} seconds"
            )
        except httpx.TransportError as e:
            raise UpstreamUnreachableError(f"Failed to reach LlamaStack at {url}: {e}")

    async def list_models(self, timeout: Optional[float] = None) -> List[PublicModel]:
        """Fetch models from LlamaStack and convert them to OpenAI format.

        Args:
            timeout: Caller's ceiling in seconds; the client timeout still applies

        Returns:
            Translated models in upstream order

        Raises:
            UpstreamUnreachableError: On transport failure or timeout
            UpstreamStatusError: On a non-2xx response
            UpstreamDecodeError: On a malformed response body
        """
        logger.debug("Fetching models from LlamaStack", endpoint=self.base_url)

        response = await self._get("/v1/models", timeout)

        if not response.is_success:
            raise UpstreamStatusError(response.status_code, response.text)

        try:
            payload = UpstreamModelList.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamDecodeError(f"Failed to decode LlamaStack response: {e}")

        models = translate_upstream_models(payload.models)
        logger.debug("Converted LlamaStack models to OpenAI format", count=len(models))
        return models

    async def health(self, timeout: Optional[float] = None) -> None:
        """Check that LlamaStack is reachable and healthy.

        Raises:
            UpstreamUnreachableError: On transport failure or timeout
            UpstreamStatusError: If the health endpoint answers non-2xx
        """
        response = await self._get("/health", timeout)

        if not response.is_success:
            raise UpstreamStatusError(response.status_code)

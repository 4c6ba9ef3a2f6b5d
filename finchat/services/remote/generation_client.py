"""
Remote Generation Client

Talks to the hosted chat endpoint used in production deployments.

Contract:
    POST <endpoint_url>  {"message": str, "userId": str}
    200                  {"response": str}

Failures are classified so the orchestrator can decide what to do:
- RemoteTransportError: network failure or 5xx, worth retrying
- RemoteRequestError: any other non-2xx, retrying will not help
- RemoteValidationError: 2xx with a body that is not a usable answer

This client makes exactly ONE attempt per call. Retry policy lives in
the orchestrator.
"""

from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from finchat.config import RemoteGenerationSettings


class RemoteChatResponse(BaseModel):
    """Body returned by the remote endpoint."""

    response: str = Field(..., min_length=1)


class RemoteGenerationError(Exception):
    """Base exception for remote generation."""
    pass


class RemoteTransportError(RemoteGenerationError):
    """Network failure or server-side (5xx) error. Retriable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteRequestError(RemoteGenerationError):
    """The endpoint rejected the request (non-5xx error status)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class RemoteValidationError(RemoteGenerationError):
    """The endpoint answered, but not with a usable response body."""
    pass


class RemoteGenerationClient:
    """
    Async client for the remote generation endpoint.

    The underlying httpx.AsyncClient can be injected, which is how tests
    plug in an httpx.MockTransport.
    """

    def __init__(
        self,
        settings: RemoteGenerationSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.timeout_seconds,
        )
        self._owns_client = http_client is None

    async def generate(self, message: str, user_id: str) -> str:
        """
        Ask the remote endpoint to answer `message` for `user_id`.

        Returns:
            The answer text

        Raises:
            RemoteTransportError: Network failure or 5xx
            RemoteRequestError: Other error status
            RemoteValidationError: Malformed response body
        """
        try:
            response = await self._http.post(
                self._settings.endpoint_url,
                json={"message": message, "userId": user_id},
            )
        except httpx.TransportError as e:
            raise RemoteTransportError(f"Remote endpoint unreachable: {type(e).__name__}") from e
        except httpx.DecodingError as e:
            raise RemoteValidationError("Remote response body could not be decoded") from e
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"Remote request failed: {type(e).__name__}") from e

        if response.status_code >= 500:
            raise RemoteTransportError(
                f"Remote endpoint server error: {response.status_code}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise RemoteRequestError(
                f"Remote endpoint rejected request: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = RemoteChatResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise RemoteValidationError(
                f"Invalid response from remote endpoint ({e.error_count()} errors)"
            ) from e

        return body.response

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

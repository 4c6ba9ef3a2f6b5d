"""Remote generation package."""

from finchat.services.remote.generation_client import (
    RemoteChatResponse,
    RemoteGenerationClient,
    RemoteGenerationError,
    RemoteRequestError,
    RemoteTransportError,
    RemoteValidationError,
)

__all__ = [
    "RemoteChatResponse",
    "RemoteGenerationClient",
    "RemoteGenerationError",
    "RemoteRequestError",
    "RemoteTransportError",
    "RemoteValidationError",
]

"""Gateway error kinds.

``str(error)`` is the text shown to the user; components prefix it with the
action that failed before storing it on their ``error_message`` field.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every failure talking to the chat gateway."""

    default_message = "Unknown error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidURLError(GatewayError):
    default_message = "Invalid URL"


class InvalidResponseError(GatewayError):
    default_message = "Invalid response from server"


class HTTPStatusError(GatewayError):
    """Non-2xx status with no more specific mapping."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP Error: {status_code}")


class UnauthorizedError(GatewayError):
    default_message = "Unauthorized access"


class DecodingError(GatewayError):
    def __init__(self, detail: str = ""):
        super().__init__(f"Failed to decode response: {detail}" if detail else "Failed to decode response")


class EncodingError(GatewayError):
    def __init__(self, detail: str = ""):
        super().__init__(f"Failed to encode request: {detail}" if detail else "Failed to encode request")


class ServerError(GatewayError):
    default_message = "Server error"


class UnknownGatewayError(GatewayError):
    pass


class SessionBusyError(RuntimeError):
    """Raised when an auth operation starts while another one is still running."""

    def __init__(self):
        super().__init__("Authentication already in progress")

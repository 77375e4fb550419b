"""
Error Types
Exceptions raised by the signer, the X API client and the tool handlers.
"""


class XError(Exception):
    """Base class for every error this package raises."""


class ConfigError(XError):
    """Missing or invalid process configuration."""

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class AuthError(XError):
    """Credential material that cannot be used for signing."""

    def __init__(self, message: str):
        super().__init__(f"Authentication error: {message}")


class HttpError(XError):
    """Transport-level failure talking to the X API (connection, timeout)."""

    def __init__(self, message: str):
        super().__init__(f"HTTP request failed: {message}")


class ApiError(XError):
    """Error status or error payload returned by the X API."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"X API error: {status} - {message}")


class ArgumentError(XError):
    """Tool arguments that do not match the tool's parameter shape."""


class UnknownToolError(XError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")

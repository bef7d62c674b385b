"""
Error kinds raised by the Lantmäteriet MCP tools.

Each error carries a machine-readable code and a details dict so that the
server can return it to the caller as structured JSON.
"""

from typing import Any, Dict, Optional


class LantmaterietToolError(Exception):
    """Base error for every tool failure."""

    code = "TOOL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LantmaterietToolError, ValueError):
    """Out-of-range or malformed coordinates, boxes or arguments."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field})
        self.field = field


class ConfigurationError(LantmaterietToolError):
    """Missing configuration such as API credentials."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, missing_config: Optional[str] = None):
        super().__init__(message, {"missing_config": missing_config})
        self.missing_config = missing_config


class AuthenticationError(LantmaterietToolError):
    """The credential exchange returned something we cannot use."""

    code = "AUTHENTICATION_ERROR"


class UpstreamApiError(LantmaterietToolError):
    """Non-success HTTP status from a Lantmäteriet endpoint."""

    code = "UPSTREAM_API_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int,
        upstream: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, {"status_code": status_code, "upstream": upstream, **(details or {})})
        self.status_code = status_code
        self.upstream = upstream


class NotFoundError(LantmaterietToolError):
    code = "NOT_FOUND"

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            f"{resource_type} not found: {identifier}",
            {"resource_type": resource_type, "identifier": identifier},
        )

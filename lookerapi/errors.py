"""Error taxonomy for the Looker API client.

Every failure in the core is raised to the immediate caller as a subclass of
LookerError, chained to the underlying httpx/pydantic exception. Nothing is
retried here; retry policy belongs to callers.

Task cancellation is not part of this hierarchy: asyncio.CancelledError
propagates unchanged from every await point.
"""

from typing import Any


class LookerError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for diagnostics rendering."""
        result: dict[str, Any] = {"error": self.message, "kind": type(self).__name__}
        if self.details:
            result["details"] = self.details
        return result


class InvalidConfigError(LookerError):
    """Base URL, user agent or credentials are unusable."""


class AuthError(LookerError):
    """Credential exchange rejected, or no valid token available."""


class SessionError(LookerError):
    """The /session call failed."""


class UnknownWorkspaceError(LookerError):
    """Session reported a workspace other than production or dev."""

    def __init__(self, workspace_id: Any):
        super().__init__(
            f"Session workspace {workspace_id!r} is none of production/dev",
            details={"workspace_id": workspace_id},
        )
        self.workspace_id = workspace_id


class DevSessionError(LookerError):
    """Could not establish the secondary dev-workspace connection."""


class TransportError(LookerError):
    """Network-level failure (connect, read, timeout). Retryable by callers."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message, details={"path": path} if path else None)
        self.path = path


class APIError(LookerError):
    """Non-2xx response from the Looker API."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        path: str = "",
        documentation_url: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.path = path
        self.documentation_url = documentation_url

    def __str__(self) -> str:
        return f"{self.status} {self.message} ({self.path})" if self.path else self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.path:
            result["path"] = self.path
        if self.documentation_url:
            result["documentation_url"] = self.documentation_url
        return result


class NotFoundError(APIError):
    """404. Callers may treat it as success for Get/Delete."""


class ValidationError(APIError):
    """4xx carrying field errors in the body."""

    def __init__(self, message: str, errors: list[dict] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = self.errors
        return result


class DecodeError(LookerError):
    """Response body does not match the expected shape."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message, details={"path": path} if path else None)
        self.path = path


class PaginationError(LookerError):
    """Server pagination links are inconsistent (e.g. a cycle)."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message, details={"url": url} if url else None)
        self.url = url


class UnimplementedError(LookerError, NotImplementedError):
    """Operation has no backing endpoint for this resource type."""

    def __init__(self, resource: str, operation: str):
        super().__init__(
            f"{resource} does not support {operation}",
            details={"resource": resource, "operation": operation},
        )
        self.resource = resource
        self.operation = operation

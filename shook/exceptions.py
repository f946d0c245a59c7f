"""
Exception hierarchy for the webhook and deploy pipeline.

Request-time errors derive from WebhookError and carry the HTTP status the
API layer answers with. Errors raised after the response has been decided
(repository sync) are only logged.
"""
from typing import Optional


class ShookError(Exception):
    """Base exception for all shook errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ShookError):
    """Raised when the projects file cannot be loaded or validated."""


class WebhookError(ShookError):
    """Base class for errors that reject an inbound request."""

    status_code = 400

    @property
    def detail(self) -> str:
        """Message safe to return to the caller."""
        return self.message


class AuthenticationError(WebhookError):
    """Raised when the token or signature header does not verify."""

    status_code = 401

    @property
    def detail(self) -> str:
        return "Unauthorized"


class PayloadTooLargeError(WebhookError):
    """Raised when the request body exceeds the configured limit."""

    status_code = 400


class PayloadDecodeError(WebhookError):
    """Raised when the request body is not a valid provider payload."""

    status_code = 400


class UnknownProjectError(WebhookError):
    """Raised when no project is configured under the requested name."""

    status_code = 404

    def __init__(self, project_name: str):
        super().__init__(
            f"Unknown project: {project_name}",
            details={"project": project_name},
        )
        self.project_name = project_name


class SyncError(ShookError):
    """Raised when the local working copy cannot be cloned or fast-forwarded."""

    def __init__(
        self,
        message: str,
        command: Optional[list] = None,
        stderr: Optional[str] = None,
    ):
        details = {}
        if command:
            details["command"] = " ".join(command)
        if stderr:
            details["stderr"] = stderr.strip()
        super().__init__(message, details=details)
        self.command = command
        self.stderr = stderr

    def __str__(self):
        stderr = self.details.get("stderr")
        if stderr:
            return f"{self.message}: {stderr}"
        return self.message

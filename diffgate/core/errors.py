"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status it maps to; the API layer renders any
``DiffGateError`` as ``{"error": message}`` with that status.
"""

from __future__ import annotations


class DiffGateError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(DiffGateError):
    """Repository root (or another required setting) is not configured."""

    status_code = 503


class ValidationError(DiffGateError):
    """A required request field is missing or malformed."""

    status_code = 400


class ExternalCommandError(DiffGateError):
    """A git subprocess failed: non-zero exit, timeout or missing binary."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.exit_code = exit_code
        self.stderr = stderr


class GateViolation(DiffGateError):
    """Strict-mode commit/push requested without a quiz matching the current diff."""

    status_code = 403


class PersistenceError(DiffGateError):
    """The quiz results store exists but could not be read or parsed."""

    status_code = 500


class GenerationError(DiffGateError):
    """The text generator failed or returned output that could not be parsed."""

    status_code = 500

"""
Domain Errors

Every failure the catalog, reputation and moderation services can raise.
Each class carries the HTTP ``status_code`` it maps to; the handler that
turns them into responses is registered in ``webhub.serving.api.main``.
"""

from typing import Iterable, List, Optional


class WebHubError(Exception):
    """Base class for all domain errors"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(WebHubError):
    """Malformed or out-of-range input; carries every field-level message"""

    status_code = 400

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        super().__init__(message or ", ".join(self.errors) or "Invalid input")

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class AuthenticationError(WebHubError):
    """Caller identity could not be established"""

    status_code = 401


class AuthorizationError(WebHubError):
    """Caller is known but lacks ownership or admin privilege"""

    status_code = 403


class NotFoundError(WebHubError):
    """Referenced entity does not exist"""

    status_code = 404


class ConflictError(WebHubError):
    """Uniqueness or state-machine violation (duplicate review, resolved report, ...)"""

    status_code = 409


class ConfigurationError(WebHubError):
    """Fatal startup problem, e.g. the store is unreachable"""

    status_code = 500

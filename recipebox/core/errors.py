# core/errors.py
# Domain errors raised by the workflow, favorites and auth layers.
# Each carries the HTTP status it is rendered with by the handler in main.py.

from typing import Any, Dict, Optional


class RecipeBoxError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    `message` is safe to return to the client, `context` is only logged.
    """

    status_code = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class InvalidInput(RecipeBoxError):
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, context={"field": field} if field else None)
        self.field = field


class Unauthenticated(RecipeBoxError):
    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class Forbidden(RecipeBoxError):
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class NotFound(RecipeBoxError):
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class Conflict(RecipeBoxError):
    status_code = 400


class UpstreamFailure(RecipeBoxError):
    """A store or blob service call failed. The message stays generic."""

    status_code = 500

    def __init__(
        self,
        message: str = "A storage service error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context=context)

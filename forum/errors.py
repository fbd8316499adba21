"""
Error taxonomy shared by the service layer and the HTTP surface.

Services raise these; ``forum.main`` renders them as
``{"detail": ..., "code": ...}`` with the matching status code.
"""


class ForumError(Exception):
    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ForumError):
    """Malformed or missing input; the caller can fix the request."""

    status_code = 400
    code = "validation_error"


class ReferentialError(ForumError):
    """A topic, post or user reference does not point at an existing row."""

    status_code = 400
    code = "referential_error"


class ForbiddenError(ForumError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ForumError):
    status_code = 404
    code = "not_found"


class ConflictError(ForumError):
    """A concurrent writer won a uniqueness race; retry the request."""

    status_code = 500
    code = "conflict"


class StorageError(ForumError):
    status_code = 500
    code = "storage_error"

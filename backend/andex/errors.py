"""Domain error taxonomy.

Each error is an ``HTTPException`` so services can raise it directly and
FastAPI renders the matching client status.
"""
from typing import Any

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Rejected input: self-targeting, missing field, malformed coordinates."""

    def __init__(self, detail: Any = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthenticationError(HTTPException):
    """No resolved user on a protected operation."""

    def __init__(self, detail: Any = "Unauthorized: user not resolved"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class AuthorizationError(HTTPException):
    """Resolved user is not allowed to act on the target resource."""

    def __init__(self, detail: Any = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: Any = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: Any = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

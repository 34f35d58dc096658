"""
Domain errors raised by the service layer.

Services never raise HTTPException; app.main maps every ArchiveError to a JSON
response using the status_code carried by the error.
"""
from typing import Optional


class ArchiveError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ArchiveError):
    """Referenced user, OPD or document does not exist."""
    status_code = 404


class ConflictError(ArchiveError):
    """Uniqueness violation (OPD code, username, email)."""
    status_code = 409


class BlockedError(ArchiveError):
    """Preconditions unmet; reason is a stable machine-readable code."""
    status_code = 409

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class InvalidArgumentError(ArchiveError):
    """Malformed filter, pagination or upload input."""
    status_code = 422

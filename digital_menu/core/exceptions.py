"""Domain errors raised by services and mapped to HTTP responses in main.py.

Services never raise HTTPException directly; they raise one of these and the
exception handlers turn it into ``{"success": false, "msg": ...}`` with the
matching status code.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all expected application errors."""

    status_code: int = 500

    def __init__(self, msg: str, status_code: Optional[int] = None):
        self.msg = msg
        if status_code is not None:
            self.status_code = status_code
        super().__init__(msg)


class ValidationError(AppError):
    """Missing or malformed input, invalid enum value, bad price or quantity."""

    status_code = 400


class NotFoundError(AppError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id=None, msg: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        if msg is None and entity_id is None:
            msg = f"{entity} not found"
        elif msg is None:
            msg = f"No {entity.lower()} with id {entity_id}"
        super().__init__(msg)


class ConflictError(AppError):
    """The write would break a uniqueness or state rule."""

    status_code = 409


class ExternalServiceError(AppError):
    """A collaborator (blob store, payment gateway) failed."""

    status_code = 502

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} error: {detail}")

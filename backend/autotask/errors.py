"""Task engine errors.

They subclass HTTPException so service code raises them directly and FastAPI
turns them into responses without per-router translation.
"""

from fastapi import HTTPException


class TaskError(HTTPException):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(TaskError):
    status_code = 404


class InvalidTransitionError(TaskError):
    status_code = 409


class TaskValidationError(TaskError):
    status_code = 422

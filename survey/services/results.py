"""Tagged results returned by the survey services.

User-facing operations never raise for expected failures.  They return an
``ActionResult`` that is either ``ok`` with a ``data`` payload or carries one
of the ``ErrorCode`` values together with a human readable message.  Inside a
transaction the services raise ``SurveyActionError`` so the block rolls back,
and ``service_action`` converts it into a failed result at the boundary.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from django.db import models


class ErrorCode(models.TextChoices):
    UNAUTHORIZED = 'UNAUTHORIZED', 'Unauthorized'
    FORBIDDEN = 'FORBIDDEN', 'Forbidden'
    NOT_FOUND = 'NOT_FOUND', 'Not found'
    INVALID_INPUT = 'INVALID_INPUT', 'Invalid input'
    STEP_NOT_FOUND = 'STEP_NOT_FOUND', 'Step not found'
    QUESTION_NOT_IN_STEP = 'QUESTION_NOT_IN_STEP', 'Question not in step'
    OPTION_NOT_FOUND = 'OPTION_NOT_FOUND', 'Option not found'
    SURVEY_COMPLETED = 'SURVEY_COMPLETED', 'Survey completed'
    ALREADY_SUBMITTED = 'ALREADY_SUBMITTED', 'Already submitted'
    VALIDATION_ERROR = 'VALIDATION_ERROR', 'Validation error'
    RATE_LIMITED = 'RATE_LIMITED', 'Rate limited'
    EMAIL_TAKEN = 'EMAIL_TAKEN', 'E-mail already registered'
    INVALID_TOKEN = 'INVALID_TOKEN', 'Invalid or expired token'


class SurveyActionError(Exception):
    """Raised by service code for an expected, user-facing failure."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    data: Any = None
    code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> 'ActionResult':
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, code: str, message: str) -> 'ActionResult':
        return cls(ok=False, code=str(code), message=message)

    def as_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {'ok': True, 'data': self.data}
        return {'ok': False, 'code': self.code, 'message': self.message}


def service_action(func: Callable[..., Any]) -> Callable[..., ActionResult]:
    """Wrap ``func`` so its return value becomes a successful ``ActionResult``.

    ``SurveyActionError`` is turned into a failed result.  Any other
    exception, database errors included, propagates to the caller.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> ActionResult:
        try:
            data = func(*args, **kwargs)
        except SurveyActionError as exc:
            return ActionResult.failure(exc.code, exc.message)
        if isinstance(data, ActionResult):
            return data
        return ActionResult.success(data)

    return wrapper

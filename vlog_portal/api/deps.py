# vlog_portal/api/deps.py
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from vlog_portal.core.exceptions import (
    BatchLimitExceededError,
    InvalidIdentifierError,
    InvalidScoreError,
    PermissionDeniedError,
    RepositoryError,
    SubmissionNotFoundError,
    WriteTimeoutError,
)
from vlog_portal.core.security import get_optional_user
from vlog_portal.models.user import User
from vlog_portal.services.intake_pipeline import IntakePipeline
from vlog_portal.services.submission_repository import SubmissionRepository

_STATUS_BY_ERROR = [
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN, "permission"),
    (WriteTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT, "timeout"),
    (SubmissionNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (InvalidScoreError, status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_score"),
    (InvalidIdentifierError, status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_id"),
    (BatchLimitExceededError, status.HTTP_409_CONFLICT, "batch_limit"),
]


def get_repository(request: Request) -> SubmissionRepository:
    return request.app.state.repository


def get_intake_pipeline(
    repository: SubmissionRepository = Depends(get_repository),
    current_user: Optional[User] = Depends(get_optional_user),
) -> IntakePipeline:
    # one pipeline per request
    return IntakePipeline(repository, actor=current_user)


def error_category(exc: RepositoryError) -> tuple[int, str]:
    for error_cls, status_code, category in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code, category
    return status.HTTP_503_SERVICE_UNAVAILABLE, "storage"


def repository_http_error(exc: RepositoryError) -> HTTPException:
    status_code, category = error_category(exc)
    return HTTPException(
        status_code=status_code,
        detail={"category": category, "message": str(exc)},
    )

# vlog_portal/core/exceptions.py
"""
Domain errors.

Every failure is scoped to a single user action; the API layer maps these
classes to HTTP status codes (see vlog_portal.api.deps).
"""


class RepositoryError(Exception):
    """A submission read or write did not go through."""


class PermissionDeniedError(RepositoryError):
    pass


class WriteTimeoutError(RepositoryError):
    pass


class SubmissionNotFoundError(RepositoryError):
    pass


class InvalidIdentifierError(RepositoryError):
    pass


class InvalidScoreError(RepositoryError):
    pass


class BatchLimitExceededError(RepositoryError):
    pass


class AuthError(Exception):
    pass


class InvalidEmailError(AuthError):
    pass


class InvalidCredentialError(AuthError):
    pass


class IntakeError(Exception):
    pass


class InvalidVideoUrlError(IntakeError):
    pass


class IllegalTransitionError(IntakeError):
    pass

"""
Domain Errors

Every error raised on purpose by a bounded context derives from
DomainError. The API layer turns them into HTTP responses using the
class attributes below, so domain code never imports the web framework.
"""


class DomainError(Exception):
    """Base class for expected, user-facing domain failures."""

    status_code = 400
    default_code = 'domain_error'
    default_detail = 'The request could not be processed.'

    def __init__(self, detail: str | None = None, *, code: str | None = None):
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)


class ValidationError(DomainError):
    """Bad input shape; rejected before anything is written."""

    status_code = 400
    default_code = 'invalid'
    default_detail = 'Invalid input.'


class NotFoundError(DomainError):
    status_code = 404
    default_code = 'not_found'
    default_detail = 'Not found.'


class AuthorizationError(DomainError):
    """The caller's role or ownership does not allow the operation."""

    status_code = 403
    default_code = 'forbidden'
    default_detail = 'You are not allowed to perform this action.'

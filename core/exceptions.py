"""Domain error taxonomy shared by the catalog and quote apps.

Each error carries the HTTP status and the machine-readable code that
``core.http.ApiView`` reports to the client.
"""


class DomainError(Exception):
    status = 500
    code = 'ERROR'

    def __init__(self, message, code=None, **extra):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra

    def as_dict(self):
        return {'message': self.message, 'code': self.code, **self.extra}


class ValidationError(DomainError):
    status = 400
    code = 'VALIDATION_FAILED'


class NotFoundError(DomainError):
    status = 404
    code = 'NOT_FOUND'


class ConflictError(DomainError):
    """A state guard rejected the operation (already signed, link still valid...)."""

    status = 400
    code = 'INVALID_STATUS'


class ExpiredError(DomainError):
    status = 410
    code = 'EXPIRED'


class DependencyError(DomainError):
    """An upstream system (catalog, mail server, webhook target) failed."""

    status = 502
    code = 'DEPENDENCY_FAILED'

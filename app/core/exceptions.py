class AgencyCrmException(Exception):
    """Base exception for the agency CRM"""

    pass


class UnauthorizedException(AgencyCrmException):
    """Raised when no valid principal can be extracted from the request"""

    pass


class NotFoundException(AgencyCrmException):
    """Raised when resource not found or belongs to another tenant"""

    pass


class ForbiddenException(AgencyCrmException):
    """Raised when an authenticated user may not act within a tenant"""

    pass


class ValidationException(AgencyCrmException):
    """Raised for business logic validation errors"""

    pass


class QuotaExceededException(AgencyCrmException):
    """Raised when a user already owns the maximum number of tenants"""

    pass


class InternalErrorException(AgencyCrmException):
    """Raised when the datastore fails on a primary write"""

    pass

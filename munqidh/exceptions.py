"""
Error taxonomy for the matching engine.

Every error is a DRF APIException, so services can raise them directly and
the API layer turns them into responses with a status code and a stable
machine-readable code.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class MatchingError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Blood request matching failed.'
    default_code = 'matching_error'

    def __init__(self, detail=None, code=None):
        super().__init__(detail, code)
        self.code = code or self.default_code

    def __str__(self):
        return str(self.detail)


class ValidationError(MatchingError):
    """Malformed or missing input fields."""
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class NotFoundError(MatchingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class BusinessRuleViolation(MatchingError):
    """Expired deadline, inactive request, incompatible blood type, self-response, duplicates..."""
    default_detail = 'This action is not allowed.'
    default_code = 'business_rule_violation'


class ConcurrencyConflict(MatchingError):
    """The atomic accept matched nothing: a competing write took the last unit first."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Request no longer available.'
    default_code = 'request_unavailable'


class ExternalServiceError(MatchingError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'External service failure.'
    default_code = 'external_service_error'


def api_exception_handler(exc, context):
    """DRF exception handler that adds the error type and code to matching errors."""
    # Imported here: this module is loaded while models are still being registered
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, MatchingError):
        response.data['error'] = type(exc).__name__
        response.data['code'] = exc.code
    return response

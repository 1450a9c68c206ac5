"""
Typed precondition errors shared by the intake pipeline.

Each error carries a stable ``code`` for clients, a human-readable
``message`` and the HTTP status the API answers with.
"""
from rest_framework import status
from rest_framework.response import Response

from .observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)


class PipelineError(Exception):
    """Base for precondition violations surfaced to API callers."""
    code = 'PRECONDITION_FAILED'
    http_status = status.HTTP_409_CONFLICT
    default_message = 'Precondition failed'

    def __init__(self, message=None, code=None, http_status=None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        super().__init__(self.message)

    def as_response_data(self):
        return {'success': False, 'error': self.message, 'code': self.code}


def internal_error_data():
    """Body for unexpected failures; never includes exception details."""
    return {
        'success': False,
        'error': 'Unexpected error, please retry or contact support',
        'code': 'INTERNAL_ERROR',
    }


def pipeline_error_response(error: PipelineError) -> Response:
    return Response(error.as_response_data(), status=error.http_status)


def validation_error_response(errors) -> Response:
    return Response(
        {'success': False, 'error': 'Validation failed', 'code': 'VALIDATION_ERROR', 'details': errors},
        status=status.HTTP_400_BAD_REQUEST
    )


def unexpected_error_response(error: Exception, location: str, **context) -> Response:
    """Log and count an unexpected failure, answer 500 without details."""
    metrics.exceptions_total.labels(
        exception_type=error.__class__.__name__,
        location=location
    ).inc()
    logger.error(
        'Unexpected error',
        exc_info=error,
        extra={'location': location, 'error_type': error.__class__.__name__, **context}
    )
    return Response(internal_error_data(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status


class ServiceError(Exception):
    """Base class for errors raised by the renewal services."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = 'service_error'
    default_message = 'Request could not be processed'

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Bad or missing input; nothing was written."""
    code = 'validation_error'
    default_message = 'Invalid input'


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_message = 'Resource not found'


class ConflictError(ServiceError):
    """The target exists but is in a state that forbids the operation."""
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'
    default_message = 'Resource is not in a valid state for this operation'


class DependencyFailure(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = 'dependency_failure'
    default_message = 'External dependency failed'


class PersistenceFailure(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'persistence_failure'
    default_message = 'Changes could not be saved'


def custom_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        return Response({
            'status_code': exc.status_code,
            'code': exc.code,
            'message': exc.message,
            'errors': exc.errors,
        }, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        response.data = {
            'status_code': response.status_code,
            'code': 'request_error',
            'errors': response.data,
            'message': 'Something went wrong'
        }
        return response

    return Response({
        'status_code': status.HTTP_500_INTERNAL_SERVER_ERROR,
        'code': 'server_error',
        'errors': 'Internal server error',
        'message': str(exc)
    }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

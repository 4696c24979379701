"""
Domain error vocabulary.

Each failure the core can detect is an APIException subclass carrying its
HTTP status class, so engines raise and views never translate by hand.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger("storehub.api")


class StoreHubError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Internal server error'
    default_code = 'unexpected'


class Unauthenticated(StoreHubError):
    """No verified principal on a request that needs one."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Unauthorized'
    default_code = 'unauthenticated'


class AuthorizationDenied(StoreHubError):
    """Valid principal, insufficient role or foreign store. Never names the other store's data."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Forbidden'
    default_code = 'forbidden'


class ValidationFailed(StoreHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid data'
    default_code = 'validation_failed'


class ConfigurationInvalid(StoreHubError):
    """The principal's account lacks the store binding its role requires."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This user is not associated with a store.'
    default_code = 'configuration_invalid'


class ResourceNotFound(StoreHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found'
    default_code = 'not_found'


class ConflictDetected(StoreHubError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'


def api_exception_handler(exc, context):
    """
    Render every failure as {"error": ...}.
    Serializer errors keep their field details; anything DRF does not know is
    logged with the view context and answered with an opaque 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else 'unknown view', exc_info=exc
        )
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.ValidationError):
        response.data = {'error': 'Invalid data', 'details': response.data}
    elif isinstance(exc, exceptions.APIException):
        response.data = {'error': str(exc.detail)}
    else:
        # Http404 and PermissionDenied, already given a status by DRF.
        response.data = {'error': str(response.data.get('detail', response.status_text))}

    return response

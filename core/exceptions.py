"""
Error taxonomy shared by the negotiation and contract apps.

Service functions raise these plain exceptions; ``envelope_exception_handler``
turns them (and every DRF exception) into the JSON envelope
``{"success": false, "message": ..., "code": ...}``.
"""
import logging

from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'ERROR'
    default_message = 'Request failed'

    def __init__(self, message=None, code=None, errors=None):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.errors = errors
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'
    default_message = 'Validation failed'


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'FORBIDDEN'
    default_message = 'You are not allowed to perform this action'


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'Not found'


class RecordNotFound(NotFound):
    code = 'NEGOTIATION_NOT_FOUND'
    default_message = 'Negotiation record not found'


class ContractNotFound(NotFound):
    code = 'CONTRACT_NOT_FOUND'
    default_message = 'Contract not found'


class InvalidTransition(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'INVALID_TRANSITION'
    default_message = 'This action is not allowed in the current state'


class AlreadyContracted(MarketplaceError):
    """Lost the race to create the contract; re-read instead of failing."""
    status_code = status.HTTP_409_CONFLICT
    code = 'ALREADY_CONTRACTED'
    default_message = 'A contract already exists for this negotiation'


class AlreadySubmitted(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'FEEDBACK_ALREADY_SUBMITTED'
    default_message = 'You have already submitted feedback for this contract'


class NotCompleted(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'CONTRACT_NOT_COMPLETED'
    default_message = 'Feedback can only be submitted for completed contracts'


def error_response(message, code, status_code, errors=None):
    body = {'success': False, 'message': message, 'code': code}
    if errors:
        body['errors'] = errors
    return Response(body, status=status_code)


# DRF exception classes mapped to envelope codes.
_DRF_CODES = {
    drf_exceptions.NotAuthenticated: 'NOT_AUTHENTICATED',
    drf_exceptions.AuthenticationFailed: 'AUTHENTICATION_FAILED',
    drf_exceptions.PermissionDenied: 'FORBIDDEN',
    drf_exceptions.NotFound: 'NOT_FOUND',
    drf_exceptions.MethodNotAllowed: 'METHOD_NOT_ALLOWED',
    drf_exceptions.Throttled: 'RATE_LIMIT_EXCEEDED',
    drf_exceptions.ParseError: 'PARSE_ERROR',
    drf_exceptions.ValidationError: 'VALIDATION_ERROR',
}


def envelope_exception_handler(exc, context):
    if isinstance(exc, MarketplaceError):
        view = context.get('view')
        logger.info(
            f"{exc.code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        return error_response(exc.message, exc.code, exc.status_code, exc.errors)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        # Unhandled errors bubble up to Django (500 page / test failure).
        return None

    code = next(
        (c for klass, c in _DRF_CODES.items() if isinstance(exc, klass)),
        'ERROR',
    )
    if isinstance(exc, drf_exceptions.ValidationError):
        return error_response('Validation failed', code, response.status_code, response.data)

    detail = response.data.get('detail') if isinstance(response.data, dict) else None
    response.data = {
        'success': False,
        'message': str(detail or exc),
        'code': code,
    }
    return response

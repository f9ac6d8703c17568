"""
Project-wide DRF exception handler.

DRF already maps its own exceptions (ValidationError -> 400, NotAuthenticated
-> 401, PermissionDenied -> 403, Http404 -> 404). On top of that:

- IntegrityError  -> 400 {"detail": ...}
- ProtectedError  -> 400 {"detail": ...}
- anything else   -> logged with traceback, reported to Sentry,
                     500 {"detail": "Internal server error"} (re-raised when DEBUG)
"""
import logging

from django.conf import settings
from django.db import IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from school_panel.sentry_config import capture_exception

logger = logging.getLogger(__name__)


def _view_name(context):
    view = context.get('view')
    return type(view).__name__ if view is not None else 'unknown'


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, ProtectedError):
        logger.warning(f'Protected delete refused in {_view_name(context)}: {exc}')
        return Response(
            {'detail': 'This record is referenced by other records and cannot be deleted.'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, IntegrityError):
        logger.warning(f'Integrity error in {_view_name(context)}: {exc}')
        return Response(
            {'detail': 'The request conflicts with existing data.'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if settings.DEBUG:
        return None

    logger.exception(f'Unhandled error in {_view_name(context)}: {exc}')
    capture_exception(exc, extra={'view': _view_name(context)})
    return Response({'detail': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

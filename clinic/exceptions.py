from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

from clinic.logging_config import get_logger

logger = get_logger(__name__)


class BookingError(ValueError):
    """The requested slot cannot be booked (past date, unknown or taken slot)."""


class TransitionError(Exception):
    """An appointment status change that the lifecycle does not allow."""


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled_api_error', view=type(context.get('view')).__name__)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)

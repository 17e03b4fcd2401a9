# common/exceptions.py
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Помилка сервера"


def _error_text(data):
    if isinstance(data, dict):
        if "error" in data:
            return str(data["error"])
        if "detail" in data:
            return str(data["detail"])
        for key, value in data.items():
            return f"{key}: {_error_text(value)}"
    if isinstance(data, (list, tuple)) and data:
        return _error_text(data[0])
    return str(data)


def api_exception_handler(exc, context):
    """
    DRF exception handler: every error body carries an "error" string.
    Anything DRF does not recognise becomes a logged 500.
    """
    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(response.data, dict):
            response.data.setdefault("error", _error_text(response.data))
        else:
            response.data = {"error": _error_text(response.data), "detail": response.data}
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", type(view).__name__ if view else "view")
    set_rollback()
    payload = {"error": SERVER_ERROR_MESSAGE}
    if settings.DEBUG:
        payload["detail"] = str(exc)
    return Response(payload, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

# app/common/exceptions.py
import logging

from rest_framework import status
from rest_framework.exceptions import ParseError, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from app.common.errors import TransientDependencyError

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str) -> dict:
    return {
        "success": False,
        "data": None,
        "error": {"code": code, "message": message},
    }


def custom_exception_handler(exc, context):
    if isinstance(exc, TransientDependencyError):
        view = context.get("view")
        logger.warning(
            "dependency failure in %s: %s",
            view.__class__.__name__ if view else "?",
            exc,
        )
        return Response(
            _envelope(exc.code, str(exc)),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(exc, ParseError):
        response.data = _envelope("INVALID_BODY", "Malformed request body")
    elif isinstance(exc, ValidationError):
        response.data = _envelope("VALIDATION_ERROR", str(exc.detail))

    return response

"""
API exception handling.

Order engine errors become ``{"error", "errorCode", "details"}`` responses;
DRF's own errors are reshaped the same way so clients parse one format.
"""
import logging

from django.core.exceptions import ImproperlyConfigured
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from orders.exceptions import (
    IncompatibleMerge,
    InvalidTransition,
    NotFound,
    OrderEngineError,
    StaleState,
)

logger = logging.getLogger(__name__)

STATUS_FOR_ERROR = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    StaleState: status.HTTP_409_CONFLICT,
    IncompatibleMerge: status.HTTP_409_CONFLICT,
}


def status_for(exc: OrderEngineError) -> int:
    for error_class, code in STATUS_FOR_ERROR.items():
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def api_exception_handler(exc, context):
    if isinstance(exc, OrderEngineError):
        request = context.get("request")
        logger.info(
            f"Order API error {exc.error_code} on "
            f"{getattr(request, 'method', '?')} {getattr(request, 'path', '?')}: {exc.message}"
        )
        return Response(
            {"error": exc.message, "errorCode": exc.error_code, "details": exc.details},
            status=status_for(exc),
        )

    if isinstance(exc, ImproperlyConfigured):
        logger.error(f"Order API misconfiguration: {exc}")
        return Response(
            {"error": str(exc), "errorCode": "IMPROPERLY_CONFIGURED", "details": {}},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Call the default exception handler first
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, DRFValidationError):
        response.data = {
            "error": "Invalid request data",
            "errorCode": "VALIDATION_ERROR",
            "details": response.data,
        }
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else response.data
        codes = exc.get_codes() if hasattr(exc, "get_codes") else None
        response.data = {
            "error": str(detail),
            "errorCode": str(codes).upper() if isinstance(codes, str) else "API_ERROR",
            "details": {},
        }
    return response

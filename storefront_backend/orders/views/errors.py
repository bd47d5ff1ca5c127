# orders/views/errors.py

from rest_framework import status
from rest_framework.response import Response

from orders.services.action_result import ActionResult, ActionStatus


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int):
    """
    Canonical API error response.
    """
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


_RESULT_HTTP = {
    ActionStatus.VALIDATION_ERROR: ("VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST),
    ActionStatus.PERMISSION_ERROR: ("TRANSITION_NOT_ALLOWED", status.HTTP_409_CONFLICT),
    ActionStatus.NOT_FOUND: ("NOT_FOUND", status.HTTP_404_NOT_FOUND),
    ActionStatus.GATEWAY_ERROR: ("PAYMENT_GATEWAY_ERROR", status.HTTP_502_BAD_GATEWAY),
}


def result_response(result: ActionResult, *, success_status: int = status.HTTP_200_OK):
    """
    Translate a service ActionResult into an HTTP response.

    SUCCESS -> {"message": ..., **data}
    failure -> canonical error envelope
    """
    if result.ok:
        return Response({"message": result.message, **result.data}, status=success_status)

    code, http_status = _RESULT_HTTP.get(
        result.status, ("ERROR", status.HTTP_400_BAD_REQUEST)
    )
    return error_response(code=code, message=result.message, http_status=http_status)

# orders/services/action_result.py

"""
SERVICE EDGE RESULT

Business-rule failures never escape a service edge as exceptions. Each public
service operation returns an ActionResult; views translate it into the API
error envelope (see orders/views/errors.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class ActionStatus:
    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    GATEWAY_ERROR = "GATEWAY_ERROR"


@dataclass(frozen=True)
class ActionResult:
    status: str
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ActionStatus.SUCCESS

    @classmethod
    def success(cls, message: str = "", **data) -> "ActionResult":
        return cls(ActionStatus.SUCCESS, message, data)

    @classmethod
    def validation_error(cls, message: str, **data) -> "ActionResult":
        return cls(ActionStatus.VALIDATION_ERROR, message, data)

    @classmethod
    def permission_error(cls, message: str, **data) -> "ActionResult":
        return cls(ActionStatus.PERMISSION_ERROR, message, data)

    @classmethod
    def not_found(cls, message: str = "Not found") -> "ActionResult":
        return cls(ActionStatus.NOT_FOUND, message)

    @classmethod
    def gateway_error(cls, message: str, **data) -> "ActionResult":
        return cls(ActionStatus.GATEWAY_ERROR, message, data)


class OrderServiceError(Exception):
    """
    Base class for domain errors raised inside order/refund services.

    `result_status` tells the service edge which ActionResult to produce.
    """

    result_status = ActionStatus.VALIDATION_ERROR

    def to_result(self, **data) -> ActionResult:
        return ActionResult(self.result_status, str(self), data)


class OrderNotFoundError(OrderServiceError):
    result_status = ActionStatus.NOT_FOUND


class OrderTransitionError(OrderServiceError):
    """A transition was attempted from a state whose permission predicate is false."""

    result_status = ActionStatus.PERMISSION_ERROR


def first_message(exc) -> str:
    """Flatten a Django ValidationError (or anything else) to one readable line."""
    messages: Optional[list] = getattr(exc, "messages", None)
    if messages:
        return str(messages[0])
    return str(exc)

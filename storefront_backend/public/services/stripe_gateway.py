# public/services/stripe_gateway.py

"""
STRIPE GATEWAY CLIENT

Thin urllib client over the Stripe REST API. Only the calls the order core needs:

- retrieve_checkout_session(session_id)
- create_checkout_session(...)
- create_refund(payment_intent_id, amount, idempotency_key)
- retrieve_refund(refund_id)
- verify_webhook_signature(payload, header)

Rules:
- Every call has a bounded timeout (PAYMENTS["STRIPE"]["TIMEOUT_SECONDS"]).
- Nothing here retries. Callers decide; monetary POSTs carry an Idempotency-Key.
- Failures raise PaymentGatewayError carrying the gateway's own message.
- A failure whose outcome is unknown (network error, timeout, 5xx) is flagged
  outcome_unknown: the gateway may have acted on the request anyway.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from django.conf import settings

DEFAULT_API_BASE = "https://api.stripe.com"


class PaymentGatewayError(RuntimeError):
    """Network failure, gateway rejection, or unreadable gateway response."""

    def __init__(
        self,
        message: str,
        *,
        http_status: Optional[int] = None,
        code: str = "",
        outcome_unknown: bool = False,
    ):
        super().__init__(message)
        self.http_status = http_status
        self.code = code
        self.outcome_unknown = bool(outcome_unknown) or (
            http_status is not None and http_status >= 500
        )


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    status: str  # open | complete | expired
    payment_status: str  # paid | unpaid | no_payment_required
    payment_intent: str = ""
    url: str = ""
    amount_total: Optional[int] = None
    currency: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CheckoutSession":
        intent = data.get("payment_intent") or ""
        if isinstance(intent, dict):
            intent = intent.get("id") or ""
        return cls(
            id=str(data.get("id") or ""),
            status=str(data.get("status") or "").lower(),
            payment_status=str(data.get("payment_status") or "").lower(),
            payment_intent=str(intent),
            url=str(data.get("url") or ""),
            amount_total=data.get("amount_total"),
            currency=str(data.get("currency") or ""),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    status: str  # pending | succeeded | failed | canceled | requires_action
    amount: int
    failure_reason: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GatewayRefund":
        return cls(
            id=str(data.get("id") or ""),
            status=str(data.get("status") or "").lower(),
            amount=int(data.get("amount") or 0),
            failure_reason=str(data.get("failure_reason") or ""),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def failed(self) -> bool:
        return self.status in REFUND_FAILED_STATUSES


REFUND_FAILED_STATUSES = {"failed", "canceled"}


def _stripe_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("STRIPE") if isinstance(payments, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _get_secret_key() -> str:
    sk = (_stripe_cfg().get("SECRET_KEY") or "").strip()
    if not sk:
        raise PaymentGatewayError(
            "STRIPE SECRET_KEY is not configured. "
            "Expected settings.PAYMENTS['STRIPE']['SECRET_KEY']."
        )
    return sk


def _timeout() -> int:
    return int(_stripe_cfg().get("TIMEOUT_SECONDS") or 20)


def _api_base() -> str:
    return (_stripe_cfg().get("API_BASE") or DEFAULT_API_BASE).rstrip("/")


def _flatten(params: dict, prefix: str = "") -> list[tuple[str, str]]:
    """Stripe form encoding: nested dicts/lists become key[sub][0]=value."""
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(_flatten(value, name))
        elif isinstance(value, (list, tuple)):
            for i, entry in enumerate(value):
                if isinstance(entry, dict):
                    pairs.extend(_flatten(entry, f"{name}[{i}]"))
                else:
                    pairs.append((f"{name}[{i}]", str(entry)))
        elif isinstance(value, bool):
            pairs.append((name, "true" if value else "false"))
        else:
            pairs.append((name, str(value)))
    return pairs


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _request_json(
    method: str,
    path: str,
    *,
    params: Optional[dict] = None,
    idempotency_key: str = "",
) -> dict[str, Any]:
    sk = _get_secret_key()
    url = f"{_api_base()}{path}"

    data = None
    if params and method == "GET":
        url = f"{url}?{urlencode(_flatten(params))}"
    elif params is not None:
        data = urlencode(_flatten(params)).encode("utf-8")

    headers = {
        "Authorization": f"Bearer {sk}",
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key

    req = Request(url, data=data, headers=headers, method=method)

    try:
        with urlopen(req, timeout=_timeout()) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        raw = ""
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except OSError:
            raw = ""
        try:
            err = (json.loads(raw) or {}).get("error") or {}
        except ValueError:
            err = {}
        msg = err.get("message") or _safe_preview(raw) or str(e)
        raise PaymentGatewayError(msg, http_status=e.code, code=str(err.get("code") or "")) from e
    except URLError as e:
        raise PaymentGatewayError(f"Stripe unreachable: {e.reason}", outcome_unknown=True) from e
    except TimeoutError as e:
        raise PaymentGatewayError("Stripe request timed out", outcome_unknown=True) from e

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise PaymentGatewayError(
            f"Stripe returned non-JSON: {_safe_preview(raw)}", outcome_unknown=True
        ) from e

    if not isinstance(parsed, dict):
        raise PaymentGatewayError("Stripe returned an unexpected payload", outcome_unknown=True)
    return parsed


# =========================================================
# Checkout sessions
# =========================================================
def retrieve_checkout_session(session_id: str) -> CheckoutSession:
    sid = str(session_id or "").strip()
    if not sid:
        raise PaymentGatewayError("session_id is required")
    data = _request_json("GET", f"/v1/checkout/sessions/{quote(sid, safe='')}")
    return CheckoutSession.from_api(data)


def create_checkout_session(
    *,
    order,
    success_url: str,
    cancel_url: str,
) -> CheckoutSession:
    """
    Hosted checkout for an order. Line items are sent with inline price data
    so the gateway total always equals the server-computed order total.
    """
    currency = (order.currency or _stripe_cfg().get("CURRENCY") or "eur").lower()

    line_items = [
        {
            "quantity": int(item.quantity),
            "price_data": {
                "currency": currency,
                "unit_amount": int(item.unit_price),
                "product_data": {"name": item.product_title},
            },
        }
        for item in order.items.all()
    ]
    if int(order.shipping_cost) > 0:
        line_items.append(
            {
                "quantity": 1,
                "price_data": {
                    "currency": currency,
                    "unit_amount": int(order.shipping_cost),
                    "product_data": {"name": "Shipping"},
                },
            }
        )

    metadata = {"order_id": str(order.id), "order_number": order.order_number}
    params = {
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "customer_email": order.customer_email or None,
        "client_reference_id": str(order.id),
        "line_items": line_items,
        "metadata": metadata,
        "payment_intent_data": {"metadata": metadata},
    }

    data = _request_json(
        "POST",
        "/v1/checkout/sessions",
        params=params,
        idempotency_key=f"checkout_{order.id}",
    )
    return CheckoutSession.from_api(data)


# =========================================================
# Refunds
# =========================================================
def create_refund(
    *,
    payment_intent_id: str,
    amount: int,
    idempotency_key: str,
    metadata: Optional[dict] = None,
) -> GatewayRefund:
    if not (payment_intent_id or "").strip():
        raise PaymentGatewayError("payment_intent_id is required")
    if int(amount) <= 0:
        raise PaymentGatewayError("refund amount must be greater than zero")

    data = _request_json(
        "POST",
        "/v1/refunds",
        params={
            "payment_intent": payment_intent_id,
            "amount": int(amount),
            "metadata": metadata or None,
        },
        idempotency_key=idempotency_key,
    )

    refund = GatewayRefund.from_api(data)
    if not refund.id:
        raise PaymentGatewayError("Stripe refund response has no id", outcome_unknown=True)
    if refund.failed:
        raise PaymentGatewayError(
            f"Stripe refund {refund.status}: {refund.failure_reason or refund.status}",
            code="refund_failed",
        )
    # "pending" / "requires_action" are returned as-is: the refund is not final yet
    return refund


def retrieve_refund(refund_id: str) -> GatewayRefund:
    rid = str(refund_id or "").strip()
    if not rid:
        raise PaymentGatewayError("refund_id is required")
    refund = GatewayRefund.from_api(_request_json("GET", f"/v1/refunds/{quote(rid, safe='')}"))
    if not refund.id:
        raise PaymentGatewayError("Stripe refund response has no id", outcome_unknown=True)
    return refund


# =========================================================
# Webhooks
# =========================================================
def _parse_signature_header(header: str) -> tuple[Optional[int], list[str]]:
    timestamp = None
    signatures: list[str] = []
    for part in str(header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                timestamp = None
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_webhook_signature(*, payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + (payload or b"")
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    *, payload: bytes, header: Optional[str], now: Optional[int] = None
) -> bool:
    secret = (_stripe_cfg().get("WEBHOOK_SECRET") or "").strip()
    if not secret or not header:
        return False

    timestamp, signatures = _parse_signature_header(header)
    if timestamp is None or not signatures:
        return False

    tolerance = int(_stripe_cfg().get("WEBHOOK_TOLERANCE_SECONDS") or 300)
    current = int(now if now is not None else time.time())
    if abs(current - timestamp) > tolerance:
        return False

    expected = compute_webhook_signature(payload=payload, timestamp=timestamp, secret=secret)
    return any(hmac.compare_digest(expected, sig) for sig in signatures)

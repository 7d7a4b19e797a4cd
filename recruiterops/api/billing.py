"""
Billing API routes.

Minimal surface:
- POST /api/billing/webhook: Gumroad sale/refund/cancellation pings
- POST /api/billing/confirm-subscription: claim a staged purchase after signup

The webhook answers in Gumroad's terms: any non-2xx makes Gumroad retry, so
only failures after the raw delivery is logged return 500.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from recruiterops.api.deps import Services, get_services
from recruiterops.core.errors import ValidationError
from recruiterops.features.billing.provider import BillingWebhookError
from recruiterops.features.billing.reconciler import SellerMismatchError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


class ConfirmSubscriptionRequest(BaseModel):
    """Sent by the signup flow right after an account is created."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


class ConfirmSubscriptionResponse(BaseModel):
    activated: bool
    plan: Optional[str] = None


@router.post("/webhook")
async def handle_webhook(request: Request, services: Services = Depends(get_services)):
    """
    Handle Gumroad webhook deliveries (form-encoded).

    Returns:
        200 {"success": true, "status": <derived status>}
        200 {"success": true, "note": "ping_logged"} for pings

    Errors:
        400: Unreadable body (not logged) or unparseable form (logged); nothing mutated
        401: Seller id mismatch (plain text)
        500: {"error": <message>} so Gumroad retries
    """
    try:
        body = await request.body()
    except Exception as e:
        logger.warning(f"Unreadable webhook body: {e}")
        return JSONResponse(status_code=400, content={"error": "Malformed webhook body"})

    raw = body.decode("utf-8", errors="replace")
    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Webhook body is not valid form data: {e}")
        services.audit.record_webhook(alert_type=None, email=None, sale_id=None, raw_payload=raw)
        return JSONResponse(status_code=400, content={"error": "Malformed webhook body"})

    try:
        result = services.reconciler.handle(form, raw)
    except SellerMismatchError:
        return PlainTextResponse("Unauthorized", status_code=401)
    except BillingWebhookError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.error("Webhook error", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Internal server error"})

    if result.action == "ping":
        return {"success": True, "note": "ping_logged"}
    payload = {"success": True, "status": result.status}
    if result.action == "stale":
        payload["note"] = "stale_event_ignored"
    return payload


@router.post("/confirm-subscription", response_model=ConfirmSubscriptionResponse, response_model_exclude_none=True)
async def confirm_subscription(
    request: ConfirmSubscriptionRequest,
    services: Services = Depends(get_services),
):
    """
    Claim a pending purchase for a freshly registered account.

    Returns:
        {"activated": false} when nothing is pending (the normal case)
        {"activated": true, "plan": "..."} when a purchase was claimed

    Errors:
        400: email or userId missing
        409: account exists with a different email
        500: store failure
    """
    if not request.email or not request.user_id:
        raise ValidationError("Missing email or userId")

    result = services.claims.claim(request.user_id, request.email)
    return ConfirmSubscriptionResponse(activated=result.activated, plan=result.plan)

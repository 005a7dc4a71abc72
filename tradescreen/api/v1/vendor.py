from fastapi import APIRouter, Depends, HTTPException, Request, status

from tradescreen.api.errors import screening_errors
from tradescreen.core.rate_limit import rate_limit
from tradescreen.core.security import require_api_key
from tradescreen.schemas.requests import VendorAssessRequest, VendorAssessResponse, VendorWebhookRequest
from tradescreen.services import VendorService, get_vendor_service

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/vendor/webhook", response_model=VendorAssessResponse)
@rate_limit()
def vendor_webhook(
    request: Request,
    payload: VendorWebhookRequest,
    service: VendorService = Depends(get_vendor_service),
):
    _ = request
    call_id = payload.resolved_call_id
    if not call_id:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Webhook payload has no call id.")
    with screening_errors():
        return service.process_webhook(call_id)


@router.post("/vendor/assess", response_model=VendorAssessResponse)
@rate_limit()
def vendor_fetch_and_assess(
    request: Request,
    payload: VendorAssessRequest,
    service: VendorService = Depends(get_vendor_service),
):
    _ = request
    with screening_errors():
        return service.fetch_and_assess(payload.session_id, payload.call_id)

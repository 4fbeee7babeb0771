"""
Custom order API — the storefront's "Add to Cart" for cut-to-size products.

POST /api/custom-add-to-cart — price, create a one-off variant, add it to the cart

The shopping session is the cart id. It comes in through the cart cookie and
goes back out through Set-Cookie on success only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..cart import CartAttachmentService, cart_id_from_token
from ..config import settings
from ..database import get_db
from ..orchestrator import CustomOrderOrchestrator
from ..provisioning import VariantProvisioningService
from ..shopify import ShopifyGraphQLClient, get_admin_client, get_storefront_client

router = APIRouter(tags=["custom-order"])


def get_orchestrator(
    db: Session = Depends(get_db),
    admin: ShopifyGraphQLClient = Depends(get_admin_client),
    storefront: ShopifyGraphQLClient = Depends(get_storefront_client),
) -> CustomOrderOrchestrator:
    return CustomOrderOrchestrator(
        provisioning=VariantProvisioningService(admin, db=db),
        cart=CartAttachmentService(storefront),
    )


@router.post("/custom-add-to-cart")
async def custom_add_to_cart(
    request: Request,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    orchestrator: CustomOrderOrchestrator = Depends(get_orchestrator),
):
    """
    Runs the whole pipeline for one form submission.

    Success → 200 {status, variantCreation, cartOperation} + cart cookie
    Failure → 500 {status, error, timestamp}, no cookie
    """
    form = await request.form()
    cart_id = cart_id_from_token(request.cookies.get(settings.CART_COOKIE_NAME))

    # Remote calls block
    result = await run_in_threadpool(
        orchestrator.submit, dict(form), cart_id, idempotency_key)

    response = JSONResponse(result.body, status_code=result.http_status)
    if result.ok and result.session_token:
        response.set_cookie(
            settings.CART_COOKIE_NAME,
            result.session_token,
            httponly=True,
            samesite="lax",
            path="/",
        )
    return response

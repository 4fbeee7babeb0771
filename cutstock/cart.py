"""
Cart attachment — adds the freshly created variant as one cart line.

The cart lives in the Storefront API. The session is bound by the cart id,
which travels as explicit context: in through the caller's cart token, out
through the returned CartAttachment so the router can set the session header.

A failure here means a variant exists with no cart line referencing it; it is
raised as CartAttachmentError carrying that variant id.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import settings
from .errors import BusinessRejectionError, CartAttachmentError, TransportError
from .models import FormType
from .shopify import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

CART_GID_PREFIX = "gid://shopify/Cart/"

CART_SUMMARY_FRAGMENT = """
fragment CartSummary on Cart {
  id
  checkoutUrl
  totalQuantity
  cost {
    totalAmount {
      amount
      currencyCode
    }
  }
  lines(first: 100) {
    nodes {
      id
      quantity
      merchandise {
        ... on ProductVariant {
          id
          title
        }
      }
      attributes {
        key
        value
      }
    }
  }
}
"""

CART_LINES_ADD_MUTATION = """
mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {
  cartLinesAdd(cartId: $cartId, lines: $lines) {
    cart {
      ...CartSummary
    }
    userErrors {
      field
      message
      code
    }
  }
}
""" + CART_SUMMARY_FRAGMENT

CART_CREATE_MUTATION = """
mutation cartCreate($input: CartInput!) {
  cartCreate(input: $input) {
    cart {
      ...CartSummary
    }
    userErrors {
      field
      message
      code
    }
  }
}
""" + CART_SUMMARY_FRAGMENT


def cart_token_from_id(cart_id: str) -> str:
    """'gid://shopify/Cart/abc?key=x' → 'abc?key=x' — the value stored in the session cookie."""
    return cart_id.split("/")[-1] if cart_id else ""


def cart_id_from_token(token: Optional[str]) -> Optional[str]:
    """Inverse of cart_token_from_id. Returns None for an empty token."""
    if not token:
        return None
    if token.startswith(CART_GID_PREFIX):
        return token
    return CART_GID_PREFIX + token


def build_line_attributes(order) -> List[dict]:
    """
    Ordered human-readable attributes for the cart line.

    Thickness (Sheet/Film) or Diameter (Rod), Length in both units, Width in
    both units when the form type has one, Precision when selected,
    Instructions when non-empty.
    """
    form_type = FormType(order.form_type)
    attributes = []

    if form_type in (FormType.SHEET, FormType.FILM):
        attributes.append({"key": "Thickness", "value": f"{order.thickness}"})
    elif form_type == FormType.ROD:
        attributes.append({"key": "Diameter", "value": f"{order.diameter}"})

    if form_type == FormType.FILM:
        attributes.append({
            "key": "Length",
            "value": f"{order.length_m}m ({order.length_yard}yard)",
        })
    else:
        attributes.append({
            "key": "Length",
            "value": f"{order.length_mm}mm ({order.length_inch}\")",
        })

    if form_type != FormType.ROD and order.width_mm:
        attributes.append({
            "key": "Width",
            "value": f"{order.width_mm}mm ({order.width_inch}\")",
        })

    if order.precision:
        attributes.append({"key": "Precision", "value": order.precision})

    instructions = (order.instructions or "").strip()
    if instructions:
        attributes.append({"key": "Instructions", "value": instructions})

    return attributes


@dataclass
class CartAttachment:
    cart_id: str
    cart: dict = field(default_factory=dict)
    payload: dict = field(default_factory=dict)

    @property
    def session_token(self) -> str:
        return cart_token_from_id(self.cart_id)


class CartAttachmentService:
    """Adds one custom line to the buyer's Storefront cart."""

    def __init__(self, client: ShopifyGraphQLClient, max_attempts: Optional[int] = None):
        self.client = client
        self.max_attempts = max(1, max_attempts if max_attempts is not None
                                else settings.CART_ATTACH_MAX_ATTEMPTS)

    def attach(self, variant_id: str, order, cart_id: Optional[str] = None) -> CartAttachment:
        """
        Add variant_id × order.quantity with the order's attributes.
        Creates a cart when the session has none yet.
        Raises CartAttachmentError.
        """
        line = {
            "merchandiseId": variant_id,
            "quantity": int(order.quantity) or 1,
            "attributes": build_line_attributes(order),
        }

        attempt = 0
        while True:
            attempt += 1
            try:
                return self._add_line(line, cart_id)
            except TransportError as e:
                # cartCreate and cartLinesAdd are not idempotent; only a request that
                # never reached the platform is safe to send again
                if attempt < self.max_attempts and not e.request_sent:
                    logger.warning("Cart attachment attempt %d/%d failed: %s, retrying",
                                   attempt, self.max_attempts, e.message)
                    continue
                logger.error("Cart attachment transport failure for %s: %s", variant_id, e.message)
                raise CartAttachmentError(
                    f"Cart operation failed: {e.message}", variant_id=variant_id) from e
            except BusinessRejectionError as e:
                logger.error("Cart attachment rejected for %s: %s", variant_id, e.user_errors)
                raise CartAttachmentError(
                    f"Cart operation failed: {e.message}", variant_id=variant_id) from e

    def _add_line(self, line: dict, cart_id: Optional[str]) -> CartAttachment:
        if cart_id:
            data = self.client.execute(CART_LINES_ADD_MUTATION, {"cartId": cart_id, "lines": [line]})
            payload = data.get("cartLinesAdd") or {}
        else:
            data = self.client.execute(CART_CREATE_MUTATION, {"input": {"lines": [line]}})
            payload = data.get("cartCreate") or {}

        user_errors = payload.get("userErrors") or []
        if user_errors:
            raise BusinessRejectionError(
                "; ".join(e.get("message", "") for e in user_errors), user_errors=user_errors)
        cart = payload.get("cart")
        if not cart or not cart.get("id"):
            raise BusinessRejectionError("Platform returned no cart")

        logger.info("Added %s × %s to cart %s", line["merchandiseId"], line["quantity"], cart["id"])
        return CartAttachment(cart_id=cart["id"], cart=cart, payload=payload)

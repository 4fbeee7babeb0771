"""
Variant provisioning — one uniquely titled, priced and weighed variant per order.

Exactly one productVariantsBulkCreate per invocation. Creation is not
idempotent on the platform side, so nothing here retries it. Resubmissions
are deduplicated through the provisioning ledger when the caller supplies an
idempotency key.

Failure classes are kept apart for logging:
- transport           — the request never completed (network, non-2xx)
- business_rejection  — the request completed but returned userErrors
Both surface to the caller as VariantCreationError.
"""

import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .errors import (
    BusinessRejectionError,
    LedgerError,
    TransportError,
    ValidationError,
    VariantCreationError,
)
from .pricing.base import PricingPolicy
from .shopify import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

CREATE_VARIANT_MUTATION = """
mutation productVariantsBulkCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkCreate(productId: $productId, variants: $variants) {
    userErrors {
      field
      message
    }
    productVariants {
      id
      title
      selectedOptions {
        name
        value
      }
    }
  }
}
"""

DELETE_VARIANTS_MUTATION = """
mutation productVariantsBulkDelete($productId: ID!, $variantsIds: [ID!]!) {
  productVariantsBulkDelete(productId: $productId, variantsIds: $variantsIds) {
    product {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

OPTION_NAME = "Title"
DISCRIMINATOR_SUFFIX_LENGTH = 5
_BASE36 = string.digits + string.ascii_lowercase


def generate_discriminator(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """'<epoch ms>-<5 random base36 chars>' — unique with high probability, not guaranteed."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_BASE36) for _ in range(DISCRIMINATOR_SUFFIX_LENGTH))
    return f"{now_ms}-{suffix}"


@dataclass
class ProvisionResult:
    variant_id: str
    title: str
    created: bool                     # False when an idempotent replay returned a stored variant
    payload: dict = field(default_factory=dict)
    record: Optional[models.ProvisionedVariant] = None


class VariantProvisioningService:
    """Creates make-to-order variants through the Shopify Admin API."""

    def __init__(
        self,
        client: ShopifyGraphQLClient,
        db: Optional[Session] = None,
        stock_quantity: Optional[int] = None,
        location_id: Optional[str] = None,
        policy: Optional[PricingPolicy] = None,
    ):
        self.client = client
        self.db = db
        self.stock_quantity = stock_quantity if stock_quantity is not None else settings.VARIANT_STOCK_QUANTITY
        self.location_id = location_id or settings.SHOPIFY_LOCATION_ID
        self.policy = policy or PricingPolicy.from_settings()

    def build_variables(self, product_id: str, price: float, weight: float, discriminator: str) -> dict:
        return {
            "productId": product_id,
            "variants": [
                {
                    "price": "%.*f" % (self.policy.price_decimals, self.policy.round_price(price)),
                    "optionValues": [{"optionName": OPTION_NAME, "name": discriminator}],
                    "inventoryQuantities": {
                        "availableQuantity": self.stock_quantity,
                        "locationId": self.location_id,
                    },
                    "inventoryItem": {
                        "measurement": {
                            "weight": {
                                "value": self.policy.round_weight(weight),
                                "unit": "KILOGRAMS",
                            }
                        }
                    },
                }
            ],
        }

    def provision(
        self,
        product_id: str,
        price: float,
        weight: float,
        discriminator: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProvisionResult:
        """
        Create one variant and return its id.
        Raises VariantCreationError; failure_kind tells transport from business rejection.
        Raises ValidationError when the idempotency key belongs to a different order,
        LedgerError when the created variant could not be recorded.
        """
        existing = self.find_by_key(idempotency_key) if idempotency_key else None
        if existing is not None:
            self.check_same_order(existing, product_id, price)
        if existing is not None and existing.status != models.VariantStatus.DELETED.value:
            logger.info("Idempotent replay for key %s, reusing variant %s",
                        idempotency_key, existing.variant_id)
            return ProvisionResult(
                variant_id=existing.variant_id,
                title=existing.title,
                created=False,
                payload={"productVariantsBulkCreate": {
                    "userErrors": [],
                    "productVariants": [{
                        "id": existing.variant_id,
                        "title": existing.title,
                        "selectedOptions": [{"name": OPTION_NAME, "value": existing.title}],
                    }],
                }},
                record=existing,
            )

        discriminator = discriminator or generate_discriminator()
        variables = self.build_variables(product_id, price, weight, discriminator)

        try:
            data = self.client.execute(CREATE_VARIANT_MUTATION, variables)
            payload = self._check_payload(data)
        except TransportError as e:
            logger.error("Variant creation transport failure for %s: %s", product_id, e.message)
            raise VariantCreationError(
                f"Failed to create variant: {e.message}",
                failure_kind=VariantCreationError.TRANSPORT,
            ) from e
        except BusinessRejectionError as e:
            logger.error("Variant creation rejected for %s: %s", product_id, e.user_errors)
            raise VariantCreationError(
                f"Failed to create variant: {e.message}",
                failure_kind=VariantCreationError.BUSINESS_REJECTION,
                user_errors=e.user_errors,
            ) from e

        variant = payload["productVariants"][0]
        logger.info("Created variant %s (%s) on %s: price=%.2f weight=%skg",
                    variant["id"], discriminator, product_id, price, weight)

        record = self._record(product_id, variant["id"], discriminator, price, weight,
                              idempotency_key, existing)
        return ProvisionResult(
            variant_id=variant["id"],
            title=variant.get("title") or discriminator,
            created=True,
            payload={"productVariantsBulkCreate": payload},
            record=record,
        )

    def _check_payload(self, data: dict) -> dict:
        payload = data.get("productVariantsBulkCreate") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            messages = "; ".join(
                "%s: %s" % (".".join(str(f) for f in (e.get("field") or [])), e.get("message", ""))
                for e in user_errors
            )
            raise BusinessRejectionError(messages, user_errors=user_errors)
        variants = payload.get("productVariants")
        if not variants:
            raise BusinessRejectionError("Platform returned no variant")
        if not isinstance(variants[0], dict) or not variants[0].get("id"):
            raise BusinessRejectionError("Platform returned a variant without an id")
        return payload

    def check_same_order(self, record: models.ProvisionedVariant, product_id: str, price: float) -> None:
        """A reused idempotency key must describe the same product and price."""
        if record.product_id != product_id:
            raise ValidationError(
                f"Idempotency key {record.idempotency_key} was used for another product",
                field="idempotencyKey")
        if price is not None and record.price != self.policy.round_price(price):
            raise ValidationError(
                f"Idempotency key {record.idempotency_key} was used for a different price "
                f"({record.price:.2f})",
                field="idempotencyKey")

    # --- Ledger ---

    def find_by_key(self, idempotency_key: str) -> Optional[models.ProvisionedVariant]:
        if self.db is None:
            return None
        return self.db.query(models.ProvisionedVariant).filter(
            models.ProvisionedVariant.idempotency_key == idempotency_key
        ).first()

    def _commit(self, action: str, variant_id: Optional[str] = None) -> None:
        """Commit the ledger session. Rolls back and raises LedgerError on failure."""
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Ledger write failed (%s) for variant %s: %s", action, variant_id, e)
            raise LedgerError(
                f"Failed to {action} variant {variant_id}: {e.__class__.__name__}",
                variant_id=variant_id,
            ) from e

    def _record(self, product_id, variant_id, title, price, weight, idempotency_key, record=None):
        if self.db is None:
            return None
        # A deleted variant's row is reused so the idempotency key stays unique
        if record is None:
            record = models.ProvisionedVariant(idempotency_key=idempotency_key)
            self.db.add(record)
        record.product_id = product_id
        record.variant_id = variant_id
        record.title = title
        record.price = self.policy.round_price(price)
        record.weight_kg = self.policy.round_weight(weight)
        record.status = models.VariantStatus.CREATED.value
        record.cart_id = None
        record.last_error = None
        self._commit("record", variant_id)
        self.db.refresh(record)
        return record

    def mark_attached(self, record: Optional[models.ProvisionedVariant], cart_id: str) -> None:
        if self.db is None or record is None:
            return
        record.status = models.VariantStatus.ATTACHED.value
        record.cart_id = cart_id
        record.last_error = None
        self._commit("mark attached", record.variant_id)

    def mark_orphaned(self, record: Optional[models.ProvisionedVariant], error: str) -> None:
        if self.db is None or record is None:
            return
        variant_id = record.variant_id
        record.status = models.VariantStatus.ORPHANED.value
        record.last_error = error
        self._commit("mark orphaned", variant_id)
        logger.warning("Variant %s left without a cart line: %s", variant_id, error)

    def list_orphans(self) -> List[models.ProvisionedVariant]:
        if self.db is None:
            return []
        return self.db.query(models.ProvisionedVariant).filter(
            models.ProvisionedVariant.status == models.VariantStatus.ORPHANED.value
        ).order_by(models.ProvisionedVariant.created_at).all()

    # --- Compensation ---

    def delete_variant(self, record: models.ProvisionedVariant) -> None:
        """
        Remove an orphaned variant from the catalog.
        Raises TransportError, BusinessRejectionError or LedgerError.
        """
        data = self.client.execute(DELETE_VARIANTS_MUTATION, {
            "productId": record.product_id,
            "variantsIds": [record.variant_id],
        })
        payload = data.get("productVariantsBulkDelete") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            raise BusinessRejectionError(
                "; ".join(e.get("message", "") for e in user_errors), user_errors=user_errors)

        logger.info("Deleted orphaned variant %s", record.variant_id)
        if self.db is not None:
            record.status = models.VariantStatus.DELETED.value
            self._commit("mark deleted", record.variant_id)

    def cleanup_orphans(self) -> dict:
        """Delete every orphaned variant. One failure does not stop the rest."""
        deleted = []
        failed = []
        for record in self.list_orphans():
            variant_id = record.variant_id
            try:
                self.delete_variant(record)
                deleted.append(variant_id)
            except (TransportError, BusinessRejectionError) as e:
                logger.warning("Orphan cleanup failed for %s: %s", variant_id, e.message)
                record.last_error = e.message
                self._commit("annotate", variant_id)
                failed.append({"variant_id": variant_id, "error": e.message})
        return {"deleted": deleted, "failed": failed}

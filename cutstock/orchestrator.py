"""
Custom order pipeline — one submission, one linear run.

    Validate → Compute → Provision → Attach → Respond
        \\________\\__________\\_________\\____→ Error

Any stage failure goes straight to the terminal Error state. There are no
backward transitions and no retries of variant creation. A variant created
before a failed cart attachment is marked orphaned in the ledger; it is only
deleted here when COMPENSATE_ORPHANED_VARIANTS is on, otherwise it waits for
the cleanup endpoint.

The pipeline holds no state between runs. The cart id comes in as an
argument and goes out in the result.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as SchemaError

from . import models
from .cart import CartAttachmentService
from .config import settings
from .errors import (
    BusinessRejectionError,
    CartAttachmentError,
    CustomOrderError,
    LedgerError,
    TransportError,
    ValidationError,
)
from .models import FormType, PRECISION_ORDER, PrecisionTier, parse_precision
from .pricing.base import CalculationInput, PricingPolicy
from .pricing.engine import calculate_price_and_weight
from .provisioning import VariantProvisioningService
from .schemas import CustomOrderSubmission
from .unit_converter import (
    FILM_WIDTHS_MM,
    dimension_fields,
    format_value,
    parse_number,
)
from .weights import MM_PER_INCH

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 10000


class PipelineStage(str, enum.Enum):
    VALIDATE = "validate"
    COMPUTE = "compute"
    PROVISION = "provision"
    ATTACH = "attach"
    RESPOND = "respond"
    ERROR = "error"


@dataclass
class PipelineResult:
    status: str
    body: dict
    http_status: int = 200
    session_token: Optional[str] = None
    stage: PipelineStage = PipelineStage.RESPOND
    failed_at: Optional[PipelineStage] = None
    variant_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class ValidatedOrder:
    """A submission after server-side re-derivation of every input."""
    submission: CustomOrderSubmission
    calculation: CalculationInput
    quantity: int
    idempotency_key: Optional[str] = None


def parse_measure(value) -> Optional[float]:
    """Parse a metadata measurement like '5', '5mm' or '0.2 mm'."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if text.endswith("mm"):
        text = text[:-2].strip()
    return parse_number(text)


def parse_quantity(value) -> int:
    """Integral quantity in [1, 10000] or ValidationError."""
    number = parse_number(value)
    if number is None or number != int(number):
        raise ValidationError(f"Quantity must be a whole number, got {value!r}", field="quantity")
    quantity = int(number)
    if quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
        raise ValidationError(
            f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}, got {quantity}",
            field="quantity")
    return quantity


def check_precision_eligibility(requested, baseline) -> None:
    """
    High precision is a business rule, not just a disabled radio button:
    a product whose baseline tier is the most restrictive one cannot be
    ordered at a higher tier.
    """
    if not requested:
        return
    try:
        tier = parse_precision(requested)
    except ValueError as e:
        raise ValidationError(str(e), field="precision")
    try:
        base = parse_precision(baseline) if baseline else PRECISION_ORDER[0]
    except ValueError as e:
        raise ValidationError(str(e), field="machiningPrecision")
    if tier == PrecisionTier.HIGH and base == PRECISION_ORDER[0]:
        raise ValidationError(
            "High precision is not available for this product", field="precision")


class CustomOrderOrchestrator:
    """Sequences pricing, variant provisioning and cart attachment."""

    def __init__(
        self,
        provisioning: VariantProvisioningService,
        cart: CartAttachmentService,
        policy: Optional[PricingPolicy] = None,
        compensate_orphans: Optional[bool] = None,
    ):
        self.provisioning = provisioning
        self.cart = cart
        self.policy = policy or PricingPolicy.from_settings()
        self.compensate_orphans = (settings.COMPENSATE_ORPHANED_VARIANTS
                                   if compensate_orphans is None else compensate_orphans)

    def submit(self, form: dict, cart_id: Optional[str] = None,
               idempotency_key: Optional[str] = None) -> PipelineResult:
        """Run one submission end to end. Never raises; failures become an error result."""
        stage = PipelineStage.VALIDATE
        variant_id = None
        provisioned = None
        try:
            logger.info("Custom order: %s", stage.value)
            order = self.validate(form, idempotency_key)

            stage = PipelineStage.COMPUTE
            logger.info("Custom order: %s (%s)", stage.value, order.calculation.form_type)
            priced = calculate_price_and_weight(order.calculation, self.policy)

            stage = PipelineStage.PROVISION
            logger.info("Custom order: %s price=%.4f weight=%.4fkg",
                        stage.value, priced.price, priced.weight)
            provisioned = self.provisioning.provision(
                order.submission.product_id,
                priced.price,
                priced.weight,
                idempotency_key=order.idempotency_key,
            )
            variant_id = provisioned.variant_id

            stage = PipelineStage.ATTACH
            logger.info("Custom order: %s variant %s", stage.value, variant_id)
            try:
                attachment = self.cart.attach(variant_id, order.submission, cart_id=cart_id)
            except CartAttachmentError as e:
                self._handle_orphan(provisioned.record, e.message)
                raise
            try:
                self.provisioning.mark_attached(provisioned.record, attachment.cart_id)
            except LedgerError as e:
                # The cart line exists; only the bookkeeping is stale
                logger.error("Variant %s attached to %s but not marked: %s",
                             variant_id, attachment.cart_id, e.message)

            stage = PipelineStage.RESPOND
            return PipelineResult(
                status="success",
                body={
                    "status": "success",
                    "variantCreation": provisioned.payload,
                    "cartOperation": {
                        "cart": attachment.cart,
                        "userErrors": attachment.payload.get("userErrors", []),
                    },
                },
                session_token=attachment.session_token,
                stage=stage,
                variant_id=variant_id,
            )

        except CustomOrderError as e:
            logger.error("Custom order failed at %s [%s]: %s", stage.value, e.error_code, e.message)
            if isinstance(e, LedgerError) and e.variant_id:
                variant_id = e.variant_id
            return self._error(e.message, stage, variant_id)
        except Exception as e:
            logger.exception("Custom order crashed at %s", stage.value)
            if stage == PipelineStage.ATTACH and provisioned is not None:
                try:
                    self._handle_orphan(provisioned.record, f"{e.__class__.__name__}: {e}")
                except Exception:
                    logger.exception("Orphan handling failed for variant %s", variant_id)
            return self._error(
                f"Unexpected error during {stage.value}: {e.__class__.__name__}", stage, variant_id)

    # --- Validate ---

    def validate(self, form: dict, idempotency_key: Optional[str] = None) -> ValidatedOrder:
        """Re-derive every input server-side. Raises ValidationError before any remote call."""
        try:
            submission = CustomOrderSubmission.model_validate(dict(form))
        except SchemaError as e:
            missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ValidationError(f"Invalid submission: {missing}")

        try:
            form_type = FormType(submission.form_type)
        except ValueError:
            raise ValidationError(f"Unknown form type: {submission.form_type}", field="formType")

        quantity = parse_quantity(submission.quantity)
        check_precision_eligibility(submission.precision, submission.machining_precision)

        key = idempotency_key or submission.idempotency_key or None
        if key:
            existing = self.provisioning.find_by_key(key)
            if existing is not None and existing.status == models.VariantStatus.ATTACHED.value:
                raise ValidationError(f"Submission {key} was already added to the cart")
            if existing is not None and existing.product_id != submission.product_id:
                raise ValidationError(
                    f"Idempotency key {key} was used for another product", field="idempotencyKey")

        # Primary field authoritative, secondary kept or derived
        values = {}
        for dim in dimension_fields(form_type):
            primary_attr, secondary_attr = _attr(dim.name_one), _attr(dim.name_two)
            converter = dim.converter()
            values[primary_attr] = converter.load(
                getattr(submission, primary_attr), getattr(submission, secondary_attr))
            setattr(submission, primary_attr, converter.display_one)
            setattr(submission, secondary_attr, converter.display_two)

        if form_type == FormType.FILM:
            width = parse_number(submission.width_mm)
            if width not in FILM_WIDTHS_MM:
                raise ValidationError(
                    f"Film width must be one of {list(FILM_WIDTHS_MM)}mm, got {submission.width_mm!r}",
                    field="widthMm")
            values["width_mm"] = width
            submission.width_mm = format_value(width)
            if parse_number(submission.width_inch) is None:
                submission.width_inch = format_value(width / MM_PER_INCH)
        elif form_type == FormType.ROD:
            submission.width_mm = None
            submission.width_inch = None

        calculation = CalculationInput(
            form_type=form_type.value,
            density=parse_number(submission.density),
            unit_price=parse_number(submission.unit_price),
            thickness=parse_measure(submission.thickness) if form_type != FormType.ROD else None,
            diameter=parse_measure(submission.diameter) if form_type == FormType.ROD else None,
            length_mm=values.get("length_mm"),
            length_m=values.get("length_m"),
            width_mm=values.get("width_mm"),
            precision=submission.precision or None,
            quantity=quantity,
        )
        submission.quantity = str(quantity)
        return ValidatedOrder(
            submission=submission,
            calculation=calculation,
            quantity=quantity,
            idempotency_key=key,
        )

    # --- Failure handling ---

    def _handle_orphan(self, record, message: str) -> None:
        try:
            self.provisioning.mark_orphaned(record, message)
        except LedgerError as e:
            logger.error("Could not mark variant orphaned: %s", e.message)
        if not self.compensate_orphans or record is None:
            return
        try:
            self.provisioning.delete_variant(record)
        except (TransportError, BusinessRejectionError, LedgerError) as e:
            logger.error("Compensation failed for variant %s: %s (left for cleanup)",
                         record.variant_id, e.message)

    def _error(self, message: str, stage: PipelineStage, variant_id: Optional[str]) -> PipelineResult:
        return PipelineResult(
            status="error",
            body={
                "status": "error",
                "error": message,
                "timestamp": datetime.utcnow().isoformat(),
            },
            http_status=500,
            stage=PipelineStage.ERROR,
            failed_at=stage,
            variant_id=variant_id,
        )


def _attr(form_name: str) -> str:
    """'lengthMm' → 'length_mm' — form field name to submission attribute."""
    return "".join("_" + c.lower() if c.isupper() else c for c in form_name)

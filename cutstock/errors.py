"""
Error taxonomy for the custom order pipeline.

Every error carries a machine-readable error_code and a human message.
The orchestrator catches all of them at its boundary and converts them into
the single failure response shape, so callers never see partial success.

    ValidationError         local, raised before any remote call
    InvalidInputError       pricing input is missing / negative / non-finite
    TransportError          remote call did not complete (network, non-2xx)
    BusinessRejectionError  remote call completed but returned userErrors
    VariantCreationError    variant could not be created (wraps the two above)
    LedgerError             provisioning ledger write failed and was rolled back
    CartAttachmentError     variant exists but no cart line references it
"""

from typing import List, Optional


class CustomOrderError(Exception):
    """Base class for all pipeline errors."""

    error_code = "CUSTOM_ORDER_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "field": self.field,
        }


class ValidationError(CustomOrderError):
    """Bad unit-converted value, out-of-range quantity, ineligible precision."""

    error_code = "VALIDATION_ERROR"


class InvalidInputError(CustomOrderError):
    """Pricing input is structurally inconsistent or missing a required field."""

    error_code = "INVALID_INPUT"


class TransportError(CustomOrderError):
    """Remote call did not complete — network error, timeout or non-2xx status."""

    error_code = "TRANSPORT_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, request_sent: bool = True):
        super().__init__(message)
        self.status_code = status_code
        # False only when the request provably never reached the platform
        self.request_sent = request_sent


class BusinessRejectionError(CustomOrderError):
    """Remote call completed but the platform reported field-level userErrors."""

    error_code = "BUSINESS_REJECTION"

    def __init__(self, message: str, user_errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.user_errors = user_errors or []


class VariantCreationError(CustomOrderError):
    """
    Variant creation failed.

    failure_kind preserves which class of failure occurred:
    "transport" or "business_rejection".
    """

    error_code = "VARIANT_CREATION_FAILED"

    TRANSPORT = "transport"
    BUSINESS_REJECTION = "business_rejection"

    def __init__(self, message: str, failure_kind: str,
                 user_errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.failure_kind = failure_kind
        self.user_errors = user_errors or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["failure_kind"] = self.failure_kind
        data["user_errors"] = self.user_errors
        return data


class LedgerError(CustomOrderError):
    """
    The provisioning ledger could not be written. variant_id is set when a
    variant was already created on the platform before the write failed.
    """

    error_code = "LEDGER_ERROR"

    def __init__(self, message: str, variant_id: Optional[str] = None):
        super().__init__(message)
        self.variant_id = variant_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["variant_id"] = self.variant_id
        return data


class CartAttachmentError(CustomOrderError):
    """The variant was created but could not be added to the cart."""

    error_code = "CART_ATTACHMENT_FAILED"

    def __init__(self, message: str, variant_id: str):
        super().__init__(message)
        self.variant_id = variant_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["variant_id"] = self.variant_id
        return data

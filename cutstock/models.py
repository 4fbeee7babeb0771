from sqlalchemy import Column, Integer, String, Float, DateTime, Text
from datetime import datetime
from .database import Base
import enum


# --- Enums ---

class FormType(str, enum.Enum):
    SHEET = "Sheet"
    FILM = "Film"
    ROD = "Rod"


class PrecisionTier(str, enum.Enum):
    NORMAL = "Normal"
    HIGH = "High"


# Labels as stored in the machining_precision metafield and shown on the form
PRECISION_LABELS = {
    PrecisionTier.NORMAL: "Normal (±2mm)",
    PrecisionTier.HIGH: "High (±0.2mm)",
}

# Ordered most restrictive first: a product whose baseline is the first tier
# cannot be ordered at any higher tier.
PRECISION_ORDER = [PrecisionTier.NORMAL, PrecisionTier.HIGH]


def parse_precision(value) -> PrecisionTier:
    """
    Parse 'High', 'High (±0.2mm)', 'normal' etc. into a PrecisionTier.
    Raises ValueError for anything else.
    """
    text = str(value or "").strip().lower()
    for tier in PrecisionTier:
        if text == tier.value.lower() or text.startswith(tier.value.lower() + " "):
            return tier
    raise ValueError(f"Unknown precision: {value!r}")


class VariantStatus(str, enum.Enum):
    CREATED = "created"      # variant exists, not yet in a cart
    ATTACHED = "attached"    # cart line references it
    ORPHANED = "orphaned"    # cart attachment failed, awaiting cleanup
    DELETED = "deleted"      # removed from the catalog by the cleanup path


# --- Tables ---

class ProvisionedVariant(Base):
    """Ledger of on-demand variants — dedupes resubmissions and tracks orphans."""
    __tablename__ = "provisioned_variants"

    id = Column(Integer, primary_key=True, index=True)
    idempotency_key = Column(String, unique=True, nullable=True, index=True)
    product_id = Column(String, nullable=False)
    variant_id = Column(String, nullable=False)
    title = Column(String, nullable=False)  # discriminator
    price = Column(Float, nullable=False)
    weight_kg = Column(Float, nullable=False)
    status = Column(String, default=VariantStatus.CREATED.value)
    cart_id = Column(String, nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

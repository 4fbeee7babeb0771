"""
Abstract base class for all form-type calculators.

Input: CalculationInput (one submission's dimensions + catalog metadata)
Output: PriceWeightResult — per-unit price and weight in kg
"""

import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Optional

from ..config import settings
from ..errors import InvalidInputError
from ..models import FormType, PrecisionTier, parse_precision


@dataclass
class CalculationInput:
    form_type: str
    density: Optional[float] = None       # g/cm³
    unit_price: Optional[float] = None    # per m² (Sheet/Film) or per kg (Rod)
    thickness: Optional[float] = None     # mm, Sheet/Film
    diameter: Optional[float] = None      # mm, Rod
    length_mm: Optional[float] = None     # Sheet/Rod
    length_m: Optional[float] = None      # Film
    width_mm: Optional[float] = None      # Sheet/Film
    precision: Optional[str] = PrecisionTier.NORMAL.value
    quantity: int = 1


@dataclass
class PriceWeightResult:
    price: float    # per unit, unrounded
    weight: float   # kg per unit, unrounded

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PricingPolicy:
    """
    Coefficients that can change without touching the pipeline.

    The engine works at full precision. Values are rounded only where they
    leave the process (variant price/weight, ledger, estimate response), and a
    positive value never rounds down to zero.
    """

    high_precision_surcharge: float = 1.30
    price_decimals: int = 2
    weight_decimals: int = 3

    @classmethod
    def from_settings(cls) -> "PricingPolicy":
        return cls(high_precision_surcharge=settings.HIGH_PRECISION_SURCHARGE)

    def round_price(self, price: float) -> float:
        return _round_with_floor(price, self.price_decimals)

    def round_weight(self, weight: float) -> float:
        return _round_with_floor(weight, self.weight_decimals)


def _round_with_floor(value: float, decimals: int) -> float:
    """Round to `decimals` places; positive values keep at least one unit of the last place."""
    rounded = round(value, decimals)
    if value > 0 and rounded <= 0:
        return 10.0 ** -decimals
    return rounded


class BaseFormCalculator(ABC):
    """All form-type calculators inherit from this."""

    form_type: FormType

    # Exactly one length field is populated, matching the form type
    LENGTH_FIELD = "length_mm"
    OTHER_LENGTH_FIELD = "length_m"

    @abstractmethod
    def calculate(self, data: CalculationInput, policy: PricingPolicy) -> PriceWeightResult:
        """
        Takes one submission's dimensions.
        Returns the per-unit PriceWeightResult.
        """
        pass

    # --- Helper methods for all calculators ---

    def require(self, data: CalculationInput, field: str, positive: bool = False) -> float:
        """Return a required numeric field or raise InvalidInputError."""
        value = getattr(data, field, None)
        if value is None or value == "":
            raise InvalidInputError(
                f"{field} is required for {self.form_type.value}", field=field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInputError(f"{field} must be a number, got {value!r}", field=field)
        if not math.isfinite(value):
            raise InvalidInputError(f"{field} must be finite", field=field)
        if value < 0 or (positive and value == 0):
            raise InvalidInputError(
                f"{field} must be {'positive' if positive else 'non-negative'}, got {value}",
                field=field)
        return float(value)

    def require_length(self, data: CalculationInput) -> float:
        """Length in the form type's native unit. Rejects the other length field."""
        if getattr(data, self.OTHER_LENGTH_FIELD, None) is not None:
            raise InvalidInputError(
                f"{self.form_type.value} takes {self.LENGTH_FIELD}, not {self.OTHER_LENGTH_FIELD}",
                field=self.OTHER_LENGTH_FIELD)
        return self.require(data, self.LENGTH_FIELD, positive=True)

    def precision_multiplier(self, data: CalculationInput, policy: PricingPolicy) -> float:
        """Surcharge applied to price when High precision is requested."""
        if data.precision is None or str(data.precision).strip() == "":
            return 1.0
        try:
            tier = parse_precision(data.precision)
        except ValueError as e:
            raise InvalidInputError(str(e), field="precision")
        if tier == PrecisionTier.HIGH:
            return policy.high_precision_surcharge
        return 1.0

    def make_result(self, price: float, weight: float) -> PriceWeightResult:
        return PriceWeightResult(price=price, weight=weight)

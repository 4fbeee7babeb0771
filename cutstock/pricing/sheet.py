"""
Sheet calculator — flat stock cut to length × width.

Price = area (m²) × unit price per m².
Weight = length × width × thickness (m³) × density.
Thickness and density come from product metadata, not the form.
"""

from .base import BaseFormCalculator, CalculationInput, PriceWeightResult, PricingPolicy
from ..models import FormType
from ..weights import area_m2, mm_to_m, weight_from_dimensions


class SheetCalculator(BaseFormCalculator):

    form_type = FormType.SHEET

    def calculate(self, data: CalculationInput, policy: PricingPolicy) -> PriceWeightResult:
        length_m = self.length_in_metres(data)
        width_m = mm_to_m(self.require(data, "width_mm", positive=True))
        thickness_m = mm_to_m(self.require(data, "thickness"))
        density = self.require(data, "density")
        unit_price = self.require(data, "unit_price")

        price = area_m2(length_m, width_m) * unit_price * self.precision_multiplier(data, policy)
        weight = weight_from_dimensions(length_m, width_m, thickness_m, density)
        return self.make_result(price, weight)

    def length_in_metres(self, data: CalculationInput) -> float:
        return mm_to_m(self.require_length(data))

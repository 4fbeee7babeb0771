"""
Rod calculator.

Volume = circular cross-section (πd²/4) × length.
Weight = volume × density. Rod stock is priced by weight, so price derives
from the same cross-section × length.
"""

from .base import BaseFormCalculator, CalculationInput, PriceWeightResult, PricingPolicy
from ..models import FormType
from ..weights import circle_area_m2, mm_to_m, weight_from_volume


class RodCalculator(BaseFormCalculator):

    form_type = FormType.ROD

    def calculate(self, data: CalculationInput, policy: PricingPolicy) -> PriceWeightResult:
        length_m = mm_to_m(self.require_length(data))
        diameter_m = mm_to_m(self.require(data, "diameter", positive=True))
        density = self.require(data, "density")
        unit_price = self.require(data, "unit_price")

        weight = weight_from_volume(circle_area_m2(diameter_m) * length_m, density)
        price = weight * unit_price * self.precision_multiplier(data, policy)
        return self.make_result(price, weight)

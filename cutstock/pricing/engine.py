"""
Pricing engine entry point.

calculate_price_and_weight is pure and deterministic: same input, same
output, no side effects. It returns per-unit values; display totals are
price × quantity, computed by the caller.
"""

import logging
from typing import Optional

from .base import CalculationInput, PriceWeightResult, PricingPolicy
from .registry import get_calculator

logger = logging.getLogger(__name__)


def calculate_price_and_weight(
    data: CalculationInput,
    policy: Optional[PricingPolicy] = None,
) -> PriceWeightResult:
    """
    Dispatch to the calculator for data.form_type.
    Raises InvalidInputError for missing, negative or non-finite fields.
    """
    if policy is None:
        policy = PricingPolicy.from_settings()
    calculator = get_calculator(data.form_type)
    result = calculator.calculate(data, policy)
    logger.debug("Priced %s: price=%s weight=%skg", data.form_type, result.price, result.weight)
    return result

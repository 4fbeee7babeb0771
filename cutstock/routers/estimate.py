"""
Live pricing helpers for the product form.

POST /api/estimate — per-unit price/weight plus display totals
POST /api/convert  — dual-unit conversion with bounds checking
"""

from fastapi import APIRouter, HTTPException

from ..errors import InvalidInputError
from ..pricing.base import CalculationInput, PricingPolicy
from ..pricing.engine import calculate_price_and_weight
from ..schemas import ConvertRequest, ConvertResponse, EstimateRequest, EstimateResponse
from ..unit_converter import UnitConverter

router = APIRouter(tags=["estimate"])


@router.post("/estimate", response_model=EstimateResponse)
def estimate(request: EstimateRequest):
    """
    Display-time estimate. The engine returns per-unit values; totals are
    multiplied out here, never inside the engine.
    """
    policy = PricingPolicy.from_settings()
    data = CalculationInput(
        form_type=request.form_type,
        density=request.density,
        unit_price=request.unit_price,
        thickness=request.thickness,
        diameter=request.diameter,
        length_mm=request.length_mm,
        length_m=request.length_m,
        width_mm=request.width_mm,
        precision=request.precision,
        quantity=request.quantity,
    )
    try:
        result = calculate_price_and_weight(data, policy)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    return EstimateResponse(
        price=policy.round_price(result.price),
        weight=policy.round_weight(result.weight),
        quantity=request.quantity,
        total_price=policy.round_price(result.price * request.quantity),
        total_weight=policy.round_weight(result.weight * request.quantity),
    )


@router.post("/convert", response_model=ConvertResponse)
def convert(request: ConvertRequest):
    """Convert one edited field and report whether it passes the bounds."""
    try:
        converter = UnitConverter(
            unit_one=request.unit_one,
            unit_two=request.unit_two,
            min_value=request.min_value if request.min_value is not None else 0.0,
            max_value=request.max_value if request.max_value is not None else float("inf"),
            name_one=request.unit_one,
            name_two=request.unit_two,
            decimals=request.decimals,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.field == "two":
        converter.set_secondary(request.value)
    else:
        converter.set_primary(request.value)

    return ConvertResponse(
        primary_value=converter.primary_value,
        value_one=converter.display_one,
        value_two=converter.display_two,
        has_error=converter.has_error,
        error=converter.error_message or None,
    )

"""
Calculator registry — maps form types to calculator classes.
"""

from .base import BaseFormCalculator
from .film import FilmCalculator
from .rod import RodCalculator
from .sheet import SheetCalculator
from ..errors import InvalidInputError
from ..models import FormType

FORM_CALCULATORS: dict[FormType, type] = {
    FormType.SHEET: SheetCalculator,
    FormType.FILM: FilmCalculator,
    FormType.ROD: RodCalculator,
}


def get_calculator(form_type) -> BaseFormCalculator:
    """Returns an instance of the calculator for a form type, or raises InvalidInputError."""
    try:
        key = FormType(form_type)
    except ValueError:
        key = None
    if key not in FORM_CALCULATORS:
        raise InvalidInputError(
            f"No calculator registered for form type: {form_type}. "
            f"Available: {[f.value for f in FORM_CALCULATORS]}",
            field="form_type",
        )
    return FORM_CALCULATORS[key]()


def list_form_types() -> list[str]:
    """List all registered form types."""
    return [f.value for f in FORM_CALCULATORS]

"""
Film calculator.

Same area/volume logic as sheet, but film is sold off long rolls so the
length is entered directly in metres.
"""

from .base import CalculationInput
from .sheet import SheetCalculator
from ..models import FormType


class FilmCalculator(SheetCalculator):

    form_type = FormType.FILM

    LENGTH_FIELD = "length_m"
    OTHER_LENGTH_FIELD = "length_mm"

    def length_in_metres(self, data: CalculationInput) -> float:
        return self.require_length(data)

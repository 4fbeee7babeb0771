"""
Dual-unit numeric input — mm/inch for cut lengths, m/yard for film rolls.

A UnitConverter keeps two text fields mutually consistent. The primary value
is authoritative: the secondary display is always derived from it, never
converted back, so repeated edits cannot drift. Editing the secondary field
derives the primary value exactly once from the user's text.

Validation failures flip the error flag (on_error(True)) and leave the last
valid primary value in place. Valid edits report the primary-unit value
upward through on_value_change.

Purely local and synchronous. The same definitions back the live form and
server-side re-validation of a submission.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import ValidationError
from .models import FormType
from .weights import MM_PER_INCH, M_PER_YARD

# secondary = primary * ratio
UNIT_RATIOS = {
    ("mm", "inch"): 1.0 / MM_PER_INCH,
    ("m", "yard"): 1.0 / M_PER_YARD,
}

DEFAULT_DECIMALS = 2

# Pure conversion round-trips stay within this of the original value
ROUND_TRIP_EPSILON = 1e-9


def get_ratio(unit_one: str, unit_two: str) -> float:
    """Returns the primary→secondary ratio for a known unit pair, or raises ValueError."""
    key = (unit_one, unit_two)
    if key in UNIT_RATIOS:
        return UNIT_RATIOS[key]
    reverse = (unit_two, unit_one)
    if reverse in UNIT_RATIOS:
        return 1.0 / UNIT_RATIOS[reverse]
    raise ValueError(
        f"No conversion ratio for {unit_one}/{unit_two}. "
        f"Available: {[f'{a}/{b}' for a, b in UNIT_RATIOS]}"
    )


def format_value(value: float, decimals: int = DEFAULT_DECIMALS) -> str:
    """Round to `decimals` places and drop trailing zeros: 17.7165 → '17.72', 450.0 → '450'."""
    text = f"{round(value, decimals):.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def parse_number(value) -> Optional[float]:
    """Parse user text into a finite float. Returns None when it isn't one."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number):
        return None
    return number


class UnitConverter:
    """Two numeric inputs, two units, one authoritative primary value."""

    def __init__(
        self,
        unit_one: str,
        unit_two: str,
        min_value: float,
        max_value: float,
        name_one: str,
        name_two: str,
        ratio: Optional[float] = None,
        on_error: Optional[Callable[[bool], None]] = None,
        on_value_change: Optional[Callable[[float], None]] = None,
        decimals: int = DEFAULT_DECIMALS,
        initial_value: Optional[float] = None,
    ):
        if min_value > max_value:
            raise ValueError(f"min_value {min_value} is greater than max_value {max_value}")
        self.unit_one = unit_one
        self.unit_two = unit_two
        self.ratio = ratio if ratio is not None else get_ratio(unit_one, unit_two)
        self.min_value = min_value
        self.max_value = max_value
        self.name_one = name_one
        self.name_two = name_two
        self.decimals = decimals
        self.on_error = on_error
        self.on_value_change = on_value_change

        self.primary_value = initial_value if initial_value is not None else min_value
        self.display_one = format_value(self.primary_value, decimals)
        self.display_two = format_value(self.to_secondary(self.primary_value), decimals)
        self.has_error = False
        self.error_message = ""

    # --- Conversion ---

    def to_secondary(self, primary: float) -> float:
        return primary * self.ratio

    def to_primary(self, secondary: float) -> float:
        return secondary / self.ratio

    # --- Edits ---

    def set_primary(self, text) -> bool:
        """Edit the primary field. Returns True if the value was accepted."""
        self.display_one = str(text if text is not None else "").strip()
        value = parse_number(text)
        if value is None:
            return self._fail(f"{self.name_one} must be a number")
        if not self._in_range(value):
            return self._fail(self._range_message())
        self.display_two = format_value(self.to_secondary(value), self.decimals)
        return self._accept(value)

    def set_secondary(self, text) -> bool:
        """Edit the secondary field. Returns True if the value was accepted."""
        self.display_two = str(text if text is not None else "").strip()
        secondary = parse_number(text)
        if secondary is None:
            return self._fail(f"{self.name_two} must be a number")
        value = self.to_primary(secondary)
        if not self._in_range(value):
            return self._fail(self._range_message())
        self.display_one = format_value(value, self.decimals)
        return self._accept(value)

    def load(self, primary_text, secondary_text=None) -> float:
        """
        Re-validate a submitted pair. The primary field is authoritative; the
        client's secondary text is kept for display and derived when missing.
        Raises ValidationError on bad input.
        """
        self.set_primary(primary_text)
        self.require_valid()
        secondary = parse_number(secondary_text)
        if secondary is not None:
            self.display_two = format_value(secondary, self.decimals)
        return self.primary_value

    def require_valid(self) -> None:
        """Raises ValidationError if the last edit was rejected."""
        if self.has_error:
            raise ValidationError(self.error_message, field=self.name_one)

    def form_fields(self) -> Dict[str, str]:
        return {self.name_one: self.display_one, self.name_two: self.display_two}

    # --- Internals ---

    def _in_range(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value

    def _range_message(self) -> str:
        return "%s must be between %s%s and %s%s" % (
            self.name_one,
            format_value(self.min_value, self.decimals), self.unit_one,
            format_value(self.max_value, self.decimals), self.unit_one,
        )

    def _accept(self, value: float) -> bool:
        self.primary_value = value
        self.has_error = False
        self.error_message = ""
        if self.on_error:
            self.on_error(False)
        if self.on_value_change:
            self.on_value_change(value)
        return True

    def _fail(self, message: str) -> bool:
        self.has_error = True
        self.error_message = message
        if self.on_error:
            self.on_error(True)
        return False


# --- Storefront form definitions per form type ---

@dataclass(frozen=True)
class DimensionField:
    unit_one: str
    unit_two: str
    min_value: float
    max_value: float
    name_one: str
    name_two: str

    def converter(self, **kwargs) -> UnitConverter:
        return UnitConverter(
            unit_one=self.unit_one,
            unit_two=self.unit_two,
            min_value=self.min_value,
            max_value=self.max_value,
            name_one=self.name_one,
            name_two=self.name_two,
            **kwargs,
        )


SHEET_LENGTH = DimensionField("mm", "inch", 1, 600, "lengthMm", "lengthInch")
SHEET_WIDTH = DimensionField("mm", "inch", 1, 600, "widthMm", "widthInch")
ROD_LENGTH = DimensionField("mm", "inch", 1, 1000, "lengthMm", "lengthInch")
FILM_LENGTH = DimensionField("m", "yard", 1, 100, "lengthM", "lengthYard")

# Film is sold off fixed-width rolls
FILM_WIDTHS_MM = (450, 1370)
FILM_WIDTH_UNIT_TWO = "inch"

FORM_DIMENSIONS: Dict[FormType, List[DimensionField]] = {
    FormType.SHEET: [SHEET_LENGTH, SHEET_WIDTH],
    FormType.FILM: [FILM_LENGTH],
    FormType.ROD: [ROD_LENGTH],
}


def dimension_fields(form_type) -> List[DimensionField]:
    """Dual-unit fields the order form shows for a form type. Raises ValueError if unknown."""
    try:
        return FORM_DIMENSIONS[FormType(form_type)]
    except ValueError:
        raise ValueError(
            f"Unknown form type: {form_type}. "
            f"Available: {[f.value for f in FORM_DIMENSIONS]}"
        )

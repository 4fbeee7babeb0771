"""
Unit converter tests — dual-unit inputs, bounds, display precision, drift.

Tests:
1-3.   Ratio lookup and formatting
4-9.   Primary / secondary edits and callbacks
10-13. Validation — range, non-numeric, non-finite
14-16. Round-trip and drift properties
17-19. Submission re-validation (load) and form definitions
"""

import math

import pytest

from cutstock.errors import ValidationError
from cutstock.unit_converter import (
    FILM_LENGTH,
    ROUND_TRIP_EPSILON,
    SHEET_LENGTH,
    UNIT_RATIOS,
    UnitConverter,
    dimension_fields,
    format_value,
    get_ratio,
)


def _mm_inch(**kwargs):
    params = dict(unit_one="mm", unit_two="inch", min_value=1, max_value=600,
                  name_one="lengthMm", name_two="lengthInch")
    params.update(kwargs)
    return UnitConverter(**params)


def _decimals(text: str) -> int:
    return len(text.split(".")[1]) if "." in text else 0


# ============================================================
# 1-3. Ratios and formatting
# ============================================================

def test_known_ratios():
    """mm→inch and m→yard ratios; reverse pairs invert."""
    assert get_ratio("mm", "inch") == pytest.approx(1 / 25.4)
    assert get_ratio("m", "yard") == pytest.approx(1 / 0.9144)
    assert get_ratio("inch", "mm") == pytest.approx(25.4)
    assert len(UNIT_RATIOS) == 2


def test_unknown_unit_pair_raises():
    with pytest.raises(ValueError):
        get_ratio("mm", "furlong")
    with pytest.raises(ValueError):
        UnitConverter("mm", "furlong", 1, 10, "a", "b")


def test_format_value_drops_trailing_zeros():
    assert format_value(450.0) == "450"
    assert format_value(17.716535) == "17.72"
    assert format_value(13.1) == "13.1"
    assert format_value(0.004) == "0"
    assert format_value(-0.001) == "0"
    assert format_value(1.23456, decimals=3) == "1.235"


# ============================================================
# 4-9. Edits
# ============================================================

def test_set_primary_derives_secondary():
    conv = _mm_inch()
    assert conv.set_primary("450") is True
    assert conv.primary_value == 450
    assert conv.display_one == "450"
    assert conv.display_two == "17.72"
    assert conv.has_error is False


def test_set_secondary_derives_primary():
    conv = _mm_inch()
    assert conv.set_secondary("10") is True
    assert conv.primary_value == pytest.approx(254.0)
    assert conv.display_one == "254"
    assert conv.display_two == "10"


def test_film_length_meters_to_yards():
    conv = FILM_LENGTH.converter()
    conv.set_primary("12")
    assert conv.display_two == "13.12"


def test_value_change_reports_primary_unit():
    """onValueChange always receives the primary-unit value, even for secondary edits."""
    reported = []
    conv = _mm_inch(on_value_change=reported.append)
    conv.set_primary("100")
    conv.set_secondary("2")
    assert reported[0] == 100
    assert reported[1] == pytest.approx(50.8)


def test_on_error_callback_toggles():
    flags = []
    conv = _mm_inch(on_error=flags.append)
    conv.set_primary("700")
    conv.set_primary("500")
    assert flags == [True, False]


def test_initial_state():
    conv = _mm_inch(initial_value=25.4)
    assert conv.form_fields() == {"lengthMm": "25.4", "lengthInch": "1"}
    assert _mm_inch().primary_value == 1


# ============================================================
# 10-13. Validation
# ============================================================

def test_out_of_range_keeps_last_valid_value():
    conv = _mm_inch()
    conv.set_primary("300")
    assert conv.set_primary("601") is False
    assert conv.has_error is True
    assert conv.primary_value == 300
    assert "between 1mm and 600mm" in conv.error_message


def test_out_of_range_secondary_is_checked_in_primary_unit():
    """24 inch = 609.6 mm — over a 600 mm limit."""
    conv = _mm_inch()
    assert conv.set_secondary("24") is False
    assert conv.has_error is True


@pytest.mark.parametrize("text", ["abc", "", "  ", None, "nan", "inf", "-inf", "12mm"])
def test_non_numeric_input_sets_error(text):
    conv = _mm_inch()
    assert conv.set_primary(text) is False
    assert conv.has_error is True


def test_require_valid_blocks_submission():
    conv = _mm_inch()
    conv.set_primary("0")
    with pytest.raises(ValidationError) as exc:
        conv.require_valid()
    assert exc.value.field == "lengthMm"


# ============================================================
# 14-16. Round-trip and drift
# ============================================================

@pytest.mark.parametrize("unit_one,unit_two", [("mm", "inch"), ("m", "yard")])
@pytest.mark.parametrize("value", [1, 1.5, 12.345, 99.99, 450, 599.999, 1000])
def test_round_trip_within_epsilon(unit_one, unit_two, value):
    conv = UnitConverter(unit_one, unit_two, 0, 10000, "one", "two")
    back = conv.to_primary(conv.to_secondary(value))
    assert math.isclose(back, value, abs_tol=ROUND_TRIP_EPSILON)


@pytest.mark.parametrize("value", ["1", "3.3333", "17.7", "123.456789", "599.99"])
def test_display_never_exceeds_declared_precision(value):
    forward = _mm_inch(max_value=100000)
    assert forward.set_primary(value)
    assert _decimals(forward.display_two) <= forward.decimals

    backward = _mm_inch(max_value=100000)
    assert backward.set_secondary(value)
    assert _decimals(backward.display_one) <= backward.decimals


def test_repeated_edits_do_not_drift():
    """Re-entering displayed values back and forth stays put."""
    conv = _mm_inch()
    conv.set_primary("450")
    for _ in range(50):
        conv.set_primary(conv.display_one)
    assert conv.primary_value == 450
    assert conv.display_two == "17.72"

    conv.set_secondary(conv.display_two)
    conv.set_primary(conv.display_one)
    settled = conv.primary_value
    for _ in range(50):
        conv.set_secondary(conv.display_two)
        conv.set_primary(conv.display_one)
    assert conv.primary_value == settled
    # Within half of the last displayed inch digit
    assert abs(conv.primary_value - 450) < 0.005 * 25.4
    assert conv.display_two == "17.72"


# ============================================================
# 17-19. Submission re-validation and form definitions
# ============================================================

def test_load_keeps_client_secondary():
    conv = FILM_LENGTH.converter()
    assert conv.load("12", "13.1") == 12
    assert conv.form_fields() == {"lengthM": "12", "lengthYard": "13.1"}


def test_load_derives_missing_secondary_and_rejects_bad_primary():
    conv = SHEET_LENGTH.converter()
    conv.load("600", None)
    assert conv.display_two == "23.62"
    with pytest.raises(ValidationError):
        SHEET_LENGTH.converter().load("650", "25.59")


def test_dimension_fields_per_form_type():
    assert [f.name_one for f in dimension_fields("Sheet")] == ["lengthMm", "widthMm"]
    assert [f.name_one for f in dimension_fields("Film")] == ["lengthM"]
    rod = dimension_fields("Rod")
    assert rod[0].max_value == 1000
    with pytest.raises(ValueError):
        dimension_fields("Tube")

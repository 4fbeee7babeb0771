# Unit and weight constants; everything is normalized to metres and kilograms
# before it is multiplied.

import math

MM_PER_INCH = 25.4
M_PER_YARD = 0.9144
MM_PER_M = 1000.0

# 1 g/cm³ == 1000 kg/m³
KG_M3_PER_G_CM3 = 1000.0


def mm_to_m(value_mm: float) -> float:
    """Convert millimetres to metres."""
    return value_mm / MM_PER_M


def density_to_kg_m3(density_g_cm3: float) -> float:
    """Convert catalog density (g/cm³) to kg/m³."""
    return density_g_cm3 * KG_M3_PER_G_CM3


def area_m2(length_m: float, width_m: float) -> float:
    """Rectangular area in square metres."""
    return length_m * width_m


def circle_area_m2(diameter_m: float) -> float:
    """Cross-sectional area of a round bar in square metres."""
    return math.pi * (diameter_m / 2.0) ** 2


def weight_from_volume(volume_m3: float, density_g_cm3: float) -> float:
    """Weight in kg of a solid of the given volume."""
    return volume_m3 * density_to_kg_m3(density_g_cm3)


def weight_from_dimensions(
    length_m: float,
    width_m: float,
    thickness_m: float,
    density_g_cm3: float,
) -> float:
    """
    Weight in kg of a solid rectangular piece.
    Use for sheet and film. For rod, use weight_from_volume with circle_area_m2.
    """
    return weight_from_volume(length_m * width_m * thickness_m, density_g_cm3)

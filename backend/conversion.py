"""
Cross-brand unit conversion (REFERENCE ONLY).

Dose tables are already brand-specific, so the engine never calls this;
converting inside a session calculation would double-convert the totals.
Exposed to clinicians through the /convert endpoint.
"""

from typing import Union

from constants import CONVERSION_CONSTANTS, ToxinBrand, round_units

def conversion_ratio(from_brand: Union[ToxinBrand, str], to_brand: Union[ToxinBrand, str]) -> float:
    """Units of `to_brand` per unit of `from_brand` (Botox -> Dysport = 2.5)."""
    source = ToxinBrand.parse(from_brand)
    target = ToxinBrand.parse(to_brand)
    equivalents = CONVERSION_CONSTANTS.BOTOX_EQUIVALENT_UNITS
    return equivalents[target] / equivalents[source]

def convert_units(units: float, from_brand: Union[ToxinBrand, str], to_brand: Union[ToxinBrand, str]) -> int:
    if isinstance(units, bool) or not isinstance(units, (int, float)) or units < 0:
        raise ValueError(f"Units must be a non-negative number, got {units!r}")
    return round_units(units * conversion_ratio(from_brand, to_brand))

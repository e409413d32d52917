"""Health band classification of a CO2 concentration."""

from __future__ import annotations

from typing import Tuple

from models.group import HealthBand

# Inclusive upper bound (ppm) of each band below the top one.
BAND_UPPER_BOUNDS: Tuple[Tuple[float, HealthBand], ...] = (
    (600, HealthBand.ACCEPTABLE),
    (1000, HealthBand.STALE_AIR),
    (2500, HealthBand.LETHARGY),
)


def classify(value: float) -> HealthBand:
    for upper, band in BAND_UPPER_BOUNDS:
        if value <= upper:
            return band
    return HealthBand.ADVERSE

"""Aggregation of member readings into one synthetic value."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from environment.runtime import Environment
from models.group import AggregationMode, HealthBand, SensorGroup
from models.records import PointValue, as_reading
from services.classifier import classify

if TYPE_CHECKING:
    from surface.adapter import SurfaceAdapter

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _whole(value: Optional[float]) -> Optional[float]:
    if value is not None and float(value).is_integer():
        return int(value)
    return value


@dataclass
class AggregationSummary:
    """Computed statistics over the readings of valid members."""

    count: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None

    def select(self, mode: AggregationMode) -> Optional[float]:
        if not self.count:
            return None
        if mode is AggregationMode.MIN:
            return _whole(self.min_value)
        if mode is AggregationMode.MAX:
            return _whole(self.max_value)
        assert self.mean_value is not None
        return round_half_up(self.mean_value)


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, values: Iterable[float]) -> AggregationSummary:
        summary = AggregationSummary()
        total = 0.0

        for value in values:
            summary.count += 1
            total += value

            if summary.min_value is None or value < summary.min_value:
                summary.min_value = value
            if summary.max_value is None or value > summary.max_value:
                summary.max_value = value

        if summary.count:
            summary.mean_value = total / summary.count

        return summary


class AggregationEngine:
    """Keeps the synthetic value and health band in step with member readings."""

    def __init__(
        self,
        environment: Environment,
        group: SensorGroup,
        surface: Optional["SurfaceAdapter"] = None,
        aggregator: Optional[Aggregator] = None,
        classifier: Callable[[float], HealthBand] = classify,
    ) -> None:
        self.environment = environment
        self.group = group
        self.surface = surface
        self.aggregator = aggregator or Aggregator()
        self.classifier = classifier
        self.last_value: Optional[float] = None
        self.last_band: Optional[HealthBand] = None

    def register(self) -> None:
        self.environment.subscribe_on_change(self.group.members, self.handle_value)

    def handle_value(self, new_value: PointValue, address: str) -> None:
        index = self.group.index_of(address)
        if index < 0 or self.group.members[index] != address:
            return

        reading = as_reading(new_value)
        if reading is None:
            logger.warning(
                "Ignoring non-numeric reading",
                extra={"device": self.group.display_name, "address": address, "value": new_value},
            )
            return

        self.group.latest_values[index] = reading
        if self.surface is not None:
            self.surface.publish_member_value(index, reading)
        self.recompute()

    def recompute(self) -> Optional[float]:
        """Publish a new synthetic value, or return ``None`` when no member is usable."""
        summary = self.aggregator.aggregate(self.group.valid_values())
        mode = self.group.aggregation_mode
        value = summary.select(mode)
        if value is None:
            logger.debug(
                "No valid readings; keeping previous value",
                extra={"device": self.group.display_name, "value": self.last_value},
            )
            return None

        band = self.classifier(value)
        self.last_value = value
        self.last_band = band
        if self.surface is not None:
            self.surface.publish_aggregate(value, band)
        logger.debug(
            "Synthetic value updated",
            extra={
                "device": self.group.display_name,
                "mode": mode.name,
                "value": value,
                "band": int(band),
            },
        )
        return value

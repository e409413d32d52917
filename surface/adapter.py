"""Publication of a sensor group on a virtual device."""

from __future__ import annotations

import logging
from typing import Optional

from environment.runtime import Environment
from models.group import (
    HEALTH_BAND_LABELS,
    MODE_LABELS,
    AggregationMode,
    HealthBand,
    SensorGroup,
)
from models.records import PointValue
from models.schemas import CellDefinition, DeviceDefinition

GROUP_ERROR_MARKER = "r"

logger = logging.getLogger(__name__)


class SurfaceAdapter:
    """Owns the ``average``, ``state``, ``typeAVG`` and ``qtyCO2`` cells and one cell per member."""

    def __init__(self, environment: Environment, group: SensorGroup, title: str) -> None:
        self.environment = environment
        self.group = group
        self.title = title
        self.published = False

    @property
    def device(self) -> str:
        return self.group.display_name

    def cell(self, control: str) -> str:
        return f"{self.device}/{control}"

    def device_definition(self) -> DeviceDefinition:
        return DeviceDefinition(
            title=self.title,
            cells={
                "average": CellDefinition(title="Average", value=0, units="ppm"),
                "state": CellDefinition(
                    title="State",
                    value=0,
                    enum={int(band): label for band, label in HEALTH_BAND_LABELS.items()},
                ),
                "typeAVG": CellDefinition(
                    title="Averaging method",
                    value=int(self.group.aggregation_mode),
                    readonly=False,
                    enum={int(mode): label for mode, label in MODE_LABELS.items()},
                ),
                "qtyCO2": CellDefinition(title="CO2 sensor count", value=0),
            },
        )

    def publish(self) -> None:
        self.environment.define_device(self.device, self.device_definition())
        self.environment.set_value(self.cell("qtyCO2"), len(self.group))
        for index, address in enumerate(self.group.members):
            self.environment.add_control(
                self.device,
                self.group.exposed_names[index],
                CellDefinition(
                    title=address,
                    value=self.group.latest_values[index],
                    units="ppm",
                    force_default=True,
                ),
            )
        self.published = True

    def register(self) -> None:
        self.environment.subscribe_on_change([self.cell("typeAVG")], self.handle_mode_write)
        self.environment.subscribe_on_become_true(
            lambda: not self.group.group_valid, self.raise_group_error
        )
        self.environment.subscribe_on_become_true(
            lambda: self.group.group_valid, self.clear_group_error
        )

    def handle_mode_write(self, new_value: PointValue, address: str) -> None:
        mode = AggregationMode.parse(new_value)
        current = self.group.aggregation_mode
        if mode is None:
            logger.warning(
                "Ignoring unknown averaging mode",
                extra={"device": self.device, "value": new_value, "mode": current.name},
            )
            self.environment.set_value(address, int(current))
            return
        if not (isinstance(new_value, int) and new_value == int(mode)):
            # Published value must stay within the enumeration.
            self.environment.set_value(address, int(mode))
        if mode is current:
            return
        self.group.aggregation_mode = mode
        logger.info("Averaging mode changed", extra={"device": self.device, "mode": mode.name})

    def publish_member_value(self, index: int, value: Optional[float]) -> None:
        if self.published:
            self.environment.set_value(self.group.exposed_address(index), value)

    def publish_member_error(self, index: int, marker: PointValue) -> None:
        if self.published:
            self.environment.set_error(self.group.exposed_address(index), marker or "")

    def publish_aggregate(self, value: float, band: HealthBand) -> None:
        if not self.published:
            return
        self.environment.set_value(self.cell("average"), value)
        self.environment.set_value(self.cell("state"), int(band))

    def raise_group_error(self) -> None:
        if self.published:
            self.environment.set_error(self.cell("average"), GROUP_ERROR_MARKER)

    def clear_group_error(self) -> None:
        if self.published:
            self.environment.set_error(self.cell("average"), "")

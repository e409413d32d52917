"""Wiring of one monitored CO2 group."""

from __future__ import annotations

import logging
from typing import List, Optional

from environment.runtime import Environment
from models.group import AggregationMode, SensorGroup
from models.records import PointValue, as_reading
from models.schemas import BootstrapStatus, GroupSnapshot, MemberSnapshot
from services.aggregator import AggregationEngine
from services.discovery import DiscoveryBootstrapper
from services.existence import Targets
from services.validity import ValidityTracker
from settings import Settings, get_settings
from surface.adapter import SurfaceAdapter

logger = logging.getLogger(__name__)


def _marker(value: PointValue) -> Optional[str]:
    return str(value) if value else None


class GroupMonitor:
    """Owns a sensor group and every component acting on it."""

    def __init__(
        self,
        environment: Environment,
        title: str,
        name: str,
        targets: Targets,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.environment = environment
        self.title = title
        self.group = SensorGroup(
            display_name=name,
            aggregation_mode=AggregationMode(settings.default_mode),
        )
        self.surface = SurfaceAdapter(environment, self.group, title)
        self.engine = AggregationEngine(environment, self.group, self.surface)
        self.tracker = ValidityTracker(
            environment,
            self.group,
            self.surface,
            debounce=settings.recovery_debounce,
            on_change=self.engine.recompute,
        )
        self.bootstrapper = DiscoveryBootstrapper(
            environment,
            self.group,
            targets,
            on_ready=self._on_ready,
            interval=settings.probe_interval,
            attempts=settings.probe_attempts,
            member_prefix=settings.member_prefix,
        )

    @property
    def status(self) -> BootstrapStatus:
        return self.bootstrapper.status

    def start(self) -> BootstrapStatus:
        logger.warning(
            "Starting CO2 group, waiting for devices",
            extra={"device": self.group.display_name},
        )
        return self.bootstrapper.start()

    def stop(self) -> None:
        self.bootstrapper.cancel()
        self.tracker.cancel_all()

    def snapshot(self) -> GroupSnapshot:
        average = average_error = state = None
        members: List[MemberSnapshot] = []
        if self.surface.published:
            read = self.environment.get_current_value
            average = as_reading(read(self.surface.cell("average")))
            average_error = _marker(read(f"{self.surface.cell('average')}#error"))
            state = as_reading(read(self.surface.cell("state")))
            for index, address in enumerate(self.group.members):
                exposed = self.group.exposed_address(index)
                members.append(
                    MemberSnapshot(
                        index=index,
                        address=address,
                        exposed_name=self.group.exposed_names[index],
                        value=as_reading(read(exposed)),
                        valid=self.group.valid_flags[index],
                        error=_marker(read(f"{exposed}#error")),
                    )
                )
        return GroupSnapshot(
            device=self.group.display_name,
            title=self.title,
            status=self.status,
            group_valid=self.group.group_valid,
            mode=self.group.aggregation_mode,
            average=average,
            average_error=average_error,
            state=int(state) if state else None,
            members=members,
        )

    def _on_ready(self, group: SensorGroup) -> None:
        self.surface.publish()
        self.surface.register()
        self.tracker.register()
        self.engine.register()
        self.tracker.seed()
        self.engine.recompute()


def create_co2_monitor(
    environment: Environment,
    title: str,
    name: str,
    targets: Targets,
    settings: Optional[Settings] = None,
) -> GroupMonitor:
    """Build a monitor for ``targets`` and start discovering them."""
    monitor = GroupMonitor(environment, title, name, targets, settings=settings)
    monitor.start()
    return monitor

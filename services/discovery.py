"""Bootstrap discovery of the members of a sensor group."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from environment.runtime import Environment
from environment.scheduler import TimerHandle
from models.group import SensorGroup
from models.records import as_reading
from models.schemas import BootstrapStatus
from services.existence import Targets, all_points_exist, normalize_targets, point_exists
from settings import get_settings

logger = logging.getLogger(__name__)


class DiscoveryBootstrapper:
    """Wait for the target points to appear, then admit the ones that did.

    Probing happens every ``interval`` seconds, the first probe one interval
    after :meth:`start`.  Once all targets exist, or ``attempts`` probes have
    failed, a single admission pass appends every existing target to the
    group.  Targets still missing at that point are skipped for good.
    """

    def __init__(
        self,
        environment: Environment,
        group: SensorGroup,
        targets: Targets,
        on_ready: Optional[Callable[[SensorGroup], None]] = None,
        on_failed: Optional[Callable[[SensorGroup], None]] = None,
        interval: Optional[float] = None,
        attempts: Optional[int] = None,
        member_prefix: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.environment = environment
        self.group = group
        self.targets = normalize_targets(targets)
        self.on_ready = on_ready
        self.on_failed = on_failed
        self.interval = interval if interval is not None else settings.probe_interval
        self.attempts = attempts if attempts is not None else settings.probe_attempts
        self.member_prefix = member_prefix if member_prefix is not None else settings.member_prefix
        self.status = BootstrapStatus.pending
        self.attempts_made = 0
        self._timer: Optional[TimerHandle] = None

    def start(self) -> BootstrapStatus:
        if self._timer is not None or self.status is not BootstrapStatus.pending:
            return self.status

        if not self.targets:
            logger.critical(
                "No CO2 devices configured for group",
                extra={"device": self.group.display_name},
            )
            self._finish(BootstrapStatus.failed)
            return self.status

        logger.info(
            "Waiting for CO2 devices",
            extra={"device": self.group.display_name, "address": self.targets},
        )
        self._timer = self.environment.schedule_repeating(self.interval, self._probe)
        return self.status

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def _probe(self) -> None:
        self.attempts_made += 1
        if not all_points_exist(self.environment, self.targets):
            if self.attempts_made < self.attempts:
                logger.debug(
                    "Devices not ready",
                    extra={"device": self.group.display_name, "attempt": self.attempts_made},
                )
                return
            logger.warning(
                "Probe budget exhausted; admitting reachable devices only",
                extra={"device": self.group.display_name, "attempt": self.attempts_made},
            )

        self.cancel()
        self._admit()

    def _admit(self) -> None:
        for address in self.targets:
            if not point_exists(self.environment, address):
                logger.warning(
                    "Skipping unreachable device",
                    extra={"device": self.group.display_name, "address": address},
                )
                continue
            exposed_name = f"{self.member_prefix}{len(self.group)}"
            reading = as_reading(self.environment.get_current_value(address))
            self.group.admit(address, exposed_name, reading)

        if not len(self.group):
            logger.critical(
                "No CO2 devices to track; group not started",
                extra={"device": self.group.display_name, "attempt": self.attempts_made},
            )
            self._finish(BootstrapStatus.failed)
            return

        logger.info(
            "CO2 group bootstrapped",
            extra={"device": self.group.display_name, "member": len(self.group)},
        )
        self._finish(BootstrapStatus.succeeded)

    def _finish(self, status: BootstrapStatus) -> None:
        self.group.bootstrapped = True
        self.status = status
        callback = self.on_ready if status is BootstrapStatus.succeeded else self.on_failed
        if callback is not None:
            callback(self.group)

"""Per-member trust tracking driven by error signals."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Callable, Dict, Optional

from environment.runtime import Environment
from environment.scheduler import TimerHandle
from models.group import SensorGroup
from models.records import PointValue
from settings import get_settings

if TYPE_CHECKING:
    from surface.adapter import SurfaceAdapter

logger = logging.getLogger(__name__)


class ValidityTracker:
    """Valid/Invalid state machine for every member of a group.

    A truthy error signal invalidates the member at once.  A falsy one starts
    a recovery timer; the member is trusted again only when the timer expires
    without the signal having been raised in between.  At most one recovery
    timer exists per member and a newer transition cancels the older timer.
    """

    def __init__(
        self,
        environment: Environment,
        group: SensorGroup,
        surface: Optional["SurfaceAdapter"] = None,
        debounce: Optional[float] = None,
        on_change: Optional[Callable[[], object]] = None,
    ) -> None:
        self.environment = environment
        self.group = group
        self.surface = surface
        self.debounce = debounce if debounce is not None else get_settings().recovery_debounce
        self.on_change = on_change
        self._pending: Dict[int, TimerHandle] = {}

    @property
    def pending_recoveries(self) -> Dict[int, TimerHandle]:
        return dict(self._pending)

    def register(self) -> None:
        self.environment.subscribe_on_change(self.group.error_signals, self.handle_error_signal)

    def seed(self) -> None:
        """Apply error signals that were already raised before subscription."""
        for index, signal in enumerate(self.group.error_signals):
            marker = self.environment.get_current_value(signal)
            if marker:
                if self.surface is not None:
                    self.surface.publish_member_error(index, marker)
                self._invalidate(index)

    def handle_error_signal(self, new_value: PointValue, address: str) -> None:
        index = self.group.index_of(address)
        if index < 0 or self.group.error_signals[index] != address:
            return

        if self.surface is not None:
            self.surface.publish_member_error(index, new_value)

        if new_value:
            self._invalidate(index)
        else:
            self._schedule_recovery(index)

    def cancel_all(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _invalidate(self, index: int) -> None:
        self._cancel_pending(index)
        if not self.group.valid_flags[index]:
            return

        self.group.valid_flags[index] = False
        self.group.recompute_validity()
        logger.warning(
            "Member fault; excluded from aggregation",
            extra={
                "device": self.group.display_name,
                "member": index,
                "address": self.group.members[index],
            },
        )
        if not self.group.group_valid:
            logger.error(
                "No valid members left in group",
                extra={"device": self.group.display_name},
            )
        self._notify()

    def _schedule_recovery(self, index: int) -> None:
        self._cancel_pending(index)
        if self.group.valid_flags[index]:
            return
        self._pending[index] = self.environment.schedule_once(
            self.debounce, partial(self._recover, index)
        )

    def _recover(self, index: int) -> None:
        self._pending.pop(index, None)
        self.group.valid_flags[index] = True
        self.group.group_valid = True
        logger.info(
            "Member recovered",
            extra={
                "device": self.group.display_name,
                "member": index,
                "address": self.group.members[index],
            },
        )
        self._notify()

    def _cancel_pending(self, index: int) -> None:
        handle = self._pending.pop(index, None)
        if handle is not None:
            handle.cancel()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

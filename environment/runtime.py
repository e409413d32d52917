"""The environment a sensor group runs in: points, events and timers."""

from __future__ import annotations

from functools import lru_cache
from typing import Callable, Iterable, Optional

from environment.events import ChangeHandler, EventBus, Predicate
from environment.points import PointStore
from environment.scheduler import TimerHandle, VirtualScheduler
from models.records import PointValue
from models.schemas import CellDefinition, DeviceDefinition


class Environment:
    """Facade over the point store, event bus and scheduler.

    Components only talk to the outside world through these methods, so any
    host that provides them can run a sensor group.
    """

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        points: Optional[PointStore] = None,
        scheduler: Optional[VirtualScheduler] = None,
    ) -> None:
        self.bus = bus or EventBus()
        self.points = points or PointStore(self.bus)
        self.scheduler = scheduler or VirtualScheduler(after_fire=self.bus.evaluate_edges)

    # Queries and subscriptions

    def exists_and_reachable(self, address: str) -> bool:
        return self.points.exists(address)

    def get_current_value(self, address: str) -> PointValue:
        return self.points.read(address)

    def subscribe_on_change(self, addresses: Iterable[str], handler: ChangeHandler) -> None:
        self.bus.subscribe_on_change(list(addresses), handler)

    def subscribe_on_become_true(self, predicate: Predicate, handler: Callable[[], None]) -> None:
        self.bus.subscribe_on_become_true(predicate, handler)

    # Timers

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return self.scheduler.schedule_repeating(interval, callback)

    def schedule_once(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.scheduler.schedule_once(delay, callback)

    def advance(self, seconds: float) -> None:
        self.scheduler.advance(seconds)

    # Display surface

    def define_device(self, name: str, definition: DeviceDefinition) -> None:
        self.points.define_device(name, definition)

    def add_control(self, device: str, control: str, cell: CellDefinition) -> None:
        self.points.add_control(device, control, cell)

    def set_value(self, address: str, value: PointValue) -> None:
        self.points.write(address, value)

    def set_error(self, address: str, marker: PointValue) -> None:
        self.points.write(f"{address}#error", marker)


@lru_cache
def build_default_environment() -> Environment:
    return Environment()

"""Serial change notifications and edge-triggered conditions."""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterable, List, Tuple

ChangeHandler = Callable[[Any, str], None]
Predicate = Callable[[], bool]


@dataclass
class _EdgeSubscription:
    predicate: Predicate
    handler: Callable[[], None]
    last: bool = False


class EventBus:
    """Deliver "value changed" events one at a time, in publish order.

    Events published from inside a handler are queued and delivered after the
    current handler chain completes.  Edge subscriptions are re-evaluated after
    every delivered event.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[ChangeHandler]] = defaultdict(list)
        self._edges: List[_EdgeSubscription] = []
        self._queue: Deque[Tuple[str, Any]] = deque()
        self._dispatching = False

    def subscribe_on_change(self, addresses: Iterable[str], handler: ChangeHandler) -> None:
        for address in addresses:
            self._handlers[address].append(handler)

    def subscribe_on_become_true(
        self, predicate: Predicate, handler: Callable[[], None]
    ) -> None:
        self._edges.append(_EdgeSubscription(predicate=predicate, handler=handler))

    def publish(self, address: str, value: Any) -> None:
        self._queue.append((address, value))
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                current, payload = self._queue.popleft()
                for handler in list(self._handlers.get(current, ())):
                    handler(payload, current)
                self.evaluate_edges()
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._dispatching = False

    def evaluate_edges(self) -> None:
        for subscription in list(self._edges):
            current = bool(subscription.predicate())
            fire = current and not subscription.last
            subscription.last = current
            if fire:
                subscription.handler()

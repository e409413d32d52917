"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

PointValue = Union[float, int, str, None]


@dataclass(slots=True)
class PointUpdate:
    """A single timestamped write to a data point, as read from a replay CSV."""

    address: str
    timestamp: datetime
    value: PointValue

    @property
    def is_error_signal(self) -> bool:
        return self.address.endswith("#error")


def as_reading(value: PointValue) -> Optional[float]:
    """Coerce a raw point value into a numeric reading, ``None`` if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    parsed = float(value)
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed

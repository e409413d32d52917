"""The sensor group aggregate and the enumerations published alongside it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional


class AggregationMode(IntEnum):
    """How member readings are combined into the synthetic value."""

    MIN = 1
    MAX = 2
    MEAN = 3

    @classmethod
    def parse(cls, raw: object) -> Optional["AggregationMode"]:
        """Return the mode for ``raw`` or ``None`` when it names no mode."""
        if isinstance(raw, bool) or raw is None:
            return None
        if isinstance(raw, str):
            candidate = raw.strip()
            if candidate.upper() in cls.__members__:
                return cls[candidate.upper()]
            try:
                raw = float(candidate)
            except ValueError:
                return None
        if isinstance(raw, float):
            if not raw.is_integer():
                return None
            raw = int(raw)
        if not isinstance(raw, int):
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


class HealthBand(IntEnum):
    ACCEPTABLE = 1
    STALE_AIR = 2
    LETHARGY = 3
    ADVERSE = 4

    @property
    def description(self) -> str:
        return HEALTH_BAND_DESCRIPTIONS[self]


MODE_LABELS: Dict[AggregationMode, str] = {
    AggregationMode.MIN: "Minimum",
    AggregationMode.MAX: "Maximum",
    AggregationMode.MEAN: "Arithmetic mean",
}

HEALTH_BAND_LABELS: Dict[HealthBand, str] = {
    HealthBand.ACCEPTABLE: "Norm",
    HealthBand.STALE_AIR: "Stale air",
    HealthBand.LETHARGY: "General lethargy",
    HealthBand.ADVERSE: "Exceeding",
}

HEALTH_BAND_DESCRIPTIONS: Dict[HealthBand, str] = {
    HealthBand.ACCEPTABLE: "Acceptable",
    HealthBand.STALE_AIR: "Stale air complaints",
    HealthBand.LETHARGY: "General lethargy",
    HealthBand.ADVERSE: "Possible adverse health effects",
}


def error_signal_for(address: str) -> str:
    return f"{address}#error"


@dataclass
class SensorGroup:
    """Parallel per-member sequences plus the group-level state.

    Index ``i`` of ``members``, ``error_signals``, ``exposed_names``,
    ``latest_values`` and ``valid_flags`` always describes the same member.
    Members are only appended through :meth:`admit`.
    """

    display_name: str
    aggregation_mode: AggregationMode = AggregationMode.MEAN
    members: List[str] = field(default_factory=list)
    error_signals: List[str] = field(default_factory=list)
    exposed_names: List[str] = field(default_factory=list)
    latest_values: List[Optional[float]] = field(default_factory=list)
    valid_flags: List[bool] = field(default_factory=list)
    group_valid: bool = True
    bootstrapped: bool = False

    def __len__(self) -> int:
        return len(self.members)

    def admit(self, address: str, exposed_name: str, value: Optional[float] = None) -> int:
        if self.bootstrapped:
            raise RuntimeError(f"Group {self.display_name!r} is already bootstrapped.")
        self.members.append(address)
        self.error_signals.append(error_signal_for(address))
        self.exposed_names.append(exposed_name)
        self.latest_values.append(value)
        self.valid_flags.append(True)
        self.recompute_validity()
        return len(self.members) - 1

    def index_of(self, address: str) -> int:
        """Index of a member by its address or by its error signal address."""
        if address in self.members:
            return self.members.index(address)
        if address in self.error_signals:
            return self.error_signals.index(address)
        return -1

    def exposed_address(self, index: int) -> str:
        return f"{self.display_name}/{self.exposed_names[index]}"

    def recompute_validity(self) -> bool:
        self.group_valid = any(self.valid_flags)
        return self.group_valid

    def valid_values(self) -> List[float]:
        """Latest readings of valid members that have reported at least once."""
        return [
            value
            for value, valid in zip(self.latest_values, self.valid_flags)
            if valid and value is not None
        ]

"""Replay of recorded point updates through a monitor on the in-memory environment."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from typing import List, Optional, TextIO, Tuple

from environment.points import parse_address
from environment.runtime import Environment
from models.group import AggregationMode
from models.records import PointUpdate, as_reading
from models.schemas import ReplayError, ReplayResult
from services.existence import Targets
from services.monitor import GroupMonitor
from settings import Settings, get_settings

REQUIRED_COLUMNS = ("timestamp", "address", "value")

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def parse_updates(stream: TextIO) -> Tuple[List[PointUpdate], List[ReplayError]]:
    """Read point updates from CSV, collecting one error per rejected row.

    Raises ``ValueError`` when the header is missing or incomplete.
    """
    reader = csv.DictReader(stream)
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.lower().strip(): name for name in reader.fieldnames}
    missing = [column for column in REQUIRED_COLUMNS if column not in normalized]
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    updates: List[PointUpdate] = []
    errors: List[ReplayError] = []

    def reject(row_number: int, reason: str) -> None:
        logger.warning("Skipping row", extra={"row_number": row_number, "reason": reason})
        errors.append(ReplayError(row_number=row_number, reason=reason))

    for row_number, row in enumerate(reader, start=2):
        timestamp_raw = (row.get(normalized["timestamp"]) or "").strip()
        address = (row.get(normalized["address"]) or "").strip()
        value_raw = (row.get(normalized["value"]) or "").strip()

        if not address:
            reject(row_number, "missing address")
            continue
        try:
            parse_address(address)
        except ValueError:
            reject(row_number, "invalid address")
            continue

        try:
            timestamp = parse_timestamp(timestamp_raw)
        except ValueError:
            reject(row_number, "invalid timestamp")
            continue

        update = PointUpdate(address=address, timestamp=timestamp, value=value_raw)
        if not update.is_error_signal:
            if not value_raw:
                reject(row_number, "missing value")
                continue
            reading = as_reading(value_raw)
            if reading is None:
                reject(row_number, "invalid numeric value")
                continue
            update.value = reading

        updates.append(update)

    updates.sort(key=lambda item: item.timestamp)
    return updates, errors


class ReplayService:
    """Drive a :class:`GroupMonitor` from recorded updates on a virtual clock.

    Points are created the first time the recording mentions them, so
    discovery sees devices appear over time exactly as recorded.
    """

    def __init__(
        self,
        environment: Optional[Environment] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.environment = environment or Environment()
        self.settings = settings or get_settings()

    def run(
        self,
        stream: TextIO,
        targets: Targets,
        name: str,
        title: str,
        mode: Optional[AggregationMode] = None,
    ) -> ReplayResult:
        updates, errors = parse_updates(stream)

        monitor = GroupMonitor(self.environment, title, name, targets, settings=self.settings)
        if mode is not None:
            monitor.group.aggregation_mode = mode
        monitor.start()

        scheduler = self.environment.scheduler
        origin = scheduler.now
        first = updates[0].timestamp if updates else None
        for update in updates:
            assert first is not None
            offset = (update.timestamp - first).total_seconds()
            scheduler.advance_to(origin + offset)
            self._apply(update)

        # Let outstanding discovery probes and recovery timers run out.
        scheduler.advance(self._settle_time())
        monitor.stop()

        return ReplayResult(
            rows_applied=len(updates),
            duration_s=scheduler.now - origin,
            errors=errors,
            snapshot=monitor.snapshot(),
        )

    def _settle_time(self) -> float:
        discovery = self.settings.probe_interval * (self.settings.probe_attempts + 1)
        return discovery + self.settings.recovery_debounce

    def _apply(self, update: PointUpdate) -> None:
        points = self.environment.points
        points.ensure_point(update.address)
        if update.is_error_signal:
            self.environment.set_error(update.address[: -len("#error")], update.value)
        else:
            self.environment.set_value(update.address, update.value)

"""Pydantic schemas for published cells, snapshots and replay results."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from models.group import AggregationMode, HealthBand

CellValue = Union[float, int, str, None]


class BootstrapStatus(str, Enum):
    """Discovery lifecycle of a sensor group."""

    pending = "pending"
    succeeded = "succeeded"
    failed = "failed"


class CellDefinition(BaseModel):
    """Metadata and initial value of one control on a virtual device."""

    title: str
    type: str = "value"
    value: CellValue = None
    readonly: bool = True
    units: Optional[str] = None
    enum: Dict[int, str] = Field(default_factory=dict)
    force_default: bool = Field(
        default=False,
        description="Overwrite a value already held by an existing control.",
    )


class DeviceDefinition(BaseModel):
    title: str
    cells: Dict[str, CellDefinition] = Field(default_factory=dict)


class MemberSnapshot(BaseModel):
    index: int = Field(..., ge=0)
    address: str
    exposed_name: str
    value: Optional[float] = None
    valid: bool
    error: Optional[str] = None


class GroupSnapshot(BaseModel):
    """Published state of one sensor group at a point in time."""

    device: str
    title: str
    status: BootstrapStatus
    group_valid: bool
    mode: AggregationMode
    average: Optional[float] = None
    average_error: Optional[str] = None
    state: Optional[HealthBand] = None
    members: List[MemberSnapshot] = Field(default_factory=list)


class ReplayError(BaseModel):
    """A CSV row skipped during replay."""

    row_number: int = Field(..., ge=1)
    reason: str


class ReplayResult(BaseModel):
    rows_applied: int = Field(..., ge=0)
    duration_s: float = Field(default=0.0, description="Virtual time covered by the replay.")
    errors: List[ReplayError] = Field(default_factory=list)
    snapshot: GroupSnapshot

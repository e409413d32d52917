from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from environment.events import EventBus
from models.records import PointValue
from models.schemas import CellDefinition, DeviceDefinition

ERROR_SUFFIX = "#error"


def parse_address(address: str) -> Tuple[str, str, bool]:
    """Split ``device/control[#error]`` into its parts."""
    is_error = address.endswith(ERROR_SUFFIX)
    base = address[: -len(ERROR_SUFFIX)] if is_error else address
    device, sep, control = base.partition("/")
    if not sep or not device or not control or "/" in control:
        raise ValueError(f"Invalid point address {address!r}; expected 'device/control'.")
    return device, control, is_error


@dataclass
class Control:
    definition: CellDefinition
    value: PointValue = None
    error: PointValue = ""


@dataclass
class Device:
    title: str
    controls: Dict[str, Control]


class PointStore:
    """In-memory registry of devices and their controls.

    Each control holds a value and an error marker.  The marker is addressed
    as ``device/control#error``.  Every write that changes either one is
    published on the event bus under the written address.
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._devices: Dict[str, Device] = {}

    def define_device(self, name: str, definition: DeviceDefinition) -> None:
        if name in self._devices:
            raise ValueError(f"Device {name!r} is already defined.")
        controls = {
            control: Control(definition=cell, value=cell.value)
            for control, cell in definition.cells.items()
        }
        self._devices[name] = Device(title=definition.title, controls=controls)

    def add_control(self, device: str, control: str, cell: CellDefinition) -> None:
        target = self._require_device(device)
        existing = target.controls.get(control)
        if existing is not None and not cell.force_default:
            existing.definition = cell
            return
        target.controls[control] = Control(definition=cell, value=cell.value)
        if existing is not None and existing.value != cell.value:
            self._bus.publish(f"{device}/{control}", cell.value)

    def ensure_point(self, address: str) -> None:
        """Create the device and control behind ``address`` if they are missing."""
        device, control, _ = parse_address(address)
        target = self._devices.setdefault(device, Device(title=device, controls={}))
        target.controls.setdefault(control, Control(definition=CellDefinition(title=control)))

    def devices(self) -> Iterable[str]:
        return sorted(self._devices)

    def controls(self, device: str) -> Iterable[str]:
        return list(self._require_device(device).controls)

    def definition(self, address: str) -> CellDefinition:
        return self._control(address).definition

    def exists(self, address: str) -> bool:
        try:
            device, control, _ = parse_address(address)
        except ValueError:
            return False
        target = self._devices.get(device)
        return target is not None and control in target.controls

    def read(self, address: str) -> PointValue:
        _, _, is_error = parse_address(address)
        point = self._control(address)
        return point.error if is_error else point.value

    def write(self, address: str, value: PointValue) -> None:
        _, _, is_error = parse_address(address)
        point = self._control(address)
        if is_error:
            value = "" if value is None else value
            if point.error == value:
                return
            point.error = value
        else:
            if point.value == value and type(point.value) is type(value):
                return
            point.value = value
        self._bus.publish(address, value)

    def _require_device(self, name: str) -> Device:
        target = self._devices.get(name)
        if target is None:
            raise KeyError(f"Device {name!r} not found.")
        return target

    def _control(self, address: str) -> Control:
        device, control, _ = parse_address(address)
        point: Optional[Control] = self._require_device(device).controls.get(control)
        if point is None:
            raise KeyError(f"Control {control!r} not found on device {device!r}.")
        return point

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_DEVICE_NAME = "co2_office"
DEFAULT_DEVICE_TITLE = "CO2 in the office"

_DEVICE_NAME_ENV = "CO2_DEVICE_NAME"
_DEVICE_TITLE_ENV = "CO2_DEVICE_TITLE"


@dataclass(frozen=True)
class CLIConfig:
    device_name: str = DEFAULT_DEVICE_NAME
    device_title: str = DEFAULT_DEVICE_TITLE


def _read_str(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def load_config(
    device_name: Optional[str] = None,
    device_title: Optional[str] = None,
) -> CLIConfig:
    name = device_name or _read_str(os.getenv(_DEVICE_NAME_ENV), DEFAULT_DEVICE_NAME)
    title = device_title or _read_str(os.getenv(_DEVICE_TITLE_ENV), DEFAULT_DEVICE_TITLE)
    if "/" in name:
        raise ValueError(f"Device name {name!r} must not contain '/'.")
    return CLIConfig(device_name=name, device_title=title)

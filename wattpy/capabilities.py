"""Capability ids and the normalized events emitted for them."""

from __future__ import annotations

import dataclasses
from typing import Any

from wattpy.util import utc_timestamp

ENERGY_METER = "energyMeter"
POWER_METER = "powerMeter"
POWER_CONSUMPTION_REPORT = "powerConsumptionReport"
SWITCH = "switch"
SWITCH_LEVEL = "switchLevel"
COLOR_CONTROL = "colorControl"
COLOR_TEMPERATURE = "colorTemperature"
MOTION_SENSOR = "motionSensor"
BUTTON = "button"
REFRESH = "refresh"

# Devices that declare none of these only join with the generic profile
DRIVER_CAPABILITIES = (
    SWITCH,
    SWITCH_LEVEL,
    COLOR_CONTROL,
    COLOR_TEMPERATURE,
    MOTION_SENSOR,
    BUTTON,
    POWER_METER,
    ENERGY_METER,
    POWER_CONSUMPTION_REPORT,
)


@dataclasses.dataclass(frozen=True)
class CapabilityEvent:
    capability: str
    attribute: str
    value: Any
    unit: str | None = None

    def as_dict(self) -> dict[str, Any]:
        obj = {"value": self.value}

        if self.unit is not None:
            obj["unit"] = self.unit

        return obj


def energy(value_wh: float) -> CapabilityEvent:
    return CapabilityEvent(ENERGY_METER, "energy", value_wh, unit="Wh")


def power(value_w: float) -> CapabilityEvent:
    return CapabilityEvent(POWER_METER, "power", value_w, unit="W")


@dataclasses.dataclass(frozen=True)
class PowerConsumptionReport:
    """Energy consumed between two poll reports, in watt hours."""

    start: float
    end: float
    delta_energy_wh: float
    energy_wh: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "start": utc_timestamp(self.start),
            "end": utc_timestamp(self.end),
            "deltaEnergy": self.delta_energy_wh,
            "energy": self.energy_wh,
        }

    def as_event(self) -> CapabilityEvent:
        return CapabilityEvent(
            POWER_CONSUMPTION_REPORT, "powerConsumption", self.as_dict()
        )

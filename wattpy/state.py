"""Per-device state owned by the driver."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING, Any

import wattpy.types as t

if TYPE_CHECKING:
    from wattpy.topology import ElectricalTopologyMap, EndpointElectricalInfo


@dataclasses.dataclass
class EnergyState(t.BaseDataclassMixin):
    """Energy accumulation and poll scheduling state of a single device."""

    cumulative_supported: bool = False
    cumulative_not_supported: bool = False
    subscription_seen: bool = False
    first_report_time: float | None = None
    poll_interval: float | None = None
    poll_timer: asyncio.Task | None = None
    total_imported_wh: dict[int, float] = dataclasses.field(default_factory=dict)
    last_poll_report_time: float | None = None
    last_emitted_energy_wh: float | None = None
    warmup_complete: bool = False

    @property
    def total_wh(self) -> float:
        return sum(self.total_imported_wh.values(), 0.0)

    def reset(self) -> None:
        """Forget everything learned about the device, cancelling any poll task."""
        if self.poll_timer is not None:
            self.poll_timer.cancel()

        for field in dataclasses.fields(self):
            if field.default_factory is not dataclasses.MISSING:
                setattr(self, field.name, field.default_factory())
            else:
                setattr(self, field.name, field.default)

    def as_dict(self) -> dict[str, Any]:
        return {
            "cumulative_not_supported": self.cumulative_not_supported,
            "first_report_time": self.first_report_time,
            "poll_interval": self.poll_interval,
            # JSON object keys are always strings
            "total_imported_wh": {
                str(int(ep)): value for ep, value in self.total_imported_wh.items()
            },
            "last_poll_report_time": self.last_poll_report_time,
            "last_emitted_energy_wh": self.last_emitted_energy_wh,
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> EnergyState:
        poll_interval = obj.get("poll_interval")

        return cls(
            cumulative_not_supported=obj.get("cumulative_not_supported", False),
            # A warm-up interrupted by a restart starts over from the next report
            first_report_time=(
                obj.get("first_report_time") if poll_interval is not None else None
            ),
            poll_interval=poll_interval,
            total_imported_wh={
                int(ep): float(value)
                for ep, value in obj.get("total_imported_wh", {}).items()
            },
            last_poll_report_time=obj.get("last_poll_report_time"),
            last_emitted_energy_wh=obj.get("last_emitted_energy_wh"),
            warmup_complete=poll_interval is not None,
        )


@dataclasses.dataclass
class DeviceState(t.BaseDataclassMixin):
    """Everything the driver remembers about a device between reports."""

    energy: EnergyState = dataclasses.field(default_factory=EnergyState)

    # Commissioning only, never persisted
    electrical_endpoints: list[EndpointElectricalInfo] | None = None
    topology: ElectricalTopologyMap | None = None
    outstanding_topology_reads: set[int] = dataclasses.field(default_factory=set)

    component_to_endpoint: dict[str, int] = dataclasses.field(default_factory=dict)
    is_parent_child_device: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "energy": self.energy.as_dict(),
            "component_to_endpoint": dict(self.component_to_endpoint),
            "is_parent_child_device": self.is_parent_child_device,
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> DeviceState:
        return cls(
            energy=EnergyState.from_dict(obj.get("energy", {})),
            component_to_endpoint={
                component: int(ep)
                for component, ep in obj.get("component_to_endpoint", {}).items()
            },
            is_parent_child_device=obj.get("is_parent_child_device", False),
        )

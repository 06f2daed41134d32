from __future__ import annotations

from collections.abc import Mapping
import dataclasses
from typing import Any, Final

import wattpy.types as t
from wattpy.clusters import AttributeDef, BaseAttributeDefs, Cluster


@dataclasses.dataclass(frozen=True)
class EnergyMeasurementStruct:
    """Energy measured over a time slice, `energy` is in milliwatt hours."""

    energy: t.int64s | None = None
    start_timestamp: t.uint32_t | None = None
    end_timestamp: t.uint32_t | None = None
    start_systime: t.uint64_t | None = None
    end_systime: t.uint64_t | None = None

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)

            if value is None:
                continue

            field_type = _STRUCT_FIELD_TYPES[field.name]
            object.__setattr__(self, field.name, field_type(value))

        if self.energy is not None and self.energy < 0:
            raise ValueError(f"Imported energy cannot be negative: {self.energy}")

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> EnergyMeasurementStruct:
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in obj.items() if k in names})


_STRUCT_FIELD_TYPES = {
    "energy": t.int64s,
    "start_timestamp": t.uint32_t,
    "end_timestamp": t.uint32_t,
    "start_systime": t.uint64_t,
    "end_systime": t.uint64_t,
}


class EndpointList(list):
    """A list of endpoint ids, each checked to be a 16 bit endpoint number."""

    def __init__(self, iterable=()) -> None:
        if isinstance(iterable, (str, bytes, Mapping)):
            raise TypeError(f"Not a list of endpoint ids: {iterable!r}")

        super().__init__(t.EndpointId(endpoint_id) for endpoint_id in iterable)


class ElectricalPowerMeasurement(Cluster):
    cluster_id: Final[t.ClusterId] = 0x0090
    name: Final = "Electrical Power Measurement"
    ep_attribute: Final = "electrical_power_measurement"

    class Feature(t.bitmap32):
        DIRECT_CURRENT = 0x01
        ALTERNATING_CURRENT = 0x02
        POLYPHASE_POWER = 0x04
        HARMONICS = 0x08
        POWER_QUALITY = 0x10

    class AttributeDefs(BaseAttributeDefs):
        power_mode: Final = AttributeDef(id=0x0000, type=t.enum8, mandatory=True)
        number_of_measurement_types: Final = AttributeDef(
            id=0x0001, type=t.uint8_t, access="r", mandatory=True
        )
        voltage: Final = AttributeDef(id=0x0004, type=t.int64s)
        active_current: Final = AttributeDef(id=0x0005, type=t.int64s)
        # milliwatts
        active_power: Final = AttributeDef(id=0x0008, type=t.int64s, mandatory=True)


class ElectricalEnergyMeasurement(Cluster):
    cluster_id: Final[t.ClusterId] = 0x0091
    name: Final = "Electrical Energy Measurement"
    ep_attribute: Final = "electrical_energy_measurement"

    class Feature(t.bitmap32):
        IMPORTED_ENERGY = 0x01
        EXPORTED_ENERGY = 0x02
        CUMULATIVE_ENERGY = 0x04
        PERIODIC_ENERGY = 0x08

    class AttributeDefs(BaseAttributeDefs):
        cumulative_energy_imported: Final = AttributeDef(
            id=0x0001, type=EnergyMeasurementStruct
        )
        cumulative_energy_exported: Final = AttributeDef(
            id=0x0002, type=EnergyMeasurementStruct
        )
        periodic_energy_imported: Final = AttributeDef(
            id=0x0003, type=EnergyMeasurementStruct
        )
        periodic_energy_exported: Final = AttributeDef(
            id=0x0004, type=EnergyMeasurementStruct
        )


class PowerTopology(Cluster):
    cluster_id: Final[t.ClusterId] = 0x009C
    name: Final = "Power Topology"
    ep_attribute: Final = "power_topology"

    class Feature(t.bitmap32):
        NODE_TOPOLOGY = 0x01
        TREE_TOPOLOGY = 0x02
        SET_TOPOLOGY = 0x04
        DYNAMIC_POWER_FLOW = 0x08

    class AttributeDefs(BaseAttributeDefs):
        available_endpoints: Final = AttributeDef(
            id=0x0000, type=EndpointList, access="r"
        )
        active_endpoints: Final = AttributeDef(id=0x0001, type=EndpointList)

from __future__ import annotations

from typing import Final

import wattpy.types as t
from wattpy.clusters import AttributeDef, BaseAttributeDefs, Cluster


class OnOff(Cluster):
    cluster_id: Final[t.ClusterId] = 0x0006
    name: Final = "On/Off"
    ep_attribute: Final = "on_off"

    class Feature(t.bitmap32):
        LIGHTING = 0x01
        DEAD_FRONT_BEHAVIOR = 0x02
        OFF_ONLY = 0x04

    class AttributeDefs(BaseAttributeDefs):
        on_off: Final = AttributeDef(id=0x0000, type=bool, mandatory=True)


class LevelControl(Cluster):
    cluster_id: Final[t.ClusterId] = 0x0008
    name: Final = "Level control"
    ep_attribute: Final = "level"

    class Feature(t.bitmap32):
        ON_OFF = 0x01
        LIGHTING = 0x02
        FREQUENCY = 0x04

    class AttributeDefs(BaseAttributeDefs):
        current_level: Final = AttributeDef(id=0x0000, type=t.uint8_t, mandatory=True)
        min_level: Final = AttributeDef(id=0x0002, type=t.uint8_t, access="r")
        max_level: Final = AttributeDef(id=0x0003, type=t.uint8_t, access="r")


class Occupancy(t.bitmap8):
    Unoccupied = 0b00000000
    Occupied = 0b00000001


class OccupancySensing(Cluster):
    cluster_id: Final[t.ClusterId] = 0x0406
    name: Final = "Occupancy Sensing"
    ep_attribute: Final = "occupancy"

    class AttributeDefs(BaseAttributeDefs):
        occupancy: Final = AttributeDef(id=0x0000, type=Occupancy, mandatory=True)

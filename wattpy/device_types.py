from __future__ import annotations

import wattpy.types as t


class DeviceType(t.enum32):
    ROOT_NODE = 0x0016
    POWER_SOURCE = 0x0011
    AGGREGATOR = 0x000E
    GENERIC_SWITCH = 0x000F
    ON_OFF_LIGHT = 0x0100
    DIMMABLE_LIGHT = 0x0101
    ON_OFF_LIGHT_SWITCH = 0x0103
    DIMMER_SWITCH = 0x0104
    COLOR_DIMMER_SWITCH = 0x0105
    ON_OFF_PLUG_IN_UNIT = 0x010A
    DIMMABLE_PLUG_IN_UNIT = 0x010B
    COLOR_TEMPERATURE_LIGHT = 0x010C
    EXTENDED_COLOR_LIGHT = 0x010D
    MOUNTED_ON_OFF_CONTROL = 0x010F
    MOUNTED_DIMMABLE_LOAD_CONTROL = 0x0110
    ELECTRICAL_SENSOR = 0x0510


PROFILES = {
    DeviceType.ON_OFF_LIGHT: "light-binary",
    DeviceType.DIMMABLE_LIGHT: "light-level",
    DeviceType.COLOR_TEMPERATURE_LIGHT: "light-level-colorTemperature",
    DeviceType.EXTENDED_COLOR_LIGHT: "light-color-level",
    DeviceType.ON_OFF_PLUG_IN_UNIT: "plug-binary",
    DeviceType.DIMMABLE_PLUG_IN_UNIT: "plug-level",
    DeviceType.ON_OFF_LIGHT_SWITCH: "switch-binary",
    DeviceType.DIMMER_SWITCH: "switch-level",
    DeviceType.COLOR_DIMMER_SWITCH: "switch-color-level",
    DeviceType.MOUNTED_ON_OFF_CONTROL: "switch-binary",
    DeviceType.MOUNTED_DIMMABLE_LOAD_CONTROL: "switch-level",
}

# Switches that control other devices rather than a local load
LIGHT_SWITCH_TYPES = (
    DeviceType.ON_OFF_LIGHT_SWITCH,
    DeviceType.DIMMER_SWITCH,
    DeviceType.COLOR_DIMMER_SWITCH,
)

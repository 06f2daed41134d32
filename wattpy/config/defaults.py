"""Default configuration values."""

from __future__ import annotations

from wattpy.const import MINIMUM_REPORT_INTERVAL

CONF_ENERGY_MINIMUM_REPORT_INTERVAL_DEFAULT = MINIMUM_REPORT_INTERVAL
CONF_ENERGY_POLL_REPORTS_ENABLED_DEFAULT = True

CONF_PROFILES_DEVICE_OVERRIDES_DEFAULT = [
    # Eve Energy Outlets present as plugs but are wired as in-wall switches
    {
        "vendor_id": 0x1321,
        "product_id": 0x000C,
        "initial_profile": "plug-binary",
        "target_profile": "switch-binary",
    },
    {
        "vendor_id": 0x1321,
        "product_id": 0x000D,
        "initial_profile": "plug-binary",
        "target_profile": "switch-binary",
    },
]

# Color profiles are assigned by fingerprint and must not be replaced at runtime
CONF_PROFILES_STATIC_DEFAULT = [
    "light-level-colorTemperature",
    "light-color-level",
]

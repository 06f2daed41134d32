"""Config schemas and validation."""

from __future__ import annotations

import voluptuous as vol

from wattpy.config.defaults import (
    CONF_ENERGY_MINIMUM_REPORT_INTERVAL_DEFAULT,
    CONF_ENERGY_POLL_REPORTS_ENABLED_DEFAULT,
    CONF_PROFILES_DEVICE_OVERRIDES_DEFAULT,
    CONF_PROFILES_STATIC_DEFAULT,
)
from wattpy.config.validators import cv_boolean, cv_hex, cv_profile_name

CONF_DATABASE = "database_path"
CONF_ENERGY = "energy"
CONF_ENERGY_MINIMUM_REPORT_INTERVAL = "minimum_report_interval"
CONF_ENERGY_POLL_REPORTS_ENABLED = "poll_reports_enabled"
CONF_PROFILES = "profiles"
CONF_PROFILES_DEVICE_OVERRIDES = "device_overrides"
CONF_PROFILES_STATIC = "static_profiles"
CONF_OVERRIDE_VENDOR_ID = "vendor_id"
CONF_OVERRIDE_PRODUCT_ID = "product_id"
CONF_OVERRIDE_INITIAL_PROFILE = "initial_profile"
CONF_OVERRIDE_TARGET_PROFILE = "target_profile"

SCHEMA_DEVICE_OVERRIDE = vol.Schema(
    {
        vol.Required(CONF_OVERRIDE_VENDOR_ID): vol.All(
            cv_hex, vol.Range(min=0x0000, max=0xFFFF)
        ),
        vol.Required(CONF_OVERRIDE_PRODUCT_ID): vol.All(
            cv_hex, vol.Range(min=0x0000, max=0xFFFF)
        ),
        vol.Required(CONF_OVERRIDE_INITIAL_PROFILE): cv_profile_name,
        vol.Required(CONF_OVERRIDE_TARGET_PROFILE): cv_profile_name,
    }
)

SCHEMA_ENERGY = vol.Schema(
    {
        vol.Optional(
            CONF_ENERGY_MINIMUM_REPORT_INTERVAL,
            default=CONF_ENERGY_MINIMUM_REPORT_INTERVAL_DEFAULT,
        ): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional(
            CONF_ENERGY_POLL_REPORTS_ENABLED,
            default=CONF_ENERGY_POLL_REPORTS_ENABLED_DEFAULT,
        ): cv_boolean,
    }
)

SCHEMA_PROFILES = vol.Schema(
    {
        vol.Optional(
            CONF_PROFILES_DEVICE_OVERRIDES,
            default=CONF_PROFILES_DEVICE_OVERRIDES_DEFAULT,
        ): [SCHEMA_DEVICE_OVERRIDE],
        vol.Optional(
            CONF_PROFILES_STATIC, default=CONF_PROFILES_STATIC_DEFAULT
        ): [cv_profile_name],
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_DATABASE, default=None): vol.Any(None, str),
        vol.Optional(CONF_ENERGY, default={}): SCHEMA_ENERGY,
        vol.Optional(CONF_PROFILES, default={}): SCHEMA_PROFILES,
    },
    extra=vol.ALLOW_EXTRA,
)

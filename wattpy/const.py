"""wattpy Constants."""

from __future__ import annotations

SIG_ENDPOINTS = "endpoints"
SIG_EP_DEVICE_TYPES = "device_types"
SIG_EP_INPUT = "input_clusters"
SIG_EP_OUTPUT = "output_clusters"
SIG_CAPABILITIES = "capabilities"
SIG_LABEL = "label"
SIG_PROFILE = "profile"
SIG_VENDOR_ID = "vendor_id"
SIG_PRODUCT_ID = "product_id"

MAIN_COMPONENT = "main"

# Capability events carry watts and watt-hours, reports carry milli units
MILLI_CONVERSION = 1000

MINIMUM_REPORT_INTERVAL = 15 * 60

ISO8601_UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

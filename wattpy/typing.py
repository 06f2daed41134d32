"""Typing helpers for wattpy."""

from __future__ import annotations

from typing import TYPE_CHECKING

# pylint: disable=invalid-name
DriverApplicationType = "DriverApplication"
DeviceType = "Device"
EndpointType = "Endpoint"


if TYPE_CHECKING:
    import wattpy.application
    import wattpy.device
    import wattpy.endpoint

    DriverApplicationType = wattpy.application.DriverApplication
    DeviceType = wattpy.device.Device
    EndpointType = wattpy.endpoint.Endpoint

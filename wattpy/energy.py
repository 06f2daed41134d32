"""Energy and power report aggregation."""

from __future__ import annotations

import typing

import wattpy.capabilities as cap
from wattpy.clusters.measurement import (
    ElectricalEnergyMeasurement,
    EnergyMeasurementStruct,
)
from wattpy.const import MAIN_COMPONENT, MILLI_CONVERSION

if typing.TYPE_CHECKING:
    import wattpy.application
    import wattpy.device


class EnergyAggregator:
    """Maintains the per-endpoint imported energy totals of every device.

    Cumulative reports carry the absolute meter reading and replace the stored
    value. Periodic reports carry the energy of one time slice and are added up, but
    only on devices that cannot report cumulatively.
    """

    def __init__(self, app: wattpy.application.DriverApplication) -> None:
        self._app = app

    def determine_cumulative_support(self, device: wattpy.device.Device) -> bool:
        state = device.state.energy

        if state.cumulative_supported or state.cumulative_not_supported:
            return state.cumulative_supported

        cumulative_eps = device.get_endpoints(
            ElectricalEnergyMeasurement.cluster_id,
            ElectricalEnergyMeasurement.Feature.CUMULATIVE_ENERGY,
        )

        if cumulative_eps:
            state.cumulative_supported = True
        else:
            device.debug("Device does not report cumulative energy")
            state.cumulative_not_supported = True
            device.state_updated()

        return state.cumulative_supported

    def handle_cumulative_imported(
        self,
        device: wattpy.device.Device,
        endpoint_id: int,
        value: EnergyMeasurementStruct | None,
    ) -> None:
        if value is None or value.energy is None:
            device.debug("Ignoring cumulative report without energy: %s", value)
            return

        self.determine_cumulative_support(device)

        energy_wh = value.energy / MILLI_CONVERSION
        device.state.energy.total_imported_wh[endpoint_id] = energy_wh
        device.debug(
            "Endpoint %s cumulative imported energy is %s Wh", endpoint_id, energy_wh
        )

        self._emit_energy(device)
        self._app.scheduler.observe_report(device, cumulative=True)

    def handle_periodic_imported(
        self,
        device: wattpy.device.Device,
        endpoint_id: int,
        value: EnergyMeasurementStruct | None,
    ) -> None:
        if value is None or value.energy is None:
            device.debug("Ignoring periodic report without energy: %s", value)
            return

        if self.determine_cumulative_support(device):
            device.debug(
                "Not integrating periodic report of endpoint %s, the device reports"
                " cumulative energy",
                endpoint_id,
            )
            return

        totals = device.state.energy.total_imported_wh
        energy_wh = value.energy / MILLI_CONVERSION
        totals[endpoint_id] = totals.get(endpoint_id, 0.0) + energy_wh
        device.debug(
            "Endpoint %s imported %s Wh, total %s Wh",
            endpoint_id,
            energy_wh,
            totals[endpoint_id],
        )

        self._emit_energy(device)
        self._app.scheduler.observe_report(device, cumulative=False)

    def handle_active_power(
        self, device: wattpy.device.Device, endpoint_id: int, value: int | None
    ) -> None:
        if value is None:
            device.debug("Ignoring active power report of endpoint %s", endpoint_id)
            return

        self._app.emit_event(
            device, MAIN_COMPONENT, cap.power(value / MILLI_CONVERSION)
        )

    def _emit_energy(self, device: wattpy.device.Device) -> None:
        self._app.emit_event(
            device, MAIN_COMPONENT, cap.energy(device.state.energy.total_wh)
        )
        device.state_updated()

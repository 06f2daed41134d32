"""Periodic power consumption reports."""

from __future__ import annotations

import asyncio
import time
import typing

import wattpy.capabilities as cap
from wattpy.const import MAIN_COMPONENT, MINIMUM_REPORT_INTERVAL

if typing.TYPE_CHECKING:
    import wattpy.application
    import wattpy.device


class AdaptivePollScheduler:
    """Emits power consumption reports at the rate the device reports energy.

    The report interval is learned from the device: the first qualifying energy report
    after subscribing only marks the subscription, the second starts the clock and
    the third fixes the interval, never below `minimum_interval`.
    """

    def __init__(
        self,
        app: wattpy.application.DriverApplication,
        *,
        minimum_interval: float = MINIMUM_REPORT_INTERVAL,
        enabled: bool = True,
    ) -> None:
        self._app = app
        self.minimum_interval = minimum_interval
        self.enabled = enabled

    def observe_report(self, device: wattpy.device.Device, *, cumulative: bool) -> None:
        """Advance the warm-up of a device by one energy report."""
        state = device.state.energy

        if state.warmup_complete:
            return

        # Periodic reports of devices that report cumulatively are not counted
        if not cumulative and state.cumulative_supported:
            return

        if not state.subscription_seen:
            state.subscription_seen = True
            return

        now = time.time()

        if state.first_report_time is None:
            state.first_report_time = now
            device.state_updated()
            return

        observed = now - state.first_report_time
        state.poll_interval = max(observed, self.minimum_interval)
        state.warmup_complete = True
        device.info(
            "Energy reports arrive every %0.0fs, reporting power consumption every"
            " %0.0fs",
            observed,
            state.poll_interval,
        )

        if self._should_poll(device):
            self.send_poll_report(device)
            self.start(device)

        device.state_updated()

    def _should_poll(self, device: wattpy.device.Device) -> bool:
        if not self.enabled:
            device.debug("Power consumption reports are disabled")
            return False

        return device.supports_capability(cap.POWER_CONSUMPTION_REPORT)

    def start(self, device: wattpy.device.Device) -> asyncio.Task:
        state = device.state.energy

        if state.poll_interval is None:
            raise ValueError(
                f"No poll interval has been learned for {device.device_id}"
            )

        if state.poll_timer is not None:
            state.poll_timer.cancel()

        state.poll_timer = self._app.create_task(
            self._poll_loop(device, state.poll_interval),
            name=f"poll_reports_{device.device_id}",
        )
        return state.poll_timer

    def resume(self, device: wattpy.device.Device) -> None:
        """Restart polling at a previously learned interval."""
        state = device.state.energy

        if state.poll_interval is None or state.poll_timer is not None:
            return

        if not self._should_poll(device):
            return

        device.debug("Resuming power consumption reports every %ss", state.poll_interval)
        self.start(device)

    async def _poll_loop(self, device: wattpy.device.Device, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)

            try:
                self.send_poll_report(device)
            except Exception:  # noqa: BLE001
                device.warning("Failed to send power consumption report", exc_info=True)

    def send_poll_report(
        self, device: wattpy.device.Device
    ) -> cap.PowerConsumptionReport:
        state = device.state.energy
        now = time.time()

        total = state.total_wh

        if state.last_emitted_energy_wh is None:
            delta = 0.0
        else:
            delta = max(total - state.last_emitted_energy_wh, 0.0)

        report = cap.PowerConsumptionReport(
            start=state.last_poll_report_time or 0,
            end=now - 1,
            delta_energy_wh=delta,
            energy_wh=total,
        )

        target = self._report_target(device)
        target.debug("Sending power consumption report %s", report)
        self._app.emit_event(target, MAIN_COMPONENT, report.as_event())

        state.last_poll_report_time = now
        state.last_emitted_energy_wh = total
        device.state_updated()

        return report

    def _report_target(self, device: wattpy.device.Device) -> wattpy.device.Device:
        parent = device.parent

        if parent is None:
            return device

        if parent.supports_capability(cap.POWER_CONSUMPTION_REPORT):
            return parent

        children = parent.child_list
        return children[0] if children else parent

    def cancel(self, device: wattpy.device.Device) -> None:
        """Stop polling and forget everything learned about the device."""
        state = device.state.energy

        if state.poll_timer is not None:
            device.debug("Cancelling power consumption reports")

        state.reset()

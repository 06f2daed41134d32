from __future__ import annotations

import abc
import asyncio
import logging
import typing
from typing import Any, Coroutine, TypeVar

import wattpy.appdb
import wattpy.capabilities as cap
from wattpy.clusters import Cluster
from wattpy.clusters.general import LevelControl, OccupancySensing, OnOff
from wattpy.clusters.measurement import (
    ElectricalEnergyMeasurement,
    ElectricalPowerMeasurement,
    PowerTopology,
)
import wattpy.config as conf
import wattpy.device
import wattpy.energy
import wattpy.exceptions
from wattpy.messages import AttributeReport, ReadRequest, SubscribeRequest
import wattpy.profiles
import wattpy.scheduler
import wattpy.state
import wattpy.topology
import wattpy.util

LOGGER = logging.getLogger(__name__)

_R = TypeVar("_R")

ReportHandler = typing.Callable[["wattpy.device.Device", int, Any], None]


class DriverApplication(wattpy.util.ListenableMixin, abc.ABC):
    """Electrical measurement driver for devices attached to a host runtime.

    Subclasses connect the driver to the host by implementing the outbound calls
    (`send`, `emit_event`, `try_update_metadata` and `try_create_device`) and by
    forwarding lifecycle callbacks and attribute reports.
    """

    SCHEMA = conf.CONFIG_SCHEMA

    def __init__(self, config: dict) -> None:
        self.devices: dict[str, wattpy.device.Device] = {}
        self.saved_states: dict[str, dict[str, Any]] = {}
        self._listeners = {}
        self._config = self.SCHEMA(config)
        self._dblistener: wattpy.appdb.PersistingListener | None = None
        self._tasks: set[asyncio.Future[Any]] = set()

        energy_config = self._config[conf.CONF_ENERGY]
        profiles_config = self._config[conf.CONF_PROFILES]

        self.topology = wattpy.topology.EndpointTopologyDiscoverer(self)
        self.profiles = wattpy.profiles.ProfileAssigner(
            self,
            device_overrides=profiles_config[conf.CONF_PROFILES_DEVICE_OVERRIDES],
            static_profiles=profiles_config[conf.CONF_PROFILES_STATIC],
        )
        self.energy = wattpy.energy.EnergyAggregator(self)
        self.scheduler = wattpy.scheduler.AdaptivePollScheduler(
            self,
            minimum_interval=energy_config[conf.CONF_ENERGY_MINIMUM_REPORT_INTERVAL],
            enabled=energy_config[conf.CONF_ENERGY_POLL_REPORTS_ENABLED],
        )

        self.topology.add_listener(self)

        self._handlers: dict[tuple[int, int], ReportHandler] = {}
        self.register_handler(
            ElectricalEnergyMeasurement,
            ElectricalEnergyMeasurement.AttributeDefs.cumulative_energy_imported.id,
            self.energy.handle_cumulative_imported,
        )
        self.register_handler(
            ElectricalEnergyMeasurement,
            ElectricalEnergyMeasurement.AttributeDefs.periodic_energy_imported.id,
            self.energy.handle_periodic_imported,
        )
        self.register_handler(
            ElectricalPowerMeasurement,
            ElectricalPowerMeasurement.AttributeDefs.active_power.id,
            self.energy.handle_active_power,
        )
        self.register_handler(
            PowerTopology,
            PowerTopology.AttributeDefs.available_endpoints.id,
            self.topology.handle_available_endpoints,
        )

    @property
    def config(self) -> dict:
        """Return current configuration."""
        return self._config

    def create_task(
        self, target: Coroutine[Any, Any, _R], name: str | None = None
    ) -> asyncio.Task[_R]:
        """Create a task and store a reference to it until the task completes.

        target: target to call.
        """
        task = asyncio.get_running_loop().create_task(target, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.remove)
        return task

    async def _load_db(self) -> None:
        """Restore save state."""
        database_file = self.config[conf.CONF_DATABASE]
        if not database_file:
            return

        self._dblistener = await wattpy.appdb.PersistingListener.new(
            database_file, self
        )
        await self._dblistener.load()
        self._add_db_listeners()

    def _add_db_listeners(self) -> None:
        if self._dblistener is None:
            return

        self.add_listener(self._dblistener)

        for device in self.devices.values():
            device.add_listener(self._dblistener)

    def _remove_db_listeners(self) -> None:
        if self._dblistener is None:
            return

        for device in self.devices.values():
            device.remove_listener(self._dblistener)

        self.remove_listener(self._dblistener)

    @classmethod
    async def new(cls, config: dict) -> DriverApplication:
        """Create new instance of the driver application."""
        app = cls(config)
        await app._load_db()

        return app

    async def shutdown(self, *, db: bool = True) -> None:
        """Stop all poll tasks and close the database."""
        for device in self.devices.values():
            energy = device.state.energy

            if energy.poll_timer is not None:
                energy.poll_timer.cancel()
                energy.poll_timer = None

        if db and self._dblistener:
            self._remove_db_listeners()

            try:
                await self._dblistener.shutdown()
            except Exception:
                LOGGER.warning("Failed to disconnect from database", exc_info=True)

    @abc.abstractmethod
    def send(
        self, device: wattpy.device.Device, request: ReadRequest | SubscribeRequest
    ) -> None:
        """Hand a read or a subscription to the host, without waiting for a reply.

        Read results arrive later through `handle_attribute_report`.
        """
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def emit_event(
        self,
        device: wattpy.device.Device,
        component: str,
        event: cap.CapabilityEvent,
    ) -> None:
        """Publish a capability event of a device component."""
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def try_update_metadata(
        self, device: wattpy.device.Device, **metadata: Any
    ) -> None:
        """Ask the host to change device metadata, such as its profile."""
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def try_create_device(self, **device_info: Any) -> None:
        """Ask the host to create a child device.

        The host later announces the new device through `add_device` and
        `device_added`, passing the `parent_device_id`.
        """
        raise NotImplementedError  # pragma: no cover

    def register_handler(
        self, cluster: type[Cluster], attribute_id: int, handler: ReportHandler
    ) -> None:
        self._handlers[(cluster.cluster_id, attribute_id)] = handler

    def add_device(
        self,
        device_id: str,
        signature: dict[str, Any],
        *,
        parent_device_id: str | None = None,
        parent_assigned_child_key: str | None = None,
    ) -> wattpy.device.Device:
        """Creates a `Device` object from the host's description of the device."""
        parent = None

        if parent_device_id is not None:
            parent = self.get_device(parent_device_id)

        device = wattpy.device.Device.from_signature(
            self,
            device_id,
            signature,
            parent_assigned_child_key=parent_assigned_child_key,
        )

        if parent is not None:
            parent.add_child(device)

        saved_state = self.saved_states.get(device_id)

        if saved_state is not None:
            try:
                device.state = wattpy.state.DeviceState.from_dict(saved_state)
            except (AttributeError, KeyError, TypeError, ValueError):
                device.warning("Ignoring unusable saved state %r", saved_state)
            else:
                device.debug("Restored saved state")

        if self._dblistener is not None:
            device.add_listener(self._dblistener)

        self.devices[device_id] = device
        return device

    def get_device(self, device_id: str) -> wattpy.device.Device:
        try:
            return self.devices[device_id]
        except KeyError:
            raise wattpy.exceptions.UnknownDevice(
                f"Device {device_id!r} is unknown"
            ) from None

    def device_added(self, device: wattpy.device.Device) -> None:
        if device.is_child:
            endpoint_id = int(device.parent_assigned_child_key)
            device.debug("Reading the on/off state of endpoint %s", endpoint_id)
            self.send(
                device,
                ReadRequest(
                    paths=[
                        OnOff.attribute_path(
                            OnOff.AttributeDefs.on_off.id, endpoint_id=endpoint_id
                        )
                    ]
                ),
            )
            return

        self.topology.start(device)
        self.device_init(device)

    def device_init(self, device: wattpy.device.Device) -> None:
        if device.is_child:
            # Children are covered by the subscription of their parent
            return

        request = self.build_subscription(device)

        if request:
            device.debug("Subscribing to %d attributes", len(request))
            self.send(device, request)

        self.scheduler.resume(device)

    def build_subscription(self, device: wattpy.device.Device) -> SubscribeRequest:
        request = SubscribeRequest()

        if device.supports_capability(cap.SWITCH):
            request.add(OnOff.attribute_path(OnOff.AttributeDefs.on_off.id))

        if device.supports_capability(cap.SWITCH_LEVEL):
            request.add(
                LevelControl.attribute_path(
                    LevelControl.AttributeDefs.current_level.id
                )
            )

        if device.supports_capability(cap.MOTION_SENSOR):
            request.add(
                OccupancySensing.attribute_path(
                    OccupancySensing.AttributeDefs.occupancy.id
                )
            )

        if device.supports_capability(cap.POWER_METER):
            for endpoint_id in device.get_endpoints(
                ElectricalPowerMeasurement.cluster_id
            ):
                request.add(
                    ElectricalPowerMeasurement.attribute_path(
                        ElectricalPowerMeasurement.AttributeDefs.active_power.id,
                        endpoint_id=endpoint_id,
                    )
                )

        if device.supports_capability(cap.ENERGY_METER) or (
            device.supports_capability(cap.POWER_CONSUMPTION_REPORT)
        ):
            attrs = ElectricalEnergyMeasurement.AttributeDefs

            for endpoint_id in device.get_endpoints(
                ElectricalEnergyMeasurement.cluster_id
            ):
                request.add(
                    ElectricalEnergyMeasurement.attribute_path(
                        attrs.cumulative_energy_imported.id, endpoint_id=endpoint_id
                    )
                )
                request.add(
                    ElectricalEnergyMeasurement.attribute_path(
                        attrs.periodic_energy_imported.id, endpoint_id=endpoint_id
                    )
                )

        return request

    def do_configure(self, device: wattpy.device.Device) -> None:
        self.profiles.match_profile(device)

    def driver_switched(self, device: wattpy.device.Device) -> None:
        self.profiles.match_profile(device)

    def info_changed(
        self,
        device: wattpy.device.Device,
        *,
        profile: str | None = None,
        capabilities: typing.Iterable[str] | None = None,
        label: str | None = None,
    ) -> None:
        resubscribe = False

        if label is not None:
            device.label = label

        if capabilities is not None and set(capabilities) != device.capabilities:
            device.capabilities = set(capabilities)
            resubscribe = True

        if profile is not None and profile != device.profile:
            device.info("Profile changed from %s to %s", device.profile, profile)
            device.profile = profile
            resubscribe = True

        if resubscribe:
            self.device_init(device)

    def device_removed(self, device: wattpy.device.Device) -> None:
        self.scheduler.cancel(device)
        self.devices.pop(device.device_id, None)
        self.saved_states.pop(device.device_id, None)

        if device.parent is not None:
            device.parent.children.pop(device.parent_assigned_child_key, None)

        self.listener_event("device_removed", device)

    def electrical_topology_resolved(self, device: wattpy.device.Device) -> None:
        self.profiles.match_profile(device)

    def handle_attribute_report(
        self, device: wattpy.device.Device, report: AttributeReport
    ) -> None:
        """Dispatch a report or read result to its handler."""
        handler = self._handlers.get((report.cluster_id, report.attribute_id))

        if handler is None:
            device.debug("No handler for report %s", report)
            return

        try:
            value = self._decode(report)
        except wattpy.exceptions.InvalidReport as exc:
            device.warning("Dropping report of endpoint %s: %s", report.endpoint_id, exc)
            return

        try:
            handler(device, report.endpoint_id, value)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Failed to handle report %s of %s", report, device)

    def _decode(self, report: AttributeReport) -> Any:
        attr = Cluster.find_class(report.cluster_id).attributes[report.attribute_id]

        try:
            return attr.convert(report.value)
        except (TypeError, ValueError) as exc:
            raise wattpy.exceptions.InvalidReport(
                f"Invalid {attr.name} value {report.value!r}: {exc}"
            ) from exc

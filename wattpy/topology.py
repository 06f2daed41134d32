"""Electrical topology discovery."""

from __future__ import annotations

import dataclasses
import enum
import typing

from wattpy.clusters.general import OnOff
from wattpy.clusters.measurement import (
    ElectricalEnergyMeasurement,
    ElectricalPowerMeasurement,
    EndpointList,
    PowerTopology,
)
from wattpy.device_types import DeviceType
from wattpy.messages import ReadRequest
import wattpy.util

if typing.TYPE_CHECKING:
    import wattpy.application
    import wattpy.device

POWER_TAG = "-power"
ENERGY_TAG = "-energy-powerConsumption"


class TopologyKind(enum.Enum):
    NONE = "none"
    NODE = "node"
    SET = "set"


@dataclasses.dataclass
class EndpointElectricalInfo:
    """What an electrical sensor endpoint measures, and for which endpoints."""

    endpoint_id: int
    supports_power: bool = False
    supports_energy: bool = False
    topology_feature: TopologyKind = TopologyKind.NONE

    # Unknown until the PowerTopology read of a SET_TOPOLOGY endpoint returns
    available_endpoints: list[int] | None = None

    @property
    def is_pending(self) -> bool:
        return (
            self.topology_feature is TopologyKind.SET
            and self.available_endpoints is None
        )

    @property
    def tag(self) -> str:
        tag = ""

        if self.supports_power:
            tag += POWER_TAG

        if self.supports_energy:
            tag += ENERGY_TAG

        return tag


@dataclasses.dataclass
class ElectricalTopologyMap:
    topology_kind: TopologyKind = TopologyKind.NONE
    tag_by_endpoint: dict[int, str] = dataclasses.field(default_factory=dict)


def topology_kind(cluster: PowerTopology | None) -> TopologyKind:
    if cluster is None:
        return TopologyKind.NONE

    if cluster.supports_feature(PowerTopology.Feature.SET_TOPOLOGY):
        return TopologyKind.SET

    if cluster.supports_feature(PowerTopology.Feature.NODE_TOPOLOGY):
        return TopologyKind.NODE

    return TopologyKind.NONE


class EndpointTopologyDiscoverer(wattpy.util.ListenableMixin):
    """Works out which endpoints each electrical sensor endpoint measures.

    Listeners receive `electrical_topology_resolved(device)` once the topology map of
    a device is final. Until then no electrical tags exist for that device.
    """

    def __init__(self, app: wattpy.application.DriverApplication) -> None:
        self._app = app
        self._listeners: dict = {}

    def collect(
        self, device: wattpy.device.Device
    ) -> list[EndpointElectricalInfo]:
        """Static electrical capabilities of every electrical sensor endpoint."""
        infos = []

        for endpoint_id in device.endpoints_by_device_type(
            DeviceType.ELECTRICAL_SENSOR
        ):
            ep = device.endpoints[endpoint_id]

            infos.append(
                EndpointElectricalInfo(
                    endpoint_id=endpoint_id,
                    supports_power=(
                        ElectricalPowerMeasurement.cluster_id in ep.in_clusters
                    ),
                    supports_energy=(
                        ElectricalEnergyMeasurement.cluster_id in ep.in_clusters
                    ),
                    topology_feature=topology_kind(
                        ep.in_clusters.get(PowerTopology.cluster_id)
                    ),
                )
            )

        return infos

    def start(self, device: wattpy.device.Device) -> None:
        """Begin discovery, reading the available endpoints of SET endpoints."""
        infos = self.collect(device)
        state = device.state

        if not infos:
            device.debug("No electrical sensor endpoints")
            self._resolve(device, ElectricalTopologyMap(TopologyKind.NONE))
            return

        if infos[0].topology_feature is TopologyKind.NODE:
            # The whole node is measured, tag the primary switch endpoint
            tags = {}
            switch_eps = device.get_endpoints(OnOff.cluster_id)

            if switch_eps and infos[0].tag:
                tags[switch_eps[0]] = infos[0].tag

            self._resolve(device, ElectricalTopologyMap(TopologyKind.NODE, tags))
            return

        request = ReadRequest()

        for info in infos:
            if info.is_pending:
                request.add(
                    PowerTopology.attribute_path(
                        PowerTopology.AttributeDefs.available_endpoints.id,
                        endpoint_id=info.endpoint_id,
                    )
                )

        state.electrical_endpoints = infos
        state.outstanding_topology_reads = {
            info.endpoint_id for info in infos if info.is_pending
        }

        if not request:
            self._complete(device)
            return

        device.debug(
            "Reading available endpoints of electrical endpoints %s",
            sorted(state.outstanding_topology_reads),
        )
        self._app.send(device, request)

    def handle_available_endpoints(
        self,
        device: wattpy.device.Device,
        endpoint_id: int,
        available_endpoints: EndpointList | list[int] | None,
    ) -> None:
        state = device.state

        if endpoint_id not in state.outstanding_topology_reads:
            device.debug(
                "Ignoring available endpoints of endpoint %s, no read is pending",
                endpoint_id,
            )
            return

        if not available_endpoints:
            # The entry stays pending, the device keeps its current profile
            device.debug(
                "Endpoint %s reported no available endpoints: %r",
                endpoint_id,
                available_endpoints,
            )
            return

        for info in state.electrical_endpoints:
            if info.endpoint_id == endpoint_id:
                info.available_endpoints = sorted(available_endpoints)
                break

        state.outstanding_topology_reads.discard(endpoint_id)

        if state.outstanding_topology_reads:
            device.debug(
                "Still waiting for available endpoints of %s",
                sorted(state.outstanding_topology_reads),
            )
            return

        self._complete(device)

    def _complete(self, device: wattpy.device.Device) -> None:
        infos = device.state.electrical_endpoints
        kinds = {info.topology_feature for info in infos}
        topology = ElectricalTopologyMap(
            TopologyKind.SET if TopologyKind.SET in kinds else TopologyKind.NONE
        )

        for info in infos:
            if info.available_endpoints and info.tag:
                topology.tag_by_endpoint[info.available_endpoints[0]] = info.tag

        self._resolve(device, topology)

    def _resolve(
        self, device: wattpy.device.Device, topology: ElectricalTopologyMap
    ) -> None:
        state = device.state
        state.topology = topology
        state.electrical_endpoints = None
        state.outstanding_topology_reads = set()

        device.info(
            "Electrical topology resolved as %s with tags %s",
            topology.topology_kind.name,
            topology.tag_by_endpoint,
        )
        self.listener_event("electrical_topology_resolved", device)

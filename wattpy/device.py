from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
import typing
from typing import Any

from wattpy.clusters.general import OnOff
from wattpy.const import (
    MAIN_COMPONENT,
    SIG_CAPABILITIES,
    SIG_ENDPOINTS,
    SIG_EP_DEVICE_TYPES,
    SIG_EP_INPUT,
    SIG_EP_OUTPUT,
    SIG_LABEL,
    SIG_PRODUCT_ID,
    SIG_PROFILE,
    SIG_VENDOR_ID,
)
from wattpy.device_types import DeviceType
import wattpy.endpoint
import wattpy.state
import wattpy.types as t
import wattpy.util

if typing.TYPE_CHECKING:
    from wattpy.application import DriverApplication

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT_ID = 1


def _clusters_from_signature(
    clusters: Mapping[int, int] | Iterable[int],
) -> dict[int, int]:
    """Clusters are given either as a list of ids or a mapping of id to feature map."""
    if isinstance(clusters, Mapping):
        return dict(clusters)

    return {cluster_id: 0 for cluster_id in clusters}


class Device(wattpy.util.LocalLogMixin, wattpy.util.ListenableMixin):
    """A device managed by the driver"""

    def __init__(
        self,
        application: DriverApplication,
        device_id: str,
        *,
        label: str | None = None,
        vendor_id: int | None = None,
        product_id: int | None = None,
        profile: str | None = None,
        capabilities: Iterable[str] = (),
        parent: Device | None = None,
        parent_assigned_child_key: str | None = None,
    ) -> None:
        self._application: DriverApplication = application
        self._device_id: str = device_id
        self._listeners = {}

        self.label: str = label if label is not None else device_id
        self.vendor_id: t.VendorId | None = (
            t.VendorId(vendor_id) if vendor_id is not None else None
        )
        self.product_id: t.ProductId | None = (
            t.ProductId(product_id) if product_id is not None else None
        )
        self.profile: str | None = profile
        self.capabilities: set[str] = set(capabilities)

        self.endpoints: dict[int, wattpy.endpoint.Endpoint] = {}
        self.state: wattpy.state.DeviceState = wattpy.state.DeviceState()

        self.parent: Device | None = parent
        self.parent_assigned_child_key: str | None = parent_assigned_child_key
        self.children: dict[str, Device] = {}

    @classmethod
    def from_signature(
        cls,
        application: DriverApplication,
        device_id: str,
        signature: dict[str, Any],
        **kwargs: Any,
    ) -> Device:
        """Build a device from the host's description of it."""
        device = cls(
            application,
            device_id,
            label=signature.get(SIG_LABEL),
            vendor_id=signature.get(SIG_VENDOR_ID),
            product_id=signature.get(SIG_PRODUCT_ID),
            profile=signature.get(SIG_PROFILE),
            capabilities=signature.get(SIG_CAPABILITIES, ()),
            **kwargs,
        )

        for endpoint_id, ep_signature in signature.get(SIG_ENDPOINTS, {}).items():
            ep = device.add_endpoint(int(endpoint_id))

            for device_type in ep_signature.get(SIG_EP_DEVICE_TYPES, []):
                ep.add_device_type(device_type)

            input_clusters = ep_signature.get(SIG_EP_INPUT, {})
            for cluster_id, feature_map in _clusters_from_signature(
                input_clusters
            ).items():
                ep.add_input_cluster(cluster_id, feature_map)

            output_clusters = ep_signature.get(SIG_EP_OUTPUT, {})
            for cluster_id, feature_map in _clusters_from_signature(
                output_clusters
            ).items():
                ep.add_output_cluster(cluster_id, feature_map)

        return device

    def add_endpoint(self, endpoint_id: int) -> wattpy.endpoint.Endpoint:
        ep = wattpy.endpoint.Endpoint(self, endpoint_id)
        self.endpoints[endpoint_id] = ep
        return ep

    def get_endpoints(
        self,
        cluster_id: int,
        feature: t.bitmap32 | None = None,
        *,
        is_server: bool = True,
    ) -> list[int]:
        """Sorted ids of the endpoints implementing a cluster, optionally a feature"""
        endpoint_ids = []

        for endpoint_id, ep in self.endpoints.items():
            clusters = ep.in_clusters if is_server else ep.out_clusters
            cluster = clusters.get(cluster_id)

            if cluster is None:
                continue

            if feature is not None and not cluster.supports_feature(feature):
                continue

            endpoint_ids.append(endpoint_id)

        return sorted(endpoint_ids)

    def endpoints_by_device_type(self, device_type: DeviceType) -> list[int]:
        return sorted(
            endpoint_id
            for endpoint_id, ep in self.endpoints.items()
            if ep.has_device_type(device_type)
        )

    def supports_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    @property
    def is_bridge(self) -> bool:
        return bool(self.endpoints_by_device_type(DeviceType.AGGREGATOR))

    @property
    def is_child(self) -> bool:
        return self.parent is not None

    @property
    def default_endpoint(self) -> int:
        """The endpoint backing the `main` component."""
        if MAIN_COMPONENT in self.state.component_to_endpoint:
            return self.state.component_to_endpoint[MAIN_COMPONENT]

        # Endpoint 0 is the root node and never carries a switch
        for endpoint_id in self.get_endpoints(OnOff.cluster_id):
            if endpoint_id != 0:
                return endpoint_id

        self.debug(
            "Did not find a default endpoint, using endpoint %d", DEFAULT_ENDPOINT_ID
        )
        return DEFAULT_ENDPOINT_ID

    def component_to_endpoint(self, component: str) -> int:
        if component in self.state.component_to_endpoint:
            return self.state.component_to_endpoint[component]

        return self.default_endpoint

    def endpoint_to_component(self, endpoint_id: int) -> str:
        for component, ep in self.state.component_to_endpoint.items():
            if ep == endpoint_id:
                return component

        return MAIN_COMPONENT

    def add_child(self, child: Device) -> None:
        child.parent = self
        self.children[child.parent_assigned_child_key] = child

    def find_child(self, endpoint_id: int) -> Device | None:
        return self.children.get(str(endpoint_id))

    @property
    def child_list(self) -> list[Device]:
        return list(self.children.values())

    def state_updated(self) -> None:
        """Notify listeners that persisted state has changed."""
        self.listener_event("device_state_updated", self)

    def log(self, lvl: int, msg: str, *args, **kwargs) -> None:
        msg = "[%s] " + msg
        args = (self._device_id, *args)
        LOGGER.log(lvl, msg, *args, **kwargs)

    @property
    def application(self) -> DriverApplication:
        return self._application

    @property
    def device_id(self) -> str:
        return self._device_id

    def __getitem__(self, key: int) -> wattpy.endpoint.Endpoint:
        return self.endpoints[key]

    def __repr__(self) -> str:
        return (
            f"<"
            f"{type(self).__name__}"
            f" device_id={self.device_id!r}"
            f" label={self.label!r}"
            f" profile={self.profile!r}"
            f" vendor_id={self.vendor_id}"
            f" product_id={self.product_id}"
            f" parent={self.parent.device_id if self.parent else None!r}"
            f">"
        )

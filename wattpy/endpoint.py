from __future__ import annotations

import logging
from typing import Any

import wattpy.clusters
from wattpy.device_types import DeviceType
from wattpy.typing import DeviceType as DeviceT
import wattpy.util

LOGGER = logging.getLogger(__name__)


class Endpoint(wattpy.util.LocalLogMixin):
    """An endpoint on a device"""

    def __init__(self, device: DeviceT, endpoint_id: int):
        self._device: DeviceT = device
        self._endpoint_id: int = endpoint_id

        self.device_types: list[DeviceType] = []
        self.in_clusters: dict[int, wattpy.clusters.Cluster] = {}
        self.out_clusters: dict[int, wattpy.clusters.Cluster] = {}
        self._cluster_attr: dict[str, wattpy.clusters.Cluster] = {}

    def add_device_type(self, device_type: int) -> DeviceType:
        device_type = DeviceType(device_type)

        if device_type not in self.device_types:
            self.device_types.append(device_type)

        return device_type

    def add_input_cluster(
        self, cluster_id: int, feature_map: int = 0
    ) -> wattpy.clusters.Cluster:
        """Adds an endpoint's input cluster

        (a server cluster implemented by the device)
        """
        if cluster_id in self.in_clusters:
            return self.in_clusters[cluster_id]

        cluster = wattpy.clusters.Cluster.from_id(
            self, cluster_id, is_server=True, feature_map=feature_map
        )
        self.in_clusters[cluster_id] = cluster

        if cluster.ep_attribute is not None:
            self._cluster_attr[cluster.ep_attribute] = cluster

        return cluster

    def add_output_cluster(
        self, cluster_id: int, feature_map: int = 0
    ) -> wattpy.clusters.Cluster:
        """Adds an endpoint's output cluster

        (a client cluster used by the device)
        """
        if cluster_id in self.out_clusters:
            return self.out_clusters[cluster_id]

        cluster = wattpy.clusters.Cluster.from_id(
            self, cluster_id, is_server=False, feature_map=feature_map
        )
        self.out_clusters[cluster_id] = cluster
        return cluster

    def has_device_type(self, device_type: int) -> bool:
        return device_type in self.device_types

    @property
    def primary_device_type(self) -> DeviceType | None:
        """The highest device type id, ignoring the electrical sensor type."""
        candidates = [
            dt for dt in self.device_types if dt != DeviceType.ELECTRICAL_SENSOR
        ]

        if not candidates:
            return None

        return max(candidates)

    def log(self, lvl: int, msg: str, *args: Any, **kwargs: Any) -> None:
        msg = "[%s:%s] " + msg
        args = (self._device.device_id, self._endpoint_id) + args
        LOGGER.log(lvl, msg, *args, **kwargs)

    @property
    def device(self) -> DeviceT:
        return self._device

    @property
    def endpoint_id(self) -> int:
        return self._endpoint_id

    @property
    def unique_id(self) -> tuple[str, int]:
        return self.device.device_id, self.endpoint_id

    def __getattr__(self, name):
        try:
            return self._cluster_attr[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        def cluster_repr(clusters):
            return ", ".join(
                [f"{c.ep_attribute}:0x{c.cluster_id:04X}" for c in clusters]
            )

        return (
            f"<{type(self).__name__}"
            f" id={self.endpoint_id}"
            f" device_types={[f'0x{dt:04X}' for dt in self.device_types]}"
            f" in=[{cluster_repr(self.in_clusters.values())}]"
            f" out=[{cluster_repr(self.out_clusters.values())}]"
            f">"
        )

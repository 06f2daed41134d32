from __future__ import annotations

from collections.abc import Mapping
import dataclasses
import logging
import typing
from typing import Any

from wattpy import util
from wattpy.messages import AttributePath
import wattpy.types as t
from wattpy.typing import EndpointType

LOGGER = logging.getLogger(__name__)


class IterableMemberMeta(type):
    def __iter__(cls) -> typing.Iterator[typing.Any]:
        for name in dir(cls):
            if not name.startswith("_"):
                yield getattr(cls, name)


class BaseAttributeDefs(metaclass=IterableMemberMeta):
    pass


@dataclasses.dataclass(frozen=True)
class AttributeDef:
    id: t.AttributeId = None
    type: type = None
    access: str = "rp"
    mandatory: bool = False

    # The name will be specified later
    name: str = None

    def __post_init__(self) -> None:
        if self.id is not None and not isinstance(self.id, t.AttributeId):
            object.__setattr__(self, "id", t.AttributeId(self.id))

    def convert(self, value: Any) -> Any:
        """Coerce a decoded report value into the attribute's type.

        Raises `ValueError` or `TypeError` when the value does not fit.
        """
        if value is None or isinstance(value, self.type):
            return value

        if isinstance(value, Mapping) and hasattr(self.type, "from_dict"):
            return self.type.from_dict(value)

        return self.type(value)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"id=0x{self.id:04X}, "
            f"name={self.name!r}, "
            f"type={self.type}, "
            f"access={self.access!r}, "
            f"mandatory={self.mandatory!r}"
            f")"
        )


class Cluster(util.LocalLogMixin):
    """A cluster on an endpoint"""

    cluster_id: t.ClusterId = None
    name: str = None

    # Clusters are accessible by name from their endpoint as an attribute
    ep_attribute: str = None

    # A flag type needs a member to be callable, unknown bits are still kept
    class Feature(t.bitmap32):
        NONE = 0

    AttributeDefs: type[BaseAttributeDefs] = BaseAttributeDefs
    attributes: dict[int, AttributeDef] = {}
    attributes_by_name: dict[str, AttributeDef] = {}

    _registry: dict = {}

    def __init_subclass__(cls) -> None:
        if cls.cluster_id is not None:
            cls.cluster_id = t.ClusterId(cls.cluster_id)

        # Populate the `name` attribute of every definition
        for name in dir(cls.AttributeDefs):
            definition = getattr(cls.AttributeDefs, name)

            if isinstance(definition, AttributeDef) and definition.name is None:
                object.__setattr__(definition, "name", name)

        cls.attributes = {attr.id: attr for attr in cls.AttributeDefs}
        cls.attributes_by_name = {attr.name: attr for attr in cls.AttributeDefs}

        if cls.cluster_id is not None:
            cls._registry[cls.cluster_id] = cls

    def __init__(
        self, endpoint: EndpointType, is_server: bool = True, feature_map: int = 0
    ) -> None:
        self._endpoint: EndpointType = endpoint
        self._is_server = is_server
        self.feature_map = self.Feature(feature_map)

    @property
    def is_server(self) -> bool:
        return self._is_server

    @property
    def is_client(self) -> bool:
        return not self._is_server

    @property
    def endpoint(self) -> EndpointType:
        return self._endpoint

    def supports_feature(self, feature: t.bitmap32) -> bool:
        return feature in self.feature_map

    @classmethod
    def attribute_path(
        cls, name_or_id: int | str, endpoint_id: int | None = None
    ) -> AttributePath:
        """Path to one of this cluster's attributes, on all endpoints by default."""
        if isinstance(name_or_id, str):
            attr = cls.attributes_by_name[name_or_id]
        else:
            attr = cls.attributes[name_or_id]

        return AttributePath(endpoint_id, cls.cluster_id, attr.id)

    @classmethod
    def find_class(cls, cluster_id: int) -> type[Cluster] | None:
        return cls._registry.get(cluster_id)

    @classmethod
    def from_id(
        cls,
        endpoint: EndpointType,
        cluster_id: int,
        is_server: bool = True,
        feature_map: int = 0,
    ) -> Cluster:
        cluster_id = t.ClusterId(cluster_id)

        if cluster_id in cls._registry:
            return cls._registry[cluster_id](endpoint, is_server, feature_map)

        LOGGER.debug("Unknown cluster 0x%04X", cluster_id)

        cluster = cls(endpoint, is_server, feature_map)
        cluster.cluster_id = cluster_id
        return cluster

    def log(self, lvl: int, msg: str, *args, **kwargs) -> None:
        msg = "[%s:0x%04x] " + msg
        args = (self.name, self.cluster_id) + args
        return self._endpoint.log(lvl, msg, *args, **kwargs)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}"
            f" id=0x{self.cluster_id:04X}"
            f" server={self._is_server}"
            f" features={self.feature_map!r}"
            f">"
        )


# Import to populate the registry
from . import general, measurement  # noqa: F401, E402

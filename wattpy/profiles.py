"""Presentation profile selection."""

from __future__ import annotations

import collections
import dataclasses
import typing

import wattpy.capabilities as cap
from wattpy.clusters.general import OccupancySensing, OnOff
import wattpy.config as conf
from wattpy.const import MAIN_COMPONENT
from wattpy.device_types import LIGHT_SWITCH_TYPES, PROFILES, DeviceType

if typing.TYPE_CHECKING:
    import wattpy.application
    import wattpy.device

DEFAULT_CHILD_PROFILE = "switch-binary"

# Only these profiles have variants carrying electrical measurements
TAGGABLE_PROFILES = ("plug-binary", "plug-level", "light-binary")

MOTION_PROFILES = {"light-level": "light-level-motion"}


@dataclasses.dataclass(frozen=True)
class DeviceOverride:
    """Replace the generic child profile of one product."""

    vendor_id: int
    product_id: int
    initial_profile: str
    target_profile: str


def apply_electrical_tag(profile: str | None, tag: str | None) -> str | None:
    """`plug-binary` + `-power` gives `plug-power`, other profiles are unchanged."""
    if not tag or profile not in TAGGABLE_PROFILES:
        return profile

    return profile.replace("-binary", "") + tag


class ProfileAssigner:
    """Picks the profile of a device and creates its child devices."""

    def __init__(
        self,
        app: wattpy.application.DriverApplication,
        device_overrides: typing.Iterable[dict[str, typing.Any]] = (),
        static_profiles: typing.Iterable[str] = (),
    ) -> None:
        self._app = app
        self._static_profiles: frozenset[str] = frozenset(static_profiles)
        self._overrides: dict[int, list[DeviceOverride]] = collections.defaultdict(
            list
        )

        for override in device_overrides:
            self.add_override(
                DeviceOverride(
                    vendor_id=override[conf.CONF_OVERRIDE_VENDOR_ID],
                    product_id=override[conf.CONF_OVERRIDE_PRODUCT_ID],
                    initial_profile=override[conf.CONF_OVERRIDE_INITIAL_PROFILE],
                    target_profile=override[conf.CONF_OVERRIDE_TARGET_PROFILE],
                )
            )

    def add_override(self, override: DeviceOverride) -> None:
        if override not in self._overrides[override.vendor_id]:
            self._overrides[override.vendor_id].append(override)

    def profile_for_endpoint(
        self,
        device: wattpy.device.Device,
        endpoint_id: int,
        *,
        is_child: bool = False,
        electrical_tag: str | None = None,
    ) -> str | None:
        profile = None
        ep = device.endpoints.get(endpoint_id)

        # Superset device types have the highest ids, e.g. a dimmable light also
        # claims to be an on/off light
        if ep is not None and ep.primary_device_type is not None:
            profile = PROFILES.get(ep.primary_device_type)

        profile = apply_electrical_tag(profile, electrical_tag)

        if not is_child:
            return profile

        for override in self._overrides.get(device.vendor_id, []):
            if (
                override.product_id == device.product_id
                and override.initial_profile == profile
            ):
                return override.target_profile

        return profile or DEFAULT_CHILD_PROFILE

    def is_generic_device(self, device: wattpy.device.Device) -> bool:
        """Devices of unsupported types join with only the `refresh` capability."""
        if any(device.supports_capability(c) for c in cap.DRIVER_CAPABILITIES):
            return False

        return device.supports_capability(cap.REFRESH)

    def match_profile(self, device: wattpy.device.Device) -> None:
        """Apply the profile decision once the electrical topology is known.

        This is a no-op until topology discovery finishes, and again afterwards since
        the topology map is consumed here.
        """
        topology = device.state.topology

        if topology is None:
            device.debug("Electrical topology is not resolved, not profiling yet")
            return

        if device.is_bridge:
            device.debug("Bridges keep their profile")
            device.state.topology = None
            return

        main_endpoint = device.default_endpoint
        device.state.component_to_endpoint.setdefault(MAIN_COMPONENT, main_endpoint)

        num_switch_server_eps = self._create_child_devices(device, main_endpoint)

        if num_switch_server_eps > 0 and self.is_generic_device(device):
            self._profile_light_switch(device, main_endpoint)
        else:
            profile = self.profile_for_endpoint(
                device,
                main_endpoint,
                electrical_tag=topology.tag_by_endpoint.get(main_endpoint),
            )

            if profile is not None and profile in self._static_profiles:
                device.debug("Not replacing fingerprinted profile %s", profile)
            elif profile is not None:
                if profile in MOTION_PROFILES and device.get_endpoints(
                    OccupancySensing.cluster_id
                ):
                    profile = MOTION_PROFILES[profile]

                self._update_profile(device, profile)

        device.state.topology = None
        device.state_updated()

    def _create_child_devices(
        self, device: wattpy.device.Device, main_endpoint: int
    ) -> int:
        """Create a child for every OnOff server endpoint besides the main one."""
        num_switch_server_eps = 0
        tags = device.state.topology.tag_by_endpoint

        for endpoint_id in device.get_endpoints(OnOff.cluster_id):
            num_switch_server_eps += 1

            if endpoint_id == main_endpoint:
                continue

            device.state.is_parent_child_device = True

            if device.find_child(endpoint_id) is not None:
                device.debug("Child for endpoint %s already exists", endpoint_id)
                continue

            label = f"{device.label} {num_switch_server_eps}"
            profile = self.profile_for_endpoint(
                device,
                endpoint_id,
                is_child=True,
                electrical_tag=tags.get(endpoint_id),
            )

            device.info(
                "Creating child device %r for endpoint %s with profile %s",
                label,
                endpoint_id,
                profile,
            )
            self._app.try_create_device(
                label=label,
                profile=profile,
                parent_device_id=device.device_id,
                parent_assigned_child_key=str(endpoint_id),
                vendor_provided_label=label,
            )

        return num_switch_server_eps

    def _profile_light_switch(
        self, device: wattpy.device.Device, main_endpoint: int
    ) -> None:
        """Light switches that implement OnOff as a server join as generic devices."""
        ep = device.endpoints.get(main_endpoint)

        if ep is None:
            return

        switch_types = [dt for dt in ep.device_types if dt in LIGHT_SWITCH_TYPES]

        if not switch_types:
            return

        self._update_profile(device, PROFILES[DeviceType(max(switch_types))])

    def _update_profile(self, device: wattpy.device.Device, profile: str) -> None:
        if device.profile == profile:
            device.debug("Profile %s is already applied", profile)
            return

        device.info("Switching profile from %s to %s", device.profile, profile)
        self._app.try_update_metadata(device, profile=profile)

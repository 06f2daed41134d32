"""Common fixtures."""

from __future__ import annotations

import logging
import typing
from unittest.mock import Mock

import pytest

import wattpy.application
import wattpy.capabilities as cap
from wattpy.clusters.general import LevelControl, OnOff
from wattpy.clusters.measurement import (
    ElectricalEnergyMeasurement,
    ElectricalPowerMeasurement,
    PowerTopology,
)
from wattpy.config import CONF_DATABASE
from wattpy.const import (
    SIG_CAPABILITIES,
    SIG_ENDPOINTS,
    SIG_EP_DEVICE_TYPES,
    SIG_EP_INPUT,
    SIG_LABEL,
    SIG_PRODUCT_ID,
    SIG_PROFILE,
    SIG_VENDOR_ID,
)
from wattpy.device_types import DeviceType
from wattpy.messages import AttributeReport

if typing.TYPE_CHECKING:
    import wattpy.device

_LOGGER = logging.getLogger(__name__)

EEM = ElectricalEnergyMeasurement
EPM = ElectricalPowerMeasurement

# IMPORTED_ENERGY is not set on purpose, only CUMULATIVE_ENERGY matters
CUMULATIVE_FEATURES = (
    EEM.Feature.EXPORTED_ENERGY
    | EEM.Feature.CUMULATIVE_ENERGY
    | EEM.Feature.PERIODIC_ENERGY
)
PERIODIC_FEATURES = EEM.Feature.EXPORTED_ENERGY | EEM.Feature.PERIODIC_ENERGY

PLUG_CAPABILITIES = [
    cap.SWITCH,
    cap.SWITCH_LEVEL,
    cap.POWER_METER,
    cap.ENERGY_METER,
    cap.POWER_CONSUMPTION_REPORT,
    cap.REFRESH,
]


class FailOnBadFormattingHandler(logging.Handler):
    def emit(self, record):
        try:
            record.msg % record.args
        except Exception as e:
            pytest.fail(
                f"Failed to format log message {record.msg!r} with {record.args!r}: {e}"
            )


@pytest.fixture(autouse=True)
def raise_on_bad_log_formatting():
    handler = FailOnBadFormattingHandler()

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    try:
        yield
    finally:
        root.removeHandler(handler)


class App(wattpy.application.DriverApplication):
    def send(self, device, request):
        pass

    def emit_event(self, device, component, event):
        pass

    def try_update_metadata(self, device, **metadata):
        pass

    def try_create_device(self, **device_info):
        pass


def recursive_dict_merge(
    obj: dict[str, typing.Any], updates: dict[str, typing.Any]
) -> dict[str, typing.Any]:
    result = obj.copy()

    for key, update in updates.items():
        if isinstance(update, dict) and isinstance(result.get(key), dict):
            result[key] = recursive_dict_merge(result[key], update)
        else:
            result[key] = update

    return result


def make_app(
    config_updates: dict[str, typing.Any],
    app_base: type[wattpy.application.DriverApplication] = App,
) -> wattpy.application.DriverApplication:
    config = recursive_dict_merge({CONF_DATABASE: None}, config_updates)

    app = app_base(app_base.SCHEMA(config))

    app.send = Mock(wraps=app.send)
    app.emit_event = Mock(wraps=app.emit_event)
    app.try_update_metadata = Mock(wraps=app.try_update_metadata)
    app.try_create_device = Mock(wraps=app.try_create_device)
    app.listener_event = Mock(wraps=app.listener_event)

    return app


@pytest.fixture
def app():
    """DriverApplication recording its outbound calls."""
    return make_app({})


def make_endpoint(
    device_types: list[int], input_clusters: dict[int, int]
) -> dict[str, typing.Any]:
    return {SIG_EP_DEVICE_TYPES: device_types, SIG_EP_INPUT: input_clusters}


def make_signature(
    endpoints: dict[int, dict[str, typing.Any]],
    *,
    label: str = "Plug",
    capabilities: typing.Iterable[str] = PLUG_CAPABILITIES,
    profile: str | None = "plug-binary",
    vendor_id: int = 0x1234,
    product_id: int = 0x0001,
) -> dict[str, typing.Any]:
    return {
        SIG_LABEL: label,
        SIG_VENDOR_ID: vendor_id,
        SIG_PRODUCT_ID: product_id,
        SIG_PROFILE: profile,
        SIG_CAPABILITIES: list(capabilities),
        SIG_ENDPOINTS: endpoints,
    }


def dual_plug_signature(**kwargs: typing.Any) -> dict[str, typing.Any]:
    """Two dimmable outlets, each measured by its own electrical sensor endpoint.

    Endpoint 1 measures power and energy of endpoint 2, endpoint 3 measures the
    energy of endpoint 4.
    """
    return make_signature(
        {
            1: make_endpoint(
                [DeviceType.ELECTRICAL_SENSOR],
                {
                    EPM.cluster_id: EPM.Feature.ALTERNATING_CURRENT,
                    EEM.cluster_id: CUMULATIVE_FEATURES,
                    PowerTopology.cluster_id: PowerTopology.Feature.SET_TOPOLOGY,
                },
            ),
            2: make_endpoint(
                [DeviceType.DIMMABLE_PLUG_IN_UNIT],
                {OnOff.cluster_id: 0, LevelControl.cluster_id: 0},
            ),
            3: make_endpoint(
                [DeviceType.ELECTRICAL_SENSOR],
                {
                    EEM.cluster_id: CUMULATIVE_FEATURES,
                    PowerTopology.cluster_id: PowerTopology.Feature.SET_TOPOLOGY,
                },
            ),
            4: make_endpoint(
                [DeviceType.DIMMABLE_PLUG_IN_UNIT],
                {OnOff.cluster_id: 0, LevelControl.cluster_id: 0},
            ),
        },
        **kwargs,
    )


def periodic_plug_signature(**kwargs: typing.Any) -> dict[str, typing.Any]:
    """An on/off plug measuring itself, without cumulative energy reports."""
    return make_signature(
        {
            1: make_endpoint(
                [DeviceType.ON_OFF_PLUG_IN_UNIT, DeviceType.ELECTRICAL_SENSOR],
                {
                    OnOff.cluster_id: 0,
                    EEM.cluster_id: PERIODIC_FEATURES,
                    PowerTopology.cluster_id: PowerTopology.Feature.SET_TOPOLOGY,
                },
            ),
        },
        **kwargs,
    )


def node_plug_signature(**kwargs: typing.Any) -> dict[str, typing.Any]:
    """An on/off plug whose first endpoint measures the whole node."""
    return make_signature(
        {
            1: make_endpoint(
                [DeviceType.ON_OFF_PLUG_IN_UNIT, DeviceType.ELECTRICAL_SENSOR],
                {
                    OnOff.cluster_id: 0,
                    EPM.cluster_id: EPM.Feature.ALTERNATING_CURRENT,
                    EEM.cluster_id: CUMULATIVE_FEATURES,
                    PowerTopology.cluster_id: PowerTopology.Feature.NODE_TOPOLOGY,
                },
            ),
        },
        **kwargs,
    )


def light_signature(**kwargs: typing.Any) -> dict[str, typing.Any]:
    kwargs.setdefault("label", "Light")
    kwargs.setdefault("profile", "light-binary")
    kwargs.setdefault("capabilities", [cap.SWITCH, cap.SWITCH_LEVEL, cap.REFRESH])

    return make_signature(
        {
            1: make_endpoint(
                [DeviceType.ON_OFF_LIGHT, DeviceType.DIMMABLE_LIGHT],
                {OnOff.cluster_id: 0, LevelControl.cluster_id: 0},
            ),
        },
        **kwargs,
    )


@pytest.fixture
def dual_plug(app) -> wattpy.device.Device:
    return app.add_device("dual-plug", dual_plug_signature())


@pytest.fixture
def periodic_plug(app) -> wattpy.device.Device:
    return app.add_device("periodic-plug", periodic_plug_signature())


@pytest.fixture
def node_plug(app) -> wattpy.device.Device:
    return app.add_device("node-plug", node_plug_signature())


def available_endpoints_report(
    endpoint_id: int, available_endpoints: typing.Any
) -> AttributeReport:
    return AttributeReport(
        endpoint_id,
        PowerTopology.cluster_id,
        PowerTopology.AttributeDefs.available_endpoints.id,
        available_endpoints,
    )


def cumulative_report(endpoint_id: int, energy: typing.Any) -> AttributeReport:
    return AttributeReport(
        endpoint_id,
        EEM.cluster_id,
        EEM.AttributeDefs.cumulative_energy_imported.id,
        {"energy": energy},
    )


def periodic_report(endpoint_id: int, energy: typing.Any) -> AttributeReport:
    return AttributeReport(
        endpoint_id,
        EEM.cluster_id,
        EEM.AttributeDefs.periodic_energy_imported.id,
        {"energy": energy},
    )


def active_power_report(endpoint_id: int, power: typing.Any) -> AttributeReport:
    return AttributeReport(
        endpoint_id,
        EPM.cluster_id,
        EPM.AttributeDefs.active_power.id,
        power,
    )


def emitted(
    app: wattpy.application.DriverApplication, capability: str
) -> list[cap.CapabilityEvent]:
    """Events of one capability passed to `emit_event`, in order."""
    return [
        call.args[2]
        for call in app.emit_event.call_args_list
        if call.args[2].capability == capability
    ]


def emitted_values(
    app: wattpy.application.DriverApplication, capability: str
) -> list[typing.Any]:
    return [event.value for event in emitted(app, capability)]


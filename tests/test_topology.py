from __future__ import annotations

from unittest import mock

import pytest

from tests.conftest import (
    CUMULATIVE_FEATURES,
    EEM,
    EPM,
    available_endpoints_report,
    make_endpoint,
    make_signature,
)
from wattpy.clusters.general import OnOff
from wattpy.clusters.measurement import PowerTopology
from wattpy.device_types import DeviceType
from wattpy.messages import ReadRequest
import wattpy.topology
from wattpy.topology import ENERGY_TAG, POWER_TAG, TopologyKind


@pytest.fixture
def listener(app):
    listener = mock.Mock()
    app.topology.add_listener(listener)
    return listener


def test_electrical_info_tag():
    info = wattpy.topology.EndpointElectricalInfo(1)
    assert info.tag == ""

    info.supports_power = True
    assert info.tag == "-power"

    info.supports_energy = True
    assert info.tag == "-power-energy-powerConsumption"

    info.supports_power = False
    assert info.tag == "-energy-powerConsumption"


def test_topology_kind(app, dual_plug, node_plug):
    assert wattpy.topology.topology_kind(None) is TopologyKind.NONE
    assert (
        wattpy.topology.topology_kind(dual_plug[1].power_topology) is TopologyKind.SET
    )
    assert (
        wattpy.topology.topology_kind(node_plug[1].power_topology)
        is TopologyKind.NODE
    )

    tree = PowerTopology(dual_plug[1], feature_map=PowerTopology.Feature.TREE_TOPOLOGY)
    assert wattpy.topology.topology_kind(tree) is TopologyKind.NONE


def test_collect(app, dual_plug):
    infos = app.topology.collect(dual_plug)

    assert [info.endpoint_id for info in infos] == [1, 3]
    assert infos[0].supports_power and infos[0].supports_energy
    assert not infos[1].supports_power and infos[1].supports_energy
    assert all(info.topology_feature is TopologyKind.SET for info in infos)
    assert all(info.is_pending for info in infos)


def test_set_topology_reads_available_endpoints(app, dual_plug, listener):
    app.topology.start(dual_plug)

    assert app.send.call_count == 1
    device, request = app.send.mock_calls[0].args

    assert device is dual_plug
    assert isinstance(request, ReadRequest)
    assert request.paths == [
        PowerTopology.attribute_path("available_endpoints", endpoint_id=1),
        PowerTopology.attribute_path("available_endpoints", endpoint_id=3),
    ]

    assert dual_plug.state.outstanding_topology_reads == {1, 3}
    assert dual_plug.state.topology is None
    assert listener.electrical_topology_resolved.call_count == 0


def test_set_topology_waits_for_all_responses(app, dual_plug, listener):
    app.topology.start(dual_plug)

    app.topology.handle_available_endpoints(dual_plug, 1, [2])

    # One response is not enough
    assert dual_plug.state.topology is None
    assert listener.electrical_topology_resolved.call_count == 0
    assert dual_plug.state.outstanding_topology_reads == {3}

    app.topology.handle_available_endpoints(dual_plug, 3, [4])

    assert listener.electrical_topology_resolved.mock_calls == [mock.call(dual_plug)]
    assert dual_plug.state.electrical_endpoints is None
    assert dual_plug.state.outstanding_topology_reads == set()


def test_set_topology_tags(dual_plug, listener):
    app = dual_plug.application

    # Keep the map around, profiling would consume it
    with mock.patch.object(app.profiles, "match_profile"):
        app.device_added(dual_plug)
        app.handle_attribute_report(dual_plug, available_endpoints_report(3, [4]))
        app.handle_attribute_report(dual_plug, available_endpoints_report(1, [2]))

    topology = dual_plug.state.topology
    assert topology.topology_kind is TopologyKind.SET
    assert topology.tag_by_endpoint == {
        2: POWER_TAG + ENERGY_TAG,
        4: ENERGY_TAG,
    }


def test_set_topology_uses_lowest_available_endpoint(app, dual_plug, listener):
    with mock.patch.object(app.profiles, "match_profile"):
        app.topology.start(dual_plug)
        app.topology.handle_available_endpoints(dual_plug, 1, [4, 2])
        app.topology.handle_available_endpoints(dual_plug, 3, [4])

    assert dual_plug.state.topology.tag_by_endpoint == {
        2: POWER_TAG + ENERGY_TAG,
        4: ENERGY_TAG,
    }


@pytest.mark.parametrize("available", [[], None])
def test_set_topology_empty_response(app, dual_plug, listener, available):
    app.topology.start(dual_plug)
    app.topology.handle_available_endpoints(dual_plug, 1, available)
    app.topology.handle_available_endpoints(dual_plug, 3, [4])

    # The entry stays pending and discovery never finishes
    assert dual_plug.state.outstanding_topology_reads == {1}
    assert dual_plug.state.topology is None
    assert listener.electrical_topology_resolved.call_count == 0


def test_unsolicited_response_ignored(app, dual_plug, listener):
    app.topology.handle_available_endpoints(dual_plug, 1, [2])

    assert dual_plug.state.topology is None
    assert dual_plug.state.electrical_endpoints is None
    assert listener.electrical_topology_resolved.call_count == 0


def test_duplicate_response_ignored(app, dual_plug, listener):
    app.topology.start(dual_plug)
    app.topology.handle_available_endpoints(dual_plug, 1, [2])
    app.topology.handle_available_endpoints(dual_plug, 1, [2])

    assert dual_plug.state.outstanding_topology_reads == {3}
    assert listener.electrical_topology_resolved.call_count == 0


def test_node_topology(app, node_plug, listener):
    with mock.patch.object(app.profiles, "match_profile"):
        app.topology.start(node_plug)

    assert app.send.call_count == 0
    assert listener.electrical_topology_resolved.mock_calls == [mock.call(node_plug)]

    topology = node_plug.state.topology
    assert topology.topology_kind is TopologyKind.NODE
    assert topology.tag_by_endpoint == {1: POWER_TAG + ENERGY_TAG}


def test_no_electrical_endpoints(app, listener):
    device = app.add_device(
        "light",
        make_signature(
            {1: make_endpoint([DeviceType.ON_OFF_LIGHT], {OnOff.cluster_id: 0})}
        ),
    )

    with mock.patch.object(app.profiles, "match_profile"):
        app.topology.start(device)

    assert app.send.call_count == 0
    assert listener.electrical_topology_resolved.mock_calls == [mock.call(device)]
    assert device.state.topology.topology_kind is TopologyKind.NONE
    assert device.state.topology.tag_by_endpoint == {}


def test_electrical_endpoint_without_topology(app, listener):
    """Electrical sensors without a SET topology resolve without reads or tags."""
    device = app.add_device(
        "tree-plug",
        make_signature(
            {
                1: make_endpoint(
                    [DeviceType.ON_OFF_PLUG_IN_UNIT],
                    {OnOff.cluster_id: 0},
                ),
                2: make_endpoint(
                    [DeviceType.ELECTRICAL_SENSOR],
                    {
                        EPM.cluster_id: 0,
                        EEM.cluster_id: CUMULATIVE_FEATURES,
                        PowerTopology.cluster_id: (
                            PowerTopology.Feature.TREE_TOPOLOGY
                        ),
                    },
                ),
            }
        ),
    )

    with mock.patch.object(app.profiles, "match_profile"):
        app.topology.start(device)

    assert app.send.call_count == 0
    assert device.state.topology.topology_kind is TopologyKind.NONE
    assert device.state.topology.tag_by_endpoint == {}

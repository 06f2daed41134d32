from __future__ import annotations

import json
import logging
import sqlite3

import pytest

from tests.conftest import App, dual_plug_signature, node_plug_signature
import wattpy.appdb
from wattpy.config import CONF_DATABASE
import wattpy.exceptions


async def make_app_with_db(database_file) -> App:
    return await App.new({CONF_DATABASE: str(database_file)})


async def test_database_created(tmp_path):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)
    await app.shutdown()

    with sqlite3.connect(db) as conn:
        (user_version,) = conn.execute("PRAGMA user_version").fetchone()
        tables = {
            name
            for (name,) in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }

    assert user_version == wattpy.appdb.DB_VERSION
    assert tables == {"device_state_v1"}


async def test_no_database():
    app = App({})
    await app._load_db()

    assert app._dblistener is None
    await app.shutdown()


async def test_state_persisted(tmp_path):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)

    device = app.add_device("node-plug", node_plug_signature())
    device.state.energy.total_imported_wh = {1: 12.5}
    device.state.energy.poll_interval = 1200.0
    device.state.energy.last_poll_report_time = 3600.0
    device.state.energy.last_emitted_energy_wh = 10.0
    device.state.energy.cumulative_not_supported = True
    device.state.component_to_endpoint["main"] = 1
    device.state.is_parent_child_device = True
    device.state_updated()

    await app.shutdown()

    app2 = await make_app_with_db(db)
    assert set(app2.saved_states) == {"node-plug"}

    restored = app2.add_device("node-plug", node_plug_signature())
    energy = restored.state.energy

    assert energy.total_imported_wh == {1: 12.5}
    assert energy.poll_interval == 1200.0
    assert energy.last_poll_report_time == 3600.0
    assert energy.last_emitted_energy_wh == 10.0
    assert energy.cumulative_not_supported
    assert energy.warmup_complete
    assert energy.poll_timer is None
    assert restored.state.component_to_endpoint == {"main": 1}
    assert restored.state.is_parent_child_device

    await app2.shutdown()


async def test_state_updated_twice(tmp_path):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)

    device = app.add_device("node-plug", node_plug_signature())
    device.state.energy.total_imported_wh = {1: 1.0}
    device.state_updated()

    # The queued write keeps the state of the moment it was queued
    device.state.energy.total_imported_wh = {1: 2.0}
    device.state_updated()

    await app.shutdown()

    with sqlite3.connect(db) as conn:
        rows = conn.execute("SELECT device_id, state_json FROM device_state_v1")
        rows = list(rows)

    assert len(rows) == 1
    assert rows[0][0] == "node-plug"
    assert json.loads(rows[0][1])["energy"]["total_imported_wh"] == {"1": 2.0}


async def test_state_removed(tmp_path):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)

    plug = app.add_device("node-plug", node_plug_signature())
    dual = app.add_device("dual-plug", dual_plug_signature())
    plug.state_updated()
    dual.state_updated()

    app.device_removed(plug)
    await app.shutdown()

    app2 = await make_app_with_db(db)
    assert set(app2.saved_states) == {"dual-plug"}
    await app2.shutdown()


async def test_unreadable_state_discarded(tmp_path, caplog):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)
    await app.shutdown()

    with sqlite3.connect(db) as conn:
        conn.execute(
            "INSERT INTO device_state_v1 VALUES (?, ?, ?)", ("broken", "{nope", 0)
        )
        conn.execute(
            "INSERT INTO device_state_v1 VALUES (?, ?, ?)", ("fine", "{}", 0)
        )

    with caplog.at_level(logging.WARNING):
        app2 = await make_app_with_db(db)

    assert "Discarding unreadable state of device broken" in caplog.text
    assert app2.saved_states == {"fine": {}}
    await app2.shutdown()


async def test_inconsistent_database_version(tmp_path):
    db = tmp_path / "wattpy.db"

    with sqlite3.connect(db) as conn:
        conn.execute(
            "CREATE TABLE device_state_v1 (device_id TEXT, state_json TEXT, "
            "last_updated REAL)"
        )
        conn.execute("PRAGMA user_version = 3")

    with pytest.raises(wattpy.exceptions.CorruptDatabase):
        await make_app_with_db(db)


async def test_events_discarded_after_shutdown(tmp_path):
    db = tmp_path / "wattpy.db"
    app = await make_app_with_db(db)
    listener = app._dblistener

    device = app.add_device("node-plug", node_plug_signature())
    await app.shutdown()

    assert not listener.running

    # The listener was detached, calling it directly does nothing either
    listener.device_state_updated(device)
    assert listener._pending.empty()

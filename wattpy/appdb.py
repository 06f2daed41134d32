"""SQLite persistence of device state."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import sqlite3
import time
from typing import Any

import aiosqlite

import wattpy.appdb_schemas
import wattpy.exceptions
import wattpy.typing
import wattpy.util

LOGGER = logging.getLogger(__name__)

DB_VERSION = 1
DB_V = f"_v{DB_VERSION}"
TABLE_VERSION_REGEX = re.compile(r"_v(?P<version>\d+)$")


class PersistingListener(wattpy.util.CatchingTaskMixin):
    """Stores the persistent part of every device's state in SQLite.

    Device events are queued and a single worker task writes them one at a time,
    in the order they were received.
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        application: wattpy.typing.DriverApplicationType,
    ) -> None:
        self._db = connection
        self._application = application
        self._pending: asyncio.Queue[tuple[str, tuple]] = asyncio.Queue()
        self.running = False
        self._worker_task = self.create_catching_task(
            self._worker(), name="device_state_writer"
        )

    def log(self, lvl: int, msg: str, *args, **kwargs) -> None:
        LOGGER.log(lvl, msg, *args, **kwargs)

    @classmethod
    async def new(
        cls, database_file: str, app: wattpy.typing.DriverApplicationType
    ) -> PersistingListener:
        """Open the database, creating its tables if needed."""
        connection = await aiosqlite.connect(database_file, isolation_level="DEFERRED")
        listener = cls(connection, app)

        try:
            await listener.initialize_tables()
        except Exception:
            await listener.shutdown()
            raise

        listener.running = True
        return listener

    async def initialize_tables(self) -> None:
        async with self.execute("PRAGMA integrity_check") as cursor:
            problems = [row[0] for row in await cursor.fetchall()]

        if problems != ["ok"]:
            LOGGER.error("State database failed its integrity check:\n%s", problems)

        # Pragmas cannot run inside a transaction
        await self._set_isolation_level(None)
        await self.execute("PRAGMA journal_mode = WAL")
        await self.execute("PRAGMA synchronous = normal")
        await self._set_isolation_level("DEFERRED")

        await self._initialize_schema()

    async def shutdown(self) -> None:
        """Write everything still queued and close the database."""
        self.running = False
        await self._pending.join()

        if not self._worker_task.done():
            self._worker_task.cancel()

        # Fold the write-ahead log back into the database file
        await self._set_isolation_level(None)
        await self.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        await self._db.close()

    async def _worker(self) -> None:
        while True:
            method_name, args = await self._pending.get()

            try:
                await getattr(self, method_name)(*args)
            except sqlite3.Error as exc:
                LOGGER.warning("Failed to run %s%r: %s", method_name, args, exc)
            except Exception:
                LOGGER.exception("Unexpected error in %s%r", method_name, args)
            finally:
                self._pending.task_done()

    def enqueue(self, method_name: str, *args) -> None:
        if not self.running:
            LOGGER.debug("Database is closed, discarding %s", method_name)
            return

        self._pending.put_nowait((method_name, args))

    async def _set_isolation_level(self, level: str | None) -> None:
        # The connection lives in the aiosqlite thread, change it from there
        await self._db._execute(lambda: setattr(self._db, "isolation_level", level))

    def execute(self, *args, **kwargs):
        return self._db.execute(*args, **kwargs)

    async def executescript(self, sql: str) -> None:
        """Run a script statement by statement, inside the current transaction.

        Statements are split on `;`, which must only appear at their ends.
        """
        for statement in sql.split(";"):
            if statement.strip():
                await self.execute(statement)

    def device_state_updated(self, device: wattpy.typing.DeviceType) -> None:
        # Serialized when queued, later changes get their own event
        self.enqueue(
            "_save_device_state",
            device.device_id,
            json.dumps(device.state.as_dict()),
            time.time(),
        )

    async def _save_device_state(
        self, device_id: str, state_json: str, last_updated: float
    ) -> None:
        await self.execute(
            f"INSERT INTO device_state{DB_V} VALUES (?, ?, ?)"
            " ON CONFLICT (device_id) DO UPDATE SET"
            " state_json = excluded.state_json,"
            " last_updated = excluded.last_updated",
            (device_id, state_json, last_updated),
        )
        await self._db.commit()

    def device_removed(self, device: wattpy.typing.DeviceType) -> None:
        self.enqueue("_remove_device_state", device.device_id)

    async def _remove_device_state(self, device_id: str) -> None:
        await self.execute(
            f"DELETE FROM device_state{DB_V} WHERE device_id = ?", (device_id,)
        )
        await self._db.commit()

    async def load(self) -> None:
        """Hand the saved state of every device to the application."""
        saved_states: dict[str, dict[str, Any]] = {}

        async with self.execute(
            f"SELECT device_id, state_json FROM device_state{DB_V}"
        ) as cursor:
            async for device_id, state_json in cursor:
                try:
                    saved_states[device_id] = json.loads(state_json)
                except ValueError:
                    LOGGER.warning(
                        "Discarding unreadable state of device %s: %r",
                        device_id,
                        state_json,
                    )

        LOGGER.debug("Loaded the saved state of %d devices", len(saved_states))
        self._application.saved_states.update(saved_states)

    async def _get_table_versions(self) -> dict[str, int]:
        """Versions of the tables in the database, by table name."""
        versions = {}

        async with self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
            " AND name NOT LIKE 'sqlite_%'"
        ) as cursor:
            async for (name,) in cursor:
                match = TABLE_VERSION_REGEX.search(name)
                versions[name] = int(match.group("version")) if match else 0

        return versions

    async def _initialize_schema(self) -> None:
        tables = await self._get_table_versions()
        tables_version = max(tables.values(), default=0)

        async with self.execute("PRAGMA user_version") as cursor:
            (db_version,) = await cursor.fetchone()

        LOGGER.debug(
            "State database is v%s, its newest table is v%s", db_version, tables_version
        )

        if tables and tables_version != db_version:
            raise wattpy.exceptions.CorruptDatabase(
                f"Database version {db_version} does not match the version of its"
                f" tables ({tables_version})"
            )

        if not tables:
            await self.executescript(wattpy.appdb_schemas.SCHEMAS[DB_VERSION])
            await self._db.commit()
        elif db_version > DB_VERSION:
            LOGGER.error(
                "State database is v%s but this release only knows v%s,"
                " saved state may not load",
                db_version,
                DB_VERSION,
            )

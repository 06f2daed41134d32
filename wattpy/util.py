from __future__ import annotations

import abc
import asyncio
from datetime import datetime, timezone
import inspect
import logging
import traceback
import typing

from wattpy.const import ISO8601_UTC_FORMAT

LOGGER = logging.getLogger(__name__)


class ListenableMixin:
    """Fan events out to listener objects by calling their same-named methods."""

    _listeners: dict[int, typing.Any]

    def add_listener(self, listener: typing.Any) -> int:
        key = id(listener)

        # The same object may be added more than once
        while key in self._listeners:
            key += 1

        self._listeners[key] = listener
        return key

    def remove_listener(self, listener: typing.Any) -> None:
        for key, candidate in self._listeners.items():
            if candidate is listener:
                del self._listeners[key]
                return

    def listener_event(self, method_name: str, *args) -> list[typing.Any]:
        """Call `method_name` on every listener having it, collecting the results."""
        results = []

        for listener in list(self._listeners.values()):
            method = getattr(listener, method_name, None)

            if method is None:
                continue

            try:
                results.append(method(*args))
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug(
                    "Error calling listener %r with args %r", method, args, exc_info=exc
                )

        return results


class LocalLogMixin:
    """Logging helpers that route through the object's own `log` method."""

    @abc.abstractmethod
    def log(self, lvl: int, msg: str, *args, **kwargs) -> None:  # pragma: no cover
        pass

    def _log(self, lvl: int, msg: str, *args, **kwargs) -> None:
        # Report the caller of `debug()` and friends, not this module
        return self.log(lvl, msg, *args, stacklevel=4, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        return self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        return self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        return self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        return self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        return self._log(logging.ERROR, msg, *args, **kwargs)


class CatchingTaskMixin(LocalLogMixin):
    """Run background coroutines whose failures are logged instead of raised."""

    _tasks: set[asyncio.Task[typing.Any]] = set()

    def create_catching_task(
        self,
        target: typing.Coroutine,
        exceptions: type[Exception] | tuple[type[Exception], ...] = (),
        name: str | None = None,
    ) -> asyncio.Task:
        """Schedule `target`, silently ignoring the given expected exceptions."""
        task = asyncio.get_running_loop().create_task(
            self.catching_coro(target, exceptions), name=name
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def catching_coro(
        self,
        target: typing.Coroutine,
        exceptions: type[Exception] | tuple[type[Exception], ...] = (),
    ) -> typing.Any:
        try:
            return await target
        except exceptions:
            return None
        except Exception:
            # Drop the frame of this wrapper from the logged traceback
            depth = len(inspect.trace()) - 1
            self.exception("%s", traceback.format_exc(-depth))
            return None


def utc_timestamp(epoch_seconds: float) -> str:
    """Format a UNIX timestamp as a second-resolution ISO 8601 UTC string."""
    return datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc).strftime(
        ISO8601_UTC_FORMAT
    )

"""
Battery statistics daemon main loop.

Runs two concurrent asyncio loops against one BatteryMonitor:
1. **Sleep loop**: awaits SystemdSleepEvent signals from the sleep hook and
   forwards suspend/resume transitions to the monitor.
2. **Battery loop**: discovers the UPower battery, applies its property
   snapshot, then forwards every PropertiesChanged batch to the monitor.

Both loops share the monitor by reference and run on the same event loop, so
monitor calls never interleave. An exception while handling one notification
is logged and does not stop the loop. A battery discovery failure or a
failed sleep signal subscription is fatal: it is logged, stops both loops,
and the process exits with status 1. SIGTERM/SIGINT set a shared
asyncio.Event that ends both loops at their next await.

Diagnostics go to stderr through logging (JSON lines by default); the status
feed itself goes to stdout through the presenter.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: A failed sleep signal subscription stops both loops (exit 1)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from dbus_fast.errors import DBusError

from batstat.src.sources import BatteryDiscoveryError
from batstat.src.translate import handle_sleep_event, process_battery_properties

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from batstat.src.engine import BatteryMonitor
    from batstat.src.sources import BatteryEventSource, SleepEventSource

logger = logging.getLogger(__name__)

_SHUTDOWN = object()
"""Returned by _until_shutdown() when the shutdown event won the race."""


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure root logging on stderr.

    Args:
        level: Logging level name.
        json_output: JSON lines when True, otherwise a plain text format.
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: object) -> None:
    """Log the effective configuration at startup.

    Args:
        settings: A BatstatSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Battery stats daemon starting with config: "
        "bus_type=%s, upower_service=%s, battery_path=%s, "
        "timestamp_format=%s, log_level=%s, log_json=%s",
        settings.bus_type,  # type: ignore[attr-defined]
        settings.upower_service,  # type: ignore[attr-defined]
        settings.battery_path or "<enumerate>",  # type: ignore[attr-defined]
        settings.timestamp_format,  # type: ignore[attr-defined]
        settings.log_level,  # type: ignore[attr-defined]
        settings.log_json,  # type: ignore[attr-defined]
    )


async def _until_shutdown(aw: Awaitable[Any], shutdown_event: asyncio.Event) -> Any:
    """Await *aw* unless shutdown_event is set first.

    Returns:
        The result of *aw*, or ``_SHUTDOWN`` if shutdown came first (in
        which case *aw* is cancelled).
    """
    task = asyncio.ensure_future(aw)
    stop = asyncio.ensure_future(shutdown_event.wait())
    try:
        await asyncio.wait({task, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
    if task.done():
        return task.result()
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    return _SHUTDOWN


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


def _apply_sleep_event(monitor: BatteryMonitor, event: tuple[str, str, str]) -> None:
    """Forward one sleep notification, logging instead of raising."""
    try:
        handle_sleep_event(monitor, *event)
    except Exception:
        logger.error("Sleep event handling error", exc_info=True)


def _apply_battery_properties(monitor: BatteryMonitor, properties: dict[str, Any]) -> None:
    """Forward one property batch, logging instead of raising."""
    try:
        process_battery_properties(monitor, properties)
    except Exception:
        logger.error("Battery property handling error", exc_info=True)


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def _sleep_loop(
    *,
    source: SleepEventSource,
    monitor: BatteryMonitor,
    shutdown_event: asyncio.Event,
) -> None:
    """Forward sleep notifications until shutdown_event is set."""
    await source.start()
    logger.info("Sleep loop started")
    while not shutdown_event.is_set():
        event = await _until_shutdown(source.next_event(), shutdown_event)
        if event is _SHUTDOWN:
            break
        _apply_sleep_event(monitor, event)
    logger.info("Sleep loop stopped")


async def _battery_loop(
    *,
    source: BatteryEventSource,
    monitor: BatteryMonitor,
    shutdown_event: asyncio.Event,
) -> None:
    """Discover the battery, apply its snapshot, then forward changes.

    Raises:
        BatteryDiscoveryError: No single battery device could be found.
        DBusError: A UPower call failed.
    """
    path = await source.discover()
    _apply_battery_properties(monitor, await source.get_properties())
    await source.start()
    logger.info("Battery loop started for %s", path)
    while not shutdown_event.is_set():
        changes = await _until_shutdown(source.next_changes(), shutdown_event)
        if changes is _SHUTDOWN:
            break
        _apply_battery_properties(monitor, changes)
    logger.info("Battery loop stopped")


# ---------------------------------------------------------------------------
# Concurrent runner
# ---------------------------------------------------------------------------


async def run_monitors(
    *,
    sleep_source: SleepEventSource,
    battery_source: BatteryEventSource,
    monitor: BatteryMonitor,
    shutdown_event: asyncio.Event,
) -> bool:
    """Run the sleep and battery loops concurrently until shutdown.

    A battery discovery or UPower failure, or a failed sleep signal
    subscription, sets shutdown_event so the other loop ends too. Both loops
    have finished before the sources are closed.

    Returns:
        True on a clean shutdown, False if either loop failed.
    """
    logger.info("Starting sleep and battery loops")
    ok = True

    async def _sleep() -> None:
        nonlocal ok
        try:
            await _sleep_loop(
                source=sleep_source,
                monitor=monitor,
                shutdown_event=shutdown_event,
            )
        except DBusError as exc:
            logger.critical("Sleep signal subscription failed: %s", exc)
            ok = False
            shutdown_event.set()

    async def _battery() -> None:
        nonlocal ok
        try:
            await _battery_loop(
                source=battery_source,
                monitor=monitor,
                shutdown_event=shutdown_event,
            )
        except BatteryDiscoveryError as exc:
            logger.critical("Battery discovery failed: %s", exc)
            ok = False
            shutdown_event.set()
        except DBusError as exc:
            logger.critical("UPower call failed: %s", exc)
            ok = False
            shutdown_event.set()

    try:
        await asyncio.gather(_sleep(), _battery())
    finally:
        for source in (sleep_source, battery_source):
            try:
                await source.close()
            except Exception:
                logger.warning("Failed to close event source", exc_info=True)

    logger.info("Shutdown complete")
    return ok


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> bool:
    """Async entrypoint: load config, connect to D-Bus, run loops.

    Sets up SIGTERM/SIGINT handlers to trigger shutdown.

    Returns:
        True on a clean shutdown, False on a fatal monitoring error.
    """
    from dbus_fast import BusType
    from dbus_fast.aio import MessageBus

    from batstat.src.config import BatstatSettings
    from batstat.src.engine import BatteryMonitor
    from batstat.src.presenter import StreamPresenter
    from batstat.src.sources import BatteryEventSource, SleepEventSource

    settings = BatstatSettings()
    configure_logging(settings.log_level, settings.log_json)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    bus_type = BusType.SESSION if settings.bus_type == "session" else BusType.SYSTEM
    bus = await MessageBus(bus_type=bus_type).connect()

    monitor = BatteryMonitor(
        StreamPresenter(),
        timestamp_format=settings.timestamp_format,
    )
    try:
        return await run_monitors(
            sleep_source=SleepEventSource(bus),
            battery_source=BatteryEventSource(
                bus,
                service=settings.upower_service,
                device_path=settings.battery_path,
            ),
            monitor=monitor,
            shutdown_event=shutdown_event,
        )
    finally:
        bus.disconnect()


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for shutdown.
    """
    logger.info("Received shutdown signal, stopping")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the battery stats daemon."""
    if not asyncio.run(async_main()):
        sys.exit(1)


if __name__ == "__main__":
    main()

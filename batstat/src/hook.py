"""
systemd-sleep hook that announces suspend/resume to the daemon.

systemd-sleep runs every executable in ``/usr/lib/systemd/system-sleep/``
with ``pre`` or ``post`` and the sleep verb (``suspend``, ``hibernate``,
``hybrid-sleep``, ``suspend-then-hibernate``). Install a wrapper there that
execs ``batstat-sleep-hook "$@"``; this module then emits the
``BatteryStats.Sleep.SystemdSleepEvent`` signal the daemon listens for.

Usage:
    batstat-sleep-hook pre suspend
    batstat-sleep-hook post suspend-then-hibernate suspend

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dbus_fast import BusType, Message
from dbus_fast.aio import MessageBus
from dbus_fast.errors import DBusError

from batstat.src.sources import (
    SLEEP_SIGNAL_INTERFACE,
    SLEEP_SIGNAL_MEMBER,
    SLEEP_SIGNAL_PATH,
    SLEEP_SIGNAL_SIGNATURE,
)

logger = logging.getLogger(__name__)


def build_sleep_signal(stage: str, operation: str, extra_action: str = "") -> Message:
    """Build the SystemdSleepEvent signal message."""
    return Message.new_signal(
        SLEEP_SIGNAL_PATH,
        SLEEP_SIGNAL_INTERFACE,
        SLEEP_SIGNAL_MEMBER,
        SLEEP_SIGNAL_SIGNATURE,
        [stage, operation, extra_action],
    )


async def emit_sleep_event(
    stage: str,
    operation: str,
    extra_action: str = "",
    *,
    bus_type: BusType = BusType.SYSTEM,
) -> None:
    """Connect to the bus, emit one sleep signal and disconnect."""
    bus = await MessageBus(bus_type=bus_type).connect()
    try:
        await bus.send(build_sleep_signal(stage, operation, extra_action))
    finally:
        bus.disconnect()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        description="Emit a battery stats sleep event (systemd-sleep hook)"
    )
    p.add_argument("stage", choices=("pre", "post"), help="Hook stage")
    p.add_argument("operation", help="Sleep verb, e.g. suspend or hibernate")
    p.add_argument(
        "extra_action",
        nargs="?",
        default="",
        help="Secondary verb for suspend-then-hibernate",
    )
    p.add_argument(
        "--session",
        action="store_true",
        help="Use the session bus instead of the system bus",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for ``batstat-sleep-hook``. Returns the exit status."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    bus_type = BusType.SESSION if args.session else BusType.SYSTEM
    try:
        asyncio.run(
            emit_sleep_event(
                args.stage,
                args.operation,
                args.extra_action,
                bus_type=bus_type,
            )
        )
    except (DBusError, OSError) as exc:
        logger.error("Failed to emit sleep event: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

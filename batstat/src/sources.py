"""
D-Bus event sources feeding the battery monitor.

Two sources share one dbus_fast MessageBus:

1. **SleepEventSource**: the ``SystemdSleepEvent`` signal emitted by the
   sleep hook (see hook.py) on ``/BatteryStats``.
2. **BatteryEventSource**: locates the single UPower battery device, reads
   its full property snapshot and then streams its ``PropertiesChanged``
   deltas.

Both turn bus callbacks into an asyncio.Queue so the daemon loops can simply
await the next notification. Messages are queued in arrival order; nothing
is reordered or deduplicated.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Unregister the handler when AddMatch fails; quote-escape match values

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from dbus_fast import Message, MessageType
from dbus_fast.errors import DBusError

if TYPE_CHECKING:
    from dbus_fast.aio import MessageBus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# D-Bus names
# ---------------------------------------------------------------------------

DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

UPOWER_SERVICE = "org.freedesktop.UPower"
UPOWER_PATH = "/org/freedesktop/UPower"
UPOWER_INTERFACE = "org.freedesktop.UPower"
UPOWER_DEVICE_INTERFACE = "org.freedesktop.UPower.Device"
UPOWER_TYPE_BATTERY = 2

SLEEP_SIGNAL_PATH = "/BatteryStats"
SLEEP_SIGNAL_INTERFACE = "BatteryStats.Sleep"
SLEEP_SIGNAL_MEMBER = "SystemdSleepEvent"
SLEEP_SIGNAL_SIGNATURE = "sss"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BatteryDiscoveryError(Exception):
    """The battery device could not be determined; monitoring cannot start."""


class NoBatteryError(BatteryDiscoveryError):
    """UPower reports no battery device."""


class MultipleBatteriesError(BatteryDiscoveryError):
    """UPower reports more than one battery; only one is supported."""


# ---------------------------------------------------------------------------
# Bus helpers
# ---------------------------------------------------------------------------


async def call_method(
    bus: MessageBus,
    *,
    destination: str,
    path: str,
    interface: str,
    member: str,
    signature: str = "",
    body: list[Any] | None = None,
) -> list[Any]:
    """Call a D-Bus method and return the reply body.

    Raises:
        DBusError: If the bus replies with an error message.
    """
    reply = await bus.call(
        Message(
            destination=destination,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=body or [],
        )
    )
    if reply is None:
        return []
    if reply.message_type == MessageType.ERROR:
        text = str(reply.body[0]) if reply.body else ""
        raise DBusError(reply.error_name, text)
    return reply.body


def build_match_rule(**fields: str) -> str:
    """Build a D-Bus match rule string, e.g. ``type='signal',path='/x'``.

    A single quote inside a value is written as ``'\\''``: close the
    quoted run, an escaped quote, reopen.
    """
    return ",".join(
        f"{key}='{_escape_match_value(value)}'" for key, value in fields.items()
    )


def _escape_match_value(value: str) -> str:
    return value.replace("'", "'\\''")


class SignalSubscription:
    """Queue of bodies of the signals matching one path/interface/member.

    Args:
        bus: Connected message bus.
        path: Object path the signal is emitted from.
        interface: Signal interface.
        member: Signal name.
        sender: Optional well-known sender name for the match rule.
        arg0: Optional required value of the first signal argument.
    """

    def __init__(
        self,
        bus: MessageBus,
        *,
        path: str,
        interface: str,
        member: str,
        sender: str | None = None,
        arg0: str | None = None,
    ) -> None:
        self._bus = bus
        self._path = path
        self._interface = interface
        self._member = member
        self._arg0 = arg0
        self._queue: asyncio.Queue[list[Any]] = asyncio.Queue()

        fields = {"type": "signal"}
        if sender is not None:
            fields["sender"] = sender
        fields.update(path=path, interface=interface, member=member)
        if arg0 is not None:
            fields["arg0"] = arg0
        self.match_rule = build_match_rule(**fields)
        self._started = False

    async def start(self) -> None:
        """Register the match rule and begin queueing matching signals."""
        if self._started:
            return
        self._bus.add_message_handler(self._on_message)
        try:
            await call_method(
                self._bus,
                destination=DBUS_SERVICE,
                path=DBUS_PATH,
                interface=DBUS_INTERFACE,
                member="AddMatch",
                signature="s",
                body=[self.match_rule],
            )
        except BaseException:
            self._bus.remove_message_handler(self._on_message)
            raise
        self._started = True
        logger.info("Subscribed to %s", self.match_rule)

    async def close(self) -> None:
        if not self._started:
            return
        self._started = False
        self._bus.remove_message_handler(self._on_message)
        await call_method(
            self._bus,
            destination=DBUS_SERVICE,
            path=DBUS_PATH,
            interface=DBUS_INTERFACE,
            member="RemoveMatch",
            signature="s",
            body=[self.match_rule],
        )

    async def next(self) -> list[Any]:
        """Wait for the next matching signal and return its body."""
        return await self._queue.get()

    def _on_message(self, message: Message) -> None:
        if (
            message.message_type != MessageType.SIGNAL
            or message.path != self._path
            or message.interface != self._interface
            or message.member != self._member
        ):
            return
        if self._arg0 is not None and (not message.body or message.body[0] != self._arg0):
            return
        self._queue.put_nowait(message.body)


# ---------------------------------------------------------------------------
# Sleep hook signal
# ---------------------------------------------------------------------------


class SleepEventSource:
    """Stream of ``(stage, operation, extra_action)`` sleep hook notifications."""

    def __init__(self, bus: MessageBus) -> None:
        self._subscription = SignalSubscription(
            bus,
            path=SLEEP_SIGNAL_PATH,
            interface=SLEEP_SIGNAL_INTERFACE,
            member=SLEEP_SIGNAL_MEMBER,
        )

    async def start(self) -> None:
        await self._subscription.start()

    async def close(self) -> None:
        await self._subscription.close()

    async def next_event(self) -> tuple[str, str, str]:
        """Wait for the next well-formed sleep notification.

        Signals whose body is not three strings are logged and skipped.
        """
        while True:
            body = await self._subscription.next()
            if len(body) == 3 and all(isinstance(arg, str) for arg in body):
                stage, operation, extra_action = body
                return stage, operation, extra_action
            logger.warning("Ignoring malformed %s signal: %r", SLEEP_SIGNAL_MEMBER, body)


# ---------------------------------------------------------------------------
# UPower battery device
# ---------------------------------------------------------------------------


class BatteryEventSource:
    """UPower battery device discovery, snapshot and change stream.

    Args:
        bus: Connected message bus.
        service: UPower bus name.
        device_path: Battery object path. When empty, :meth:`discover`
            enumerates UPower devices to find it.
    """

    def __init__(
        self,
        bus: MessageBus,
        *,
        service: str = UPOWER_SERVICE,
        device_path: str = "",
    ) -> None:
        self._bus = bus
        self._service = service
        self._device_path = device_path
        self._subscription: SignalSubscription | None = None

    @property
    def device_path(self) -> str:
        return self._device_path

    async def discover(self) -> str:
        """Find the battery device path.

        Returns:
            The object path of the one battery device.

        Raises:
            NoBatteryError: No device of battery type exists.
            MultipleBatteriesError: More than one battery device exists.
            DBusError: A UPower call failed.
        """
        if self._device_path:
            logger.info("Using configured battery at %s", self._device_path)
            return self._device_path

        (devices,) = await call_method(
            self._bus,
            destination=self._service,
            path=UPOWER_PATH,
            interface=UPOWER_INTERFACE,
            member="EnumerateDevices",
        )

        battery_path: str | None = None
        for device in devices:
            (device_type,) = await call_method(
                self._bus,
                destination=self._service,
                path=device,
                interface=PROPERTIES_INTERFACE,
                member="Get",
                signature="ss",
                body=[UPOWER_DEVICE_INTERFACE, "Type"],
            )
            if device_type.value != UPOWER_TYPE_BATTERY:
                continue
            logger.info("Found battery at %s", device)
            if battery_path is not None:
                raise MultipleBatteriesError(
                    f"Multiple batteries not supported ({battery_path}, {device})"
                )
            battery_path = device

        if battery_path is None:
            raise NoBatteryError("No battery found")

        self._device_path = battery_path
        return battery_path

    async def get_properties(self) -> dict[str, Any]:
        """Return every UPower Device property of the battery (as Variants)."""
        (properties,) = await call_method(
            self._bus,
            destination=self._service,
            path=self._require_path(),
            interface=PROPERTIES_INTERFACE,
            member="GetAll",
            signature="s",
            body=[UPOWER_DEVICE_INTERFACE],
        )
        return properties

    async def start(self) -> None:
        """Subscribe to PropertiesChanged for the battery device."""
        if self._subscription is None:
            self._subscription = SignalSubscription(
                self._bus,
                path=self._require_path(),
                interface=PROPERTIES_INTERFACE,
                member="PropertiesChanged",
                sender=self._service,
                arg0=UPOWER_DEVICE_INTERFACE,
            )
        await self._subscription.start()

    async def close(self) -> None:
        if self._subscription is not None:
            await self._subscription.close()

    async def next_changes(self) -> dict[str, Any]:
        """Wait for the next batch of changed battery properties."""
        if self._subscription is None:
            raise RuntimeError("BatteryEventSource.start() has not been called")
        while True:
            body = await self._subscription.next()
            if len(body) >= 2 and isinstance(body[1], dict):
                return body[1]
            logger.warning("Ignoring malformed PropertiesChanged signal: %r", body)

    def _require_path(self) -> str:
        if not self._device_path:
            raise RuntimeError("Battery device path unknown; call discover() first")
        return self._device_path

"""
Tests for the systemd-sleep hook entrypoint.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from batstat.src.hook import build_sleep_signal, main, parse_args
from dbus_fast import BusType, MessageType
from dbus_fast.errors import DBusError


class TestBuildSleepSignal:
    def test_signal_matches_daemon_subscription(self) -> None:
        """The emitted signal uses the path, interface and member the daemon listens on."""
        message = build_sleep_signal("pre", "suspend")

        assert message.message_type == MessageType.SIGNAL
        assert message.path == "/BatteryStats"
        assert message.interface == "BatteryStats.Sleep"
        assert message.member == "SystemdSleepEvent"
        assert message.signature == "sss"
        assert message.body == ["pre", "suspend", ""]


class TestParseArgs:
    def test_systemd_sleep_arguments(self) -> None:
        """Positional arguments follow the systemd-sleep hook calling convention."""
        args = parse_args(["post", "suspend-then-hibernate", "suspend"])

        assert args.stage == "post"
        assert args.operation == "suspend-then-hibernate"
        assert args.extra_action == "suspend"
        assert args.session is False

    def test_extra_action_optional(self) -> None:
        """The third argument defaults to an empty string."""
        assert parse_args(["pre", "suspend"]).extra_action == ""

    def test_rejects_unknown_stage(self) -> None:
        """A stage other than pre or post is a usage error."""
        with pytest.raises(SystemExit):
            parse_args(["during", "suspend"])


class TestMain:
    def test_emits_on_system_bus(self) -> None:
        """The signal goes out on the system bus by default."""
        with patch("batstat.src.hook.emit_sleep_event", new=AsyncMock()) as mock_emit:
            assert main(["pre", "suspend"]) == 0

        mock_emit.assert_awaited_once_with("pre", "suspend", "", bus_type=BusType.SYSTEM)

    def test_session_flag(self) -> None:
        """--session sends the signal on the session bus instead."""
        with patch("batstat.src.hook.emit_sleep_event", new=AsyncMock()) as mock_emit:
            main(["--session", "post", "suspend"])

        assert mock_emit.call_args.kwargs["bus_type"] == BusType.SESSION

    @pytest.mark.parametrize(
        "error",
        [
            OSError("no bus socket"),
            DBusError("org.freedesktop.DBus.Error.AccessDenied", "denied"),
        ],
    )
    def test_bus_failure_returns_one(self, error: Exception) -> None:
        """A bus error is reported and exits with status 1."""
        with patch(
            "batstat.src.hook.emit_sleep_event", new=AsyncMock(side_effect=error)
        ):
            assert main(["pre", "suspend"]) == 1

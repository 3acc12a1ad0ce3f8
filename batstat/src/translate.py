"""
Translation from raw D-Bus payloads to BatteryMonitor calls.

Two entry points, both pure apart from the calls they make on the monitor:

- handle_sleep_event(): maps the (stage, operation, extra_action) sleep hook
  signal to a PowerState.
- process_battery_properties(): maps a UPower Device property dict (full
  snapshot or PropertiesChanged delta) to state, limits and energy updates.

Property values may be dbus_fast ``Variant`` wrappers or plain Python values.
A property whose value has the wrong type is logged and skipped; it never
reaches the monitor.

Within one batch the order is always State, then limits, then Energy, so a
line printed for a new energy value already reflects limits that arrived in
the same notification.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from dbus_fast import Variant

from batstat.src.engine import BatteryMonitor
from batstat.src.models import BatteryState, PowerState

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# UPower Device property names and state codes
# ---------------------------------------------------------------------------

PROP_STATE = "State"
PROP_ENERGY = "Energy"
PROP_ENERGY_EMPTY = "EnergyEmpty"
PROP_ENERGY_FULL = "EnergyFull"

UPOWER_STATE_MAP: dict[int, BatteryState] = {
    1: BatteryState.CHARGING,
    2: BatteryState.DISCHARGING,
    4: BatteryState.IDLE,  # fully charged
    5: BatteryState.IDLE,  # pending charge
}
"""UPower ``State`` code -> BatteryState. Codes not listed are ignored."""

SLEEP_OPERATION_SUSPEND = "suspend"

_SLEEP_STAGE_MAP: dict[str, PowerState] = {
    "pre": PowerState.SUSPENDED,
    "post": PowerState.AWAKE,
}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _unwrap(value: Any) -> Any:
    return value.value if isinstance(value, Variant) else value


def _as_uint(name: str, value: Any) -> int | None:
    """Return *value* as an int, or None (with a warning) on type mismatch."""
    value = _unwrap(value)
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning(
            "Property '%s': expected unsigned integer, got %s",
            name,
            type(value).__name__,
        )
        return None
    return value


def _as_float(name: str, value: Any) -> float | None:
    """Return *value* as a float, or None (with a warning) on type mismatch."""
    value = _unwrap(value)
    if isinstance(value, bool) or not isinstance(value, int | float):
        logger.warning(
            "Property '%s': expected double, got %s",
            name,
            type(value).__name__,
        )
        return None
    return float(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def handle_sleep_event(
    monitor: BatteryMonitor,
    stage: str,
    operation: str,
    extra_action: str = "",
) -> None:
    """Forward a systemd-sleep hook notification to the monitor.

    Only ``suspend`` operations are tracked; ``pre`` marks entry into
    suspend and ``post`` the resume. Everything else is ignored.

    Args:
        monitor: The engine to drive.
        stage: ``"pre"`` or ``"post"``.
        operation: systemd-sleep verb, e.g. ``"suspend"`` or ``"hibernate"``.
        extra_action: Secondary verb systemd passes for combined modes.
            Logged only.
    """
    if operation != SLEEP_OPERATION_SUSPEND:
        logger.debug(
            "Ignoring sleep event stage=%s operation=%s extra=%s",
            stage,
            operation,
            extra_action,
        )
        return

    power_state = _SLEEP_STAGE_MAP.get(stage)
    if power_state is None:
        logger.debug("Ignoring suspend event with unknown stage '%s'", stage)
        return
    monitor.set_power_state(power_state)


def process_battery_properties(
    monitor: BatteryMonitor,
    properties: Mapping[str, Any],
) -> None:
    """Apply a UPower Device property batch to the monitor.

    Args:
        monitor: The engine to drive.
        properties: Property name -> value (optionally ``Variant``). Only
            ``State``, ``EnergyEmpty``, ``EnergyFull`` and ``Energy`` are
            used; everything else is ignored.
    """
    if PROP_STATE in properties:
        code = _as_uint(PROP_STATE, properties[PROP_STATE])
        if code is not None:
            battery_state = UPOWER_STATE_MAP.get(code)
            if battery_state is None:
                logger.debug("Ignoring UPower state code %d", code)
            else:
                monitor.set_battery_state(battery_state)

    if PROP_ENERGY_EMPTY in properties and PROP_ENERGY_FULL in properties:
        empty = _as_float(PROP_ENERGY_EMPTY, properties[PROP_ENERGY_EMPTY])
        full = _as_float(PROP_ENERGY_FULL, properties[PROP_ENERGY_FULL])
        if empty is not None and full is not None:
            monitor.set_battery_limits(empty, full)

    if PROP_ENERGY in properties:
        energy = _as_float(PROP_ENERGY, properties[PROP_ENERGY])
        if energy is not None:
            monitor.update_energy(energy)

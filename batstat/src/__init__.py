"""
Battery statistics daemon package.

Watches the UPower battery device and system suspend/resume notifications
over D-Bus, and prints a running feed of energy, charge percentage,
instantaneous rate and average rate since the last charge-state change.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

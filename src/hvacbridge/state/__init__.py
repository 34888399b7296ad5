"""State/store layer.

The store is the single owner of the last known HVAC values; the
dispatcher reads snapshots from it and never mutates state directly.
"""

from hvacbridge.state.store import ActuatorStateStore

__all__ = ["ActuatorStateStore"]

"""Thread-safe in-memory actuator state store.

Stream callbacks may run concurrently, so every mutation happens under
one lock.  Boolean flags are edge-triggered: :meth:`set_flag` reports
whether the value actually changed, and callers publish only on a
transition.
"""

from __future__ import annotations

import threading

from hvacbridge.models.state import ActuatorState, HvacFlag, Side


class ActuatorStateStore:
    """Holds the current :class:`ActuatorState`."""

    def __init__(self, initial: ActuatorState | None = None) -> None:
        self._lock = threading.Lock()
        self._state = initial if initial is not None else ActuatorState()

    def snapshot(self) -> ActuatorState:
        with self._lock:
            return self._state

    def set_temperature(self, side: Side, value: int) -> ActuatorState:
        """Record a cabin temperature and return the new snapshot."""
        key = "left_temperature" if side is Side.LEFT else "right_temperature"
        return self._update({key: value})

    def set_fan_speed(self, side: Side, value: int) -> ActuatorState:
        """Record a fan speed (0-100) for *side*; it also becomes the CAN fan speed."""
        key = "left_fan_speed" if side is Side.LEFT else "right_fan_speed"
        return self._update({key: value, "fan_speed": value})

    def set_flag(self, flag: HvacFlag, value: bool) -> bool:
        """Set a mode flag; return ``True`` only if the value changed."""
        value = bool(value)
        with self._lock:
            if self._state.flag(flag) == value:
                return False
            self._state = self._state.model_copy(update={flag.value: value})
            return True

    def _update(self, patch: dict[str, int]) -> ActuatorState:
        # model_copy skips validation; re-validate so range errors surface here.
        with self._lock:
            state = ActuatorState.model_validate({**self._state.model_dump(), **patch})
            self._state = state
            return state

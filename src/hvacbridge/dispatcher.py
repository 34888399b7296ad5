"""Routes signal updates to the state store, the actuators and the broker mirror.

Malformed updates (unknown path, unexpected datapoint variant, value out
of range) are dropped without raising; they are not errors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from hvacbridge import _constants as c
from hvacbridge._constants import scale_fan_speed
from hvacbridge.actuators.canbus import CanActuator
from hvacbridge.actuators.leds import LedActuator
from hvacbridge.models.datapoint import Datapoint, DatapointKind
from hvacbridge.models.state import ActuatorState, HvacFlag, Side
from hvacbridge.state.store import ActuatorStateStore

_logger = logging.getLogger(__name__)

#: Publish an accepted value back to the broker.
Mirror = Callable[[str, Datapoint], None]

#: Signals the bridge listens to, all as actuator targets.
SIGNALS: dict[str, bool] = {
    c.DRIVER_TEMPERATURE: True,
    c.DRIVER_FAN_SPEED: True,
    c.PASSENGER_TEMPERATURE: True,
    c.PASSENGER_FAN_SPEED: True,
    c.AIR_CONDITIONING_ACTIVE: True,
    c.FRONT_DEFROSTER_ACTIVE: True,
    c.REAR_DEFROSTER_ACTIVE: True,
    c.RECIRCULATION_ACTIVE: True,
}


@dataclass(frozen=True, slots=True)
class _Route:
    kind: DatapointKind
    low: int | None = None
    high: int | None = None
    side: Side | None = None
    flag: HvacFlag | None = None


_TEMPERATURE_RANGE = (0, 255)
_FAN_SPEED_RANGE = (0, 100)

_ROUTES: dict[str, _Route] = {
    c.DRIVER_TEMPERATURE: _Route(DatapointKind.INT32, *_TEMPERATURE_RANGE, side=Side.LEFT),
    c.PASSENGER_TEMPERATURE: _Route(DatapointKind.INT32, *_TEMPERATURE_RANGE, side=Side.RIGHT),
    c.DRIVER_FAN_SPEED: _Route(DatapointKind.UINT32, *_FAN_SPEED_RANGE, side=Side.LEFT),
    c.PASSENGER_FAN_SPEED: _Route(DatapointKind.UINT32, *_FAN_SPEED_RANGE, side=Side.RIGHT),
    c.AIR_CONDITIONING_ACTIVE: _Route(DatapointKind.BOOL, flag=HvacFlag.AIR_CONDITIONING),
    c.FRONT_DEFROSTER_ACTIVE: _Route(DatapointKind.BOOL, flag=HvacFlag.FRONT_DEFROST),
    c.REAR_DEFROSTER_ACTIVE: _Route(DatapointKind.BOOL, flag=HvacFlag.REAR_DEFROST),
    c.RECIRCULATION_ACTIVE: _Route(DatapointKind.BOOL, flag=HvacFlag.RECIRCULATION),
}


class SignalDispatcher:
    """Applies one ``(path, datapoint)`` update at a time."""

    def __init__(
        self,
        *,
        store: ActuatorStateStore,
        can: CanActuator,
        leds: LedActuator,
        mirror: Mirror,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._can = can
        self._leds = leds
        self._mirror = mirror
        self._logger = logger or _logger

    @property
    def paths(self) -> list[str]:
        return list(_ROUTES)

    def dispatch(self, path: str, datapoint: Datapoint) -> bool:
        """Apply an update.

        Returns ``True`` when the update changed state and was mirrored;
        dropped updates and repeated flag values return ``False``.
        """
        self._logger.debug("Value received for %s", path)

        route = _ROUTES.get(path)
        if route is None:
            return False

        value = datapoint.get(route.kind)
        if value is None:
            self._logger.debug("Ignoring %s: expected %s, got %s", path, route.kind, datapoint.kind)
            return False
        if route.low is not None and route.high is not None and not route.low <= value <= route.high:
            self._logger.debug("Ignoring %s: %s outside %s..%s", path, value, route.low, route.high)
            return False

        if route.flag is not None:
            return self._set_flag(path, route.flag, value)
        assert route.side is not None  # noqa: S101
        if route.kind is DatapointKind.INT32:
            self._set_temperature(path, route.side, value)
        else:
            self._set_fan_speed(path, route.side, value)
        return True

    def _set_temperature(self, path: str, side: Side, value: int) -> None:
        state = self._store.set_temperature(side, value)
        self._send_can(state)
        self._leds.show(state.left_temperature, state.right_temperature)
        self._mirror(path, Datapoint.from_int32(value))

    def _set_fan_speed(self, path: str, side: Side, value: int) -> None:
        state = self._store.set_fan_speed(side, value)
        self._send_can(state)
        self._mirror(path, Datapoint.from_uint32(value))

    def _set_flag(self, path: str, flag: HvacFlag, value: bool) -> bool:
        if not self._store.set_flag(flag, value):
            return False
        self._mirror(path, Datapoint.from_bool(value))
        return True

    def _send_can(self, state: ActuatorState) -> None:
        self._can.send(state.left_temperature, state.right_temperature, scale_fan_speed(state.fan_speed))

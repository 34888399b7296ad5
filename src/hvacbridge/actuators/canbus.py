"""HVAC controller CAN output.

The controller expects a single 8-byte frame with id ``0x30``:

====  =====================================
byte  meaning
====  =====================================
0     left temperature (converted)
1     right temperature (converted)
2     average temperature (converted)
3     ``0xF0``
4     fan speed (0-255)
5     ``1``
6-7   ``0``
====  =====================================

The whole frame is rebuilt on every change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import can

from hvacbridge._constants import CAN_FRAME_ID, CAN_FRAME_LENGTH, convert_temperature
from hvacbridge.config import CanConfig

_logger = logging.getLogger(__name__)

BusFactory = Callable[[CanConfig], can.BusABC]


def encode_frame(left: int, right: int, fan_speed: int) -> bytes:
    """Build the HVAC frame payload.

    *fan_speed* must already be scaled to 0-255.
    """
    average = (int(left) + int(right)) >> 1
    return bytes(
        (
            convert_temperature(left),
            convert_temperature(right),
            convert_temperature(average),
            0xF0,
            int(fan_speed) & 0xFF,
            1,
            0,
            0,
        )
    )


def _default_bus_factory(config: CanConfig) -> can.BusABC:
    return can.Bus(interface=config.interface, channel=config.port)


class CanActuator:
    """Sends HVAC frames on a CAN bus.

    A failed open leaves the actuator inactive.  A failed send shuts the
    bus down and deactivates it; further sends are skipped until
    :meth:`reopen`.
    """

    def __init__(
        self,
        config: CanConfig | None = None,
        *,
        bus_factory: BusFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or CanConfig()
        self._bus_factory = bus_factory or _default_bus_factory
        self._logger = logger or _logger
        self._bus: can.BusABC | None = None
        self._last_frame: bytes | None = None

    @property
    def is_active(self) -> bool:
        return self._bus is not None

    @property
    def last_frame(self) -> bytes | None:
        """Payload of the last frame sent successfully."""
        return self._last_frame

    def open(self) -> bool:
        """Open the configured CAN channel; return whether it is active."""
        if self._bus is not None:
            return True
        if not self._config.enabled:
            self._logger.debug("CAN output disabled")
            return False

        self._logger.debug("Opening CAN port %s (%s)", self._config.port, self._config.interface)
        try:
            self._bus = self._bus_factory(self._config)
        except (can.CanError, OSError, ValueError) as exc:
            self._logger.warning("Could not open CAN port %s: %s", self._config.port, exc)
            self._bus = None
            return False
        self._logger.info("Opened CAN port %s", self._config.port)
        return True

    def close(self) -> None:
        bus = self._bus
        self._bus = None
        if bus is None:
            return
        try:
            bus.shutdown()
        except (can.CanError, OSError):
            self._logger.debug("CAN shutdown failed", exc_info=True)

    def reopen(self) -> bool:
        self.close()
        return self.open()

    def send(self, left: int, right: int, fan_speed: int) -> bool:
        """Encode and transmit one frame; return whether it was sent."""
        bus = self._bus
        if bus is None:
            return False

        payload = encode_frame(left, right, fan_speed)
        message = can.Message(
            arbitration_id=CAN_FRAME_ID,
            is_extended_id=False,
            dlc=CAN_FRAME_LENGTH,
            data=payload,
        )
        try:
            bus.send(message)
        except (can.CanError, OSError) as exc:
            self._logger.warning("Write to %s failed: %s", self._config.port, exc)
            self.close()
            return False

        self._last_frame = payload
        self._logger.debug("CAN frame sent: %s", payload.hex())
        return True

    def __enter__(self) -> CanActuator:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

"""Cabin temperature LED colour output.

The left and right temperatures each pick a colour from a blue-to-red
table; the LED shows their channel-wise average.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hvacbridge._constants import TEMP_MAX_C, TEMP_MIN_C
from hvacbridge.config import LedConfig

_logger = logging.getLogger(__name__)

#: RGB colour per whole degree, 15 °C .. 30 °C.
TEMPERATURE_COLOURS: tuple[tuple[int, int, int], ...] = (
    (0, 0, 229),
    (22, 0, 204),
    (34, 0, 189),
    (46, 0, 175),
    (58, 0, 186),
    (70, 0, 146),
    (82, 0, 131),
    (104, 0, 116),
    (116, 0, 102),
    (128, 0, 87),
    (140, 0, 73),
    (152, 0, 58),
    (164, 0, 43),
    (176, 0, 29),
    (188, 0, 14),
    (201, 0, 5),
)

_CHANNELS = ("red", "green", "blue")


def _colour_index(temperature: int) -> int:
    return max(0, min(TEMP_MAX_C - TEMP_MIN_C, int(temperature) - TEMP_MIN_C))


def map_colour(left: int, right: int) -> tuple[int, int, int]:
    """Average the table colours of two temperatures."""
    left_rgb = TEMPERATURE_COLOURS[_colour_index(left)]
    right_rgb = TEMPERATURE_COLOURS[_colour_index(right)]
    red, green, blue = ((a + b) // 2 for a, b in zip(left_rgb, right_rgb, strict=True))
    return red, green, blue


class LedActuator:
    """Writes brightness values to three sysfs-style files.

    The first failed write marks the actuator invalid; channels written
    before the failure keep their new value.  Nothing is written again
    until :meth:`reconfigure`.
    """

    def __init__(self, config: LedConfig | None = None, *, logger: logging.Logger | None = None) -> None:
        self._config = config or LedConfig()
        self._logger = logger or _logger
        self._valid = self._config.enabled
        self._last_colour: tuple[int, int, int] | None = None

    @property
    def is_valid(self) -> bool:
        return self._valid

    @property
    def last_colour(self) -> tuple[int, int, int] | None:
        return self._last_colour

    def reconfigure(self, config: LedConfig | None = None) -> None:
        """Adopt *config* (or keep the current one) and re-enable writes."""
        if config is not None:
            self._config = config
        self._valid = self._config.enabled

    def show(self, left: int, right: int) -> bool:
        """Display the colour for *left*/*right*; return whether all writes succeeded."""
        if not self._valid:
            return False

        colour = map_colour(left, right)
        for name, path, value in zip(_CHANNELS, self._config.paths, colour, strict=True):
            try:
                Path(path).write_text(str(value), encoding="ascii")
            except OSError as exc:
                self._logger.warning("Could not write %s LED path %s: %s", name, path, exc)
                self._valid = False
                return False

        self._last_colour = colour
        self._logger.debug("LED colour set to %s", colour)
        return True

"""Hardware outputs driven by HVAC state."""

from hvacbridge.actuators.canbus import CanActuator, encode_frame
from hvacbridge.actuators.leds import LedActuator, map_colour

__all__ = ["CanActuator", "LedActuator", "encode_frame", "map_colour"]

"""Actuator state snapshot model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from hvacbridge.models._base import HvacBaseModel

__all__ = ["ActuatorState", "HvacFlag", "Side"]


class Side(StrEnum):
    LEFT = "left"
    RIGHT = "right"


class HvacFlag(StrEnum):
    """Boolean HVAC mode flags."""

    AIR_CONDITIONING = "air_conditioning"
    FRONT_DEFROST = "front_defrost"
    REAR_DEFROST = "rear_defrost"
    RECIRCULATION = "recirculation"


class ActuatorState(HvacBaseModel):
    """Last known HVAC values.

    Temperatures are °C as received (0-255), fan speeds are the raw
    0-100 VSS percentages.  ``fan_speed`` is whichever side was
    commanded last; the CAN frame only carries one fan byte.
    """

    left_temperature: int = Field(default=21, ge=0, le=255)
    right_temperature: int = Field(default=21, ge=0, le=255)
    left_fan_speed: int = Field(default=0, ge=0, le=100)
    right_fan_speed: int = Field(default=0, ge=0, le=100)
    fan_speed: int = Field(default=0, ge=0, le=100)
    air_conditioning: bool = False
    front_defrost: bool = False
    rear_defrost: bool = False
    recirculation: bool = False

    def flag(self, flag: HvacFlag) -> bool:
        return bool(getattr(self, flag.value))

"""Data models for hvacbridge."""

from hvacbridge.models._base import HvacBaseModel
from hvacbridge.models.broker import (
    DataEntry,
    Field,
    SetError,
    StatusCode,
    StreamStatus,
    SubscribeEntry,
    SubscribeRequest,
    SubscribeUpdate,
)
from hvacbridge.models.datapoint import Datapoint, DatapointKind
from hvacbridge.models.state import ActuatorState, HvacFlag, Side

__all__ = [
    "ActuatorState",
    "DataEntry",
    "Datapoint",
    "DatapointKind",
    "Field",
    "HvacBaseModel",
    "HvacFlag",
    "SetError",
    "Side",
    "StatusCode",
    "StreamStatus",
    "SubscribeEntry",
    "SubscribeRequest",
    "SubscribeUpdate",
]

"""Databroker request, update and status models.

These are transport-neutral; :mod:`hvacbridge._proto` converts them to
and from the KUKSA.val v1 protobuf messages.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from enum import StrEnum

from pydantic import Field as PydanticField
from pydantic import field_validator

from hvacbridge.models._base import HvacBaseModel
from hvacbridge.models.datapoint import Datapoint

__all__ = [
    "DataEntry",
    "Field",
    "SetError",
    "StatusCode",
    "StreamStatus",
    "SubscribeEntry",
    "SubscribeRequest",
    "SubscribeUpdate",
]


class Field(StrEnum):
    """Which part of a data entry a request refers to."""

    PATH = "path"
    VALUE = "value"
    ACTUATOR_TARGET = "actuator_target"


class StatusCode(enum.IntEnum):
    """gRPC status codes (numeric values match the wire protocol)."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @classmethod
    def _missing_(cls, value: object) -> StatusCode:
        return cls.UNKNOWN


class StreamStatus(HvacBaseModel):
    """Terminal status of a call or stream."""

    code: StatusCode = StatusCode.OK
    details: str = ""

    @property
    def is_ok(self) -> bool:
        return self.code is StatusCode.OK

    @property
    def is_cancelled(self) -> bool:
        return self.code is StatusCode.CANCELLED

    @classmethod
    def ok(cls) -> StreamStatus:
        return cls(code=StatusCode.OK)

    @classmethod
    def cancelled(cls, details: str = "") -> StreamStatus:
        return cls(code=StatusCode.CANCELLED, details=details)

    def __str__(self) -> str:
        return f"{self.code.value} ({self.details})"


class SubscribeEntry(HvacBaseModel):
    """One signal in a subscription request."""

    path: str
    fields: tuple[Field, ...] = (Field.PATH, Field.VALUE)

    @field_validator("path")
    @classmethod
    def _non_empty_path(cls, value: str) -> str:
        path = value.strip()
        if not path:
            raise ValueError("path must be non-empty")
        return path

    @property
    def actuator(self) -> bool:
        return Field.ACTUATOR_TARGET in self.fields


class SubscribeRequest(HvacBaseModel):
    """Ordered set of signals to stream."""

    entries: tuple[SubscribeEntry, ...] = PydanticField(default_factory=tuple)

    @classmethod
    def for_signals(cls, signals: Mapping[str, bool]) -> SubscribeRequest:
        """Build a request from ``{path: actuator}``.

        ``actuator=True`` subscribes to the actuator target, otherwise to
        the current value.
        """
        entries = []
        for path, actuator in signals.items():
            field = Field.ACTUATOR_TARGET if actuator else Field.VALUE
            entries.append(SubscribeEntry(path=path, fields=(Field.PATH, field)))
        return cls(entries=tuple(entries))

    @property
    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]

    def clone(self) -> SubscribeRequest:
        """Return an equal request that shares no identity with this one."""
        return self.model_copy(deep=True)


class DataEntry(HvacBaseModel):
    """A single signal update as delivered by the broker."""

    path: str = ""
    value: Datapoint | None = None
    actuator_target: Datapoint | None = None

    @property
    def datapoint(self) -> Datapoint | None:
        """Actuator target when present, otherwise the current value."""
        if self.actuator_target is not None:
            return self.actuator_target
        return self.value


class SubscribeUpdate(HvacBaseModel):
    """One message read from a subscription stream."""

    entries: tuple[DataEntry, ...] = PydanticField(default_factory=tuple)


class SetError(HvacBaseModel):
    """Per-path error returned by a Set call."""

    path: str
    code: int = 0
    reason: str = ""
    message: str = ""

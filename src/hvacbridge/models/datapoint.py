"""Typed signal value exchanged with the databroker.

A :class:`Datapoint` carries at most one populated variant, mirroring
the ``oneof value`` of the KUKSA.val ``Datapoint`` message.  Consumers
ask for the variant they expect with :meth:`Datapoint.get` and treat a
``None`` answer as "not for me".
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import model_validator

from hvacbridge.models._base import HvacBaseModel

__all__ = ["Datapoint", "DatapointKind"]

_INT_BOUNDS: dict[str, tuple[int, int]] = {
    "int32": (-(2**31), 2**31 - 1),
    "int64": (-(2**63), 2**63 - 1),
    "uint32": (0, 2**32 - 1),
    "uint64": (0, 2**64 - 1),
}


class DatapointKind(StrEnum):
    """Populated variant of a datapoint.

    Values match the protobuf oneof field names.
    """

    STRING = "string"
    BOOL = "bool"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"


class Datapoint(HvacBaseModel):
    """Tagged-union signal value.

    ``kind`` is ``None`` for an empty datapoint (no usable value).
    """

    kind: DatapointKind | None = None
    value: bool | int | float | str | None = None

    @model_validator(mode="after")
    def _check_variant(self) -> Datapoint:
        kind, value = self.kind, self.value
        if kind is None:
            if value is not None:
                raise ValueError("value given without a kind")
            return self
        if value is None:
            raise ValueError(f"{kind} datapoint requires a value")

        if kind is DatapointKind.BOOL:
            ok = isinstance(value, bool)
        elif kind is DatapointKind.STRING:
            ok = isinstance(value, str)
        elif kind in (DatapointKind.FLOAT, DatapointKind.DOUBLE):
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            if ok and not isinstance(value, float):
                object.__setattr__(self, "value", float(value))
        else:
            lo, hi = _INT_BOUNDS[kind.value]
            ok = isinstance(value, int) and not isinstance(value, bool) and lo <= value <= hi
        if not ok:
            raise ValueError(f"value {value!r} is not a valid {kind}")
        return self

    @property
    def is_empty(self) -> bool:
        return self.kind is None

    def get(self, kind: DatapointKind) -> Any:
        """Return the value if this datapoint carries *kind*, else ``None``."""
        if self.kind is kind:
            return self.value
        return None

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, kind: DatapointKind, value: Any) -> Datapoint:
        return cls(kind=kind, value=value)

    @classmethod
    def from_bool(cls, value: bool) -> Datapoint:
        return cls(kind=DatapointKind.BOOL, value=bool(value))

    @classmethod
    def from_int32(cls, value: int) -> Datapoint:
        return cls(kind=DatapointKind.INT32, value=value)

    @classmethod
    def from_uint32(cls, value: int) -> Datapoint:
        return cls(kind=DatapointKind.UINT32, value=value)

    @classmethod
    def from_string(cls, value: str) -> Datapoint:
        return cls(kind=DatapointKind.STRING, value=value)

    @classmethod
    def from_double(cls, value: float) -> Datapoint:
        return cls(kind=DatapointKind.DOUBLE, value=value)

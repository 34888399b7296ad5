"""Conversion between hvacbridge models and KUKSA.val v1 protobuf messages."""

from __future__ import annotations

from collections.abc import Iterable

from kuksa.val.v1 import types_pb2, val_pb2

from hvacbridge.models.broker import DataEntry, Field, SetError, SubscribeRequest, SubscribeUpdate
from hvacbridge.models.datapoint import Datapoint, DatapointKind

_FIELDS: dict[Field, int] = {
    Field.PATH: types_pb2.FIELD_PATH,
    Field.VALUE: types_pb2.FIELD_VALUE,
    Field.ACTUATOR_TARGET: types_pb2.FIELD_ACTUATOR_TARGET,
}

_SCALAR_KINDS = frozenset(kind.value for kind in DatapointKind)


def _fields(fields: Iterable[Field]) -> list[int]:
    return [_FIELDS[field] for field in fields]


def datapoint_from_proto(message: types_pb2.Datapoint) -> Datapoint:
    """Convert a protobuf datapoint; array and unset variants become empty."""
    which = message.WhichOneof("value")
    if which not in _SCALAR_KINDS:
        return Datapoint()
    return Datapoint(kind=DatapointKind(which), value=getattr(message, which))


def datapoint_to_proto(datapoint: Datapoint) -> types_pb2.Datapoint:
    message = types_pb2.Datapoint()
    if datapoint.kind is not None:
        setattr(message, datapoint.kind.value, datapoint.value)
    return message


def data_entry_from_proto(message: types_pb2.DataEntry) -> DataEntry:
    return DataEntry(
        path=message.path,
        value=datapoint_from_proto(message.value) if message.HasField("value") else None,
        actuator_target=(
            datapoint_from_proto(message.actuator_target) if message.HasField("actuator_target") else None
        ),
    )


def subscribe_request_to_proto(request: SubscribeRequest) -> val_pb2.SubscribeRequest:
    message = val_pb2.SubscribeRequest()
    for entry in request.entries:
        message.entries.append(val_pb2.SubscribeEntry(path=entry.path, fields=_fields(entry.fields)))
    return message


def subscribe_update_from_proto(message: val_pb2.SubscribeResponse) -> SubscribeUpdate:
    entries = tuple(
        data_entry_from_proto(update.entry) for update in message.updates if update.HasField("entry")
    )
    return SubscribeUpdate(entries=entries)


def get_request_to_proto(path: str, *, actuator: bool = False) -> val_pb2.GetRequest:
    field = Field.ACTUATOR_TARGET if actuator else Field.VALUE
    return val_pb2.GetRequest(
        entries=[val_pb2.EntryRequest(path=path, fields=_fields((Field.PATH, field)))],
    )


def set_request_to_proto(path: str, datapoint: Datapoint, *, actuator: bool = False) -> val_pb2.SetRequest:
    dp = datapoint_to_proto(datapoint)
    if actuator:
        entry = types_pb2.DataEntry(path=path, actuator_target=dp)
        fields = _fields((Field.ACTUATOR_TARGET,))
    else:
        entry = types_pb2.DataEntry(path=path, value=dp)
        fields = _fields((Field.VALUE,))
    return val_pb2.SetRequest(updates=[val_pb2.EntryUpdate(entry=entry, fields=fields)])


def set_errors_from_proto(message: val_pb2.SetResponse) -> list[SetError]:
    return [
        SetError(
            path=item.path,
            code=item.error.code,
            reason=item.error.reason,
            message=item.error.message,
        )
        for item in message.errors
    ]

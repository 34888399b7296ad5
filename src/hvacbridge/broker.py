"""KUKSA.val databroker client.

Only the calls the bridge needs are exposed: ``get``, ``set`` and a
streaming ``subscribe``.  Transport errors are translated into
:mod:`hvacbridge.exceptions` at this boundary.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import grpc
from kuksa.val.v1 import val_pb2_grpc

from hvacbridge import _proto
from hvacbridge.config import BrokerConfig
from hvacbridge.exceptions import BrokerError, BrokerRequestError, BrokerStreamError
from hvacbridge.models.broker import DataEntry, SetError, StatusCode, StreamStatus, SubscribeRequest, SubscribeUpdate
from hvacbridge.models.datapoint import Datapoint

_logger = logging.getLogger(__name__)

_TLS_TARGET_NAME_OVERRIDE = "grpc.ssl_target_name_override"


class BrokerClient(Protocol):
    """Structural broker interface used by the service and its tests."""

    async def get(self, path: str, *, actuator: bool = False) -> list[DataEntry]:
        ...

    async def set(self, path: str, datapoint: Datapoint, *, actuator: bool = False) -> list[SetError]:
        ...

    def subscribe(self, request: SubscribeRequest) -> AsyncIterator[SubscribeUpdate]:
        """Stream updates for *request*.

        Iteration ends normally when the stream closes with OK status and
        raises :class:`BrokerStreamError` for any other terminal status.
        """
        ...


def status_from_rpc_error(exc: grpc.aio.AioRpcError) -> StreamStatus:
    code = exc.code()
    numeric = code.value[0] if isinstance(code, grpc.StatusCode) else StatusCode.UNKNOWN
    return StreamStatus(code=StatusCode(numeric), details=exc.details() or "")


class KuksaBrokerClient:
    """grpc.aio implementation of :class:`BrokerClient`.

    Usage::

        async with KuksaBrokerClient(config) as broker:
            async for update in broker.subscribe(request):
                ...
    """

    def __init__(self, config: BrokerConfig, *, logger: logging.Logger | None = None) -> None:
        self._config = config
        self._logger = logger or _logger
        self._channel: grpc.aio.Channel | None = None
        self._stub: val_pb2_grpc.VALStub | None = None

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------

    def _create_channel(self) -> grpc.aio.Channel:
        target = self._config.target
        if not self._config.ca_cert:
            return grpc.aio.insecure_channel(target)

        credentials = grpc.ssl_channel_credentials(root_certificates=self._config.ca_cert.encode())
        options: list[tuple[str, Any]] = []
        if self._config.tls_server_name:
            self._logger.info("Overriding TLS target name with %s", self._config.tls_server_name)
            options.append((_TLS_TARGET_NAME_OVERRIDE, self._config.tls_server_name))
        return grpc.aio.secure_channel(target, credentials, options=options or None)

    async def connect(self) -> None:
        """Open the channel and wait until it is ready."""
        if self._channel is not None:
            return
        channel = self._create_channel()
        self._logger.info("Waiting for databroker gRPC channel %s", self._config.target)
        try:
            await channel.channel_ready()
        except BaseException:
            await channel.close()
            raise
        self._logger.info("Databroker gRPC channel ready")
        self._channel = channel
        self._stub = val_pb2_grpc.VALStub(channel)

    async def close(self) -> None:
        channel = self._channel
        self._channel = None
        self._stub = None
        if channel is not None:
            await channel.close()

    async def __aenter__(self) -> KuksaBrokerClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _require_stub(self) -> val_pb2_grpc.VALStub:
        if self._stub is None:
            raise BrokerError("Broker not connected. Use 'async with KuksaBrokerClient(...)'")
        return self._stub

    def _metadata(self) -> tuple[tuple[str, str], ...] | None:
        token = self._config.auth_token
        if not token:
            return None
        return (("authorization", f"Bearer {token}"),)

    async def get(self, path: str, *, actuator: bool = False) -> list[DataEntry]:
        stub = self._require_stub()
        request = _proto.get_request_to_proto(path, actuator=actuator)
        try:
            response = await stub.Get(request, metadata=self._metadata())
        except grpc.aio.AioRpcError as exc:
            status = status_from_rpc_error(exc)
            raise BrokerRequestError(f"Get {path} failed: {status}", status=status) from exc
        return [_proto.data_entry_from_proto(entry) for entry in response.entries if entry.path]

    async def set(self, path: str, datapoint: Datapoint, *, actuator: bool = False) -> list[SetError]:
        stub = self._require_stub()
        request = _proto.set_request_to_proto(path, datapoint, actuator=actuator)
        try:
            response = await stub.Set(request, metadata=self._metadata())
        except grpc.aio.AioRpcError as exc:
            status = status_from_rpc_error(exc)
            raise BrokerRequestError(f"Set {path} failed: {status}", status=status) from exc
        return _proto.set_errors_from_proto(response)

    async def subscribe(self, request: SubscribeRequest) -> AsyncIterator[SubscribeUpdate]:
        stub = self._require_stub()
        call = stub.Subscribe(_proto.subscribe_request_to_proto(request), metadata=self._metadata())
        try:
            async for response in call:
                yield _proto.subscribe_update_from_proto(response)
        except grpc.aio.AioRpcError as exc:
            status = status_from_rpc_error(exc)
            self._logger.debug("Subscribe stream ended: %s", status)
            raise BrokerStreamError(f"Subscribe stream ended: {status}", status=status) from exc
        finally:
            call.cancel()

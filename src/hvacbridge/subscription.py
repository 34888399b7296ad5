"""Persistent databroker subscription.

:class:`SubscriptionManager` keeps one stream open for a request and
feeds every usable entry to a callback.  When the stream ends it decides
what to do from the terminal status:

* cancelled (local shutdown, or the broker cancelled it): stop for good
* anything else, including a clean close: reissue a copy of the request
  after a fixed delay

The retry timer runs on the event loop and checks that the manager is
still alive before it resubscribes.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Callable

from hvacbridge._constants import RESUBSCRIBE_DELAY_S
from hvacbridge.broker import BrokerClient
from hvacbridge.exceptions import BrokerStreamError, HvacFatalError
from hvacbridge.models.broker import StatusCode, StreamStatus, SubscribeRequest, SubscribeUpdate
from hvacbridge.models.datapoint import Datapoint

_logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str, Datapoint], object]


class SubscriptionState(enum.StrEnum):
    IDLE = "idle"
    STREAMING = "streaming"
    RESUBSCRIBING = "resubscribing"
    CLOSED = "closed"
    FAILED = "failed"


class SubscriptionManager:
    """Owns the stream task and the resubscribe timer."""

    def __init__(
        self,
        *,
        broker: BrokerClient,
        on_update: UpdateCallback,
        resubscribe_delay: float = RESUBSCRIBE_DELAY_S,
        logger: logging.Logger | None = None,
    ) -> None:
        self._broker = broker
        self._on_update = on_update
        self._resubscribe_delay = resubscribe_delay
        self._logger = logger or _logger

        self._state = SubscriptionState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._request: SubscribeRequest | None = None
        self._closing = False
        self._finished: asyncio.Future[None] | None = None
        self._resubscribe_count = 0

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def request(self) -> SubscribeRequest | None:
        """Request of the current (or most recent) stream."""
        return self._request

    @property
    def resubscribe_count(self) -> int:
        return self._resubscribe_count

    @property
    def is_closed(self) -> bool:
        return self._state in (SubscriptionState.CLOSED, SubscriptionState.FAILED)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(self, request: SubscribeRequest) -> None:
        """Start streaming *request*, replacing any current stream.

        Must be called from the event loop thread.
        """
        if self._closing:
            raise RuntimeError("SubscriptionManager is closed")
        loop = asyncio.get_running_loop()
        if self._finished is None:
            self._finished = loop.create_future()
        self._cancel_timer()
        self._start(request)

    async def close(self) -> None:
        """Cancel the stream and any pending resubscribe."""
        self._closing = True
        self._cancel_timer()

        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._state is not SubscriptionState.FAILED:
            self._state = SubscriptionState.CLOSED
        self._resolve_finished()

    async def wait_closed(self) -> None:
        """Wait until the subscription stops for good.

        Raises :class:`HvacFatalError` if it stopped because a retry
        could not be prepared.
        """
        if self._finished is None:
            return
        await asyncio.shield(self._finished)

    # ------------------------------------------------------------------
    # Stream lifecycle
    # ------------------------------------------------------------------

    def _start(self, request: SubscribeRequest) -> None:
        previous = self._task
        if previous is not None and not previous.done():
            self._logger.debug("Replacing active subscription stream")
            previous.cancel()

        self._request = request
        self._state = SubscriptionState.STREAMING
        self._task = asyncio.get_running_loop().create_task(self._run(request), name="hvacbridge-subscribe")

    async def _run(self, request: SubscribeRequest) -> None:
        self._logger.debug("Subscribing to %d signals", len(request.entries))
        status = StreamStatus.ok()
        try:
            async for update in self._broker.subscribe(request):
                self._deliver(update)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # close() or a replacing subscribe() cancelled this task.
                self._logger.debug("Subscription stream cancelled locally")
                if self._task is current:
                    self._state = SubscriptionState.CLOSED
                raise
            # The transport cancelled the call underneath us.
            self._logger.debug("Subscription stream cancelled by transport")
            status = StreamStatus.cancelled("cancelled by transport")
        except BrokerStreamError as exc:
            status = exc.status
        except Exception as exc:
            # Anything else counts as a dropped stream.
            self._logger.warning("Subscription stream failed: %s", exc, exc_info=True)
            status = StreamStatus(code=StatusCode.UNKNOWN, details=str(exc))
        self._handle_done(request, status)

    def _deliver(self, update: SubscribeUpdate) -> None:
        for entry in update.entries:
            datapoint = entry.datapoint
            if not entry.path or datapoint is None or datapoint.is_empty:
                continue
            self._logger.debug("Got value for %s", entry.path)
            try:
                self._on_update(entry.path, datapoint)
            except Exception:
                self._logger.exception("Update handler failed for %s", entry.path)

    def _handle_done(self, request: SubscribeRequest, status: StreamStatus) -> None:
        self._logger.info("Subscribe status = %s", status)
        if self._task is asyncio.current_task():
            self._task = None

        if status.is_cancelled or self._closing:
            self._logger.info("Subscribe canceled, assuming shutdown")
            self._state = SubscriptionState.CLOSED
            self._resolve_finished()
            return

        # The finished stream's request must not be reused.
        try:
            retry = request.clone()
        except MemoryError as exc:
            self._fail(HvacFatalError("Could not create resubscribe request"), exc)
            return

        self._state = SubscriptionState.RESUBSCRIBING
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._resubscribe_delay, self._resubscribe, retry)

    def _resubscribe(self, request: SubscribeRequest) -> None:
        self._timer = None
        if self._closing or self.is_closed:
            return
        self._resubscribe_count += 1
        self._logger.debug("Resubscribing (attempt %d)", self._resubscribe_count)
        self._start(request)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    def _fail(self, error: HvacFatalError, cause: BaseException) -> None:
        self._logger.critical("%s", error)
        self._state = SubscriptionState.FAILED
        self._closing = True
        error.__cause__ = cause
        if self._finished is not None and not self._finished.done():
            self._finished.set_exception(error)

    def _resolve_finished(self) -> None:
        if self._finished is not None and not self._finished.done():
            self._finished.set_result(None)

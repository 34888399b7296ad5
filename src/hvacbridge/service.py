"""HVAC bridge service: databroker subscription in, CAN/LED out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from hvacbridge.actuators.canbus import CanActuator
from hvacbridge.actuators.leds import LedActuator
from hvacbridge.broker import BrokerClient, KuksaBrokerClient
from hvacbridge.config import HvacConfig
from hvacbridge.dispatcher import SIGNALS, SignalDispatcher
from hvacbridge.exceptions import BrokerError, HvacBridgeError
from hvacbridge.models.broker import SubscribeRequest
from hvacbridge.models.datapoint import Datapoint
from hvacbridge.state.store import ActuatorStateStore
from hvacbridge.subscription import SubscriptionManager

_logger = logging.getLogger(__name__)


class HvacService:
    """Runs the HVAC actuation bridge.

    Usage::

        async with HvacService(config) as service:
            await service.run()

    ``run`` returns when :meth:`stop` is called or the subscription is
    cancelled by the broker.
    """

    def __init__(
        self,
        config: HvacConfig,
        *,
        broker: BrokerClient | None = None,
        can: CanActuator | None = None,
        leds: LedActuator | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or _logger
        self._external_broker = broker is not None
        self._broker: BrokerClient = broker or KuksaBrokerClient(config.broker, logger=self._logger)
        self._store = ActuatorStateStore()
        self._can = can or CanActuator(config.can, logger=self._logger)
        self._leds = leds or LedActuator(config.leds, logger=self._logger)
        self._dispatcher = SignalDispatcher(
            store=self._store,
            can=self._can,
            leds=self._leds,
            mirror=self._schedule_mirror,
            logger=self._logger,
        )
        self._subscription = SubscriptionManager(
            broker=self._broker,
            on_update=self._dispatcher.dispatch,
            resubscribe_delay=config.resubscribe_delay,
            logger=self._logger,
        )
        self._mirror_tasks: set[asyncio.Task[None]] = set()
        self._started = False

    @property
    def store(self) -> ActuatorStateStore:
        return self._store

    @property
    def subscription(self) -> SubscriptionManager:
        return self._subscription

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HvacService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Connect to the broker, open outputs and subscribe to the HVAC signals."""
        if self._started:
            return
        if isinstance(self._broker, KuksaBrokerClient):
            await self._broker.connect()
        self._can.open()
        self._subscription.subscribe(SubscribeRequest.for_signals(SIGNALS))
        self._started = True

    async def run(self) -> None:
        """Block until the subscription stops; re-raises fatal errors."""
        if not self._started:
            raise HvacBridgeError("Service not started. Use 'async with HvacService(...)'")
        await self._subscription.wait_closed()

    async def stop(self) -> None:
        await self._subscription.close()

        tasks = list(self._mirror_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._can.close()
        if isinstance(self._broker, KuksaBrokerClient) and not self._external_broker:
            await self._broker.close()
        self._started = False

    # ------------------------------------------------------------------
    # Broker mirror
    # ------------------------------------------------------------------

    def _schedule_mirror(self, path: str, datapoint: Datapoint) -> None:
        task = asyncio.get_running_loop().create_task(self._mirror(path, datapoint))
        self._mirror_tasks.add(task)
        task.add_done_callback(self._mirror_tasks.discard)

    async def _mirror(self, path: str, datapoint: Datapoint) -> None:
        try:
            errors = await self._broker.set(path, datapoint)
        except BrokerError as exc:
            self._logger.warning("Could not set %s: %s", path, exc)
            return
        except Exception:
            self._logger.exception("Unexpected error setting %s", path)
            return
        for error in errors:
            self._logger.error("Error setting %s: %s - %s", error.path, error.code, error.reason)

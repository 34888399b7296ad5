"""hvacbridge - KUKSA.val HVAC actuator bridge to CAN and LED outputs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hvacbridge")
except PackageNotFoundError:
    __version__ = "0+local"

from hvacbridge.actuators import CanActuator, LedActuator, encode_frame, map_colour
from hvacbridge.broker import BrokerClient, KuksaBrokerClient
from hvacbridge.config import BrokerConfig, CanConfig, HvacConfig, LedConfig, load_config
from hvacbridge.dispatcher import SIGNALS, SignalDispatcher
from hvacbridge.exceptions import (
    BrokerError,
    BrokerRequestError,
    BrokerStreamError,
    HvacBridgeError,
    HvacConfigError,
    HvacFatalError,
)
from hvacbridge.models import (
    ActuatorState,
    Datapoint,
    DatapointKind,
    HvacFlag,
    SetError,
    StatusCode,
    StreamStatus,
    SubscribeRequest,
    SubscribeUpdate,
)
from hvacbridge.service import HvacService
from hvacbridge.state import ActuatorStateStore
from hvacbridge.subscription import SubscriptionManager, SubscriptionState

__all__ = [
    "__version__",
    "ActuatorState",
    "ActuatorStateStore",
    "BrokerClient",
    "BrokerConfig",
    "BrokerError",
    "BrokerRequestError",
    "BrokerStreamError",
    "CanActuator",
    "CanConfig",
    "Datapoint",
    "DatapointKind",
    "HvacBridgeError",
    "HvacConfig",
    "HvacConfigError",
    "HvacFatalError",
    "HvacFlag",
    "HvacService",
    "KuksaBrokerClient",
    "LedActuator",
    "LedConfig",
    "SIGNALS",
    "SetError",
    "SignalDispatcher",
    "StatusCode",
    "StreamStatus",
    "SubscribeRequest",
    "SubscribeUpdate",
    "SubscriptionManager",
    "SubscriptionState",
    "encode_frame",
    "load_config",
    "map_colour",
]

"""Bridge configuration for hvacbridge."""

from __future__ import annotations

import configparser
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

from hvacbridge._constants import (
    DEFAULT_APP_NAME,
    DEFAULT_BROKER_HOST,
    DEFAULT_BROKER_PORT,
    DEFAULT_CA_CERT_FILE,
    DEFAULT_CAN_INTERFACE,
    DEFAULT_CAN_PORT,
    DEFAULT_LED_BLUE,
    DEFAULT_LED_GREEN,
    DEFAULT_LED_RED,
    RESUBSCRIBE_DELAY_S,
)
from hvacbridge.exceptions import HvacConfigError

_logger = logging.getLogger(__name__)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _parse_verbose(value: str | None) -> int:
    """``true``/``1`` -> 1, ``2`` -> 2, anything else -> 0."""
    if not value:
        return 0
    normalized = _unquote(value).lower()
    if normalized in {"true", "1"}:
        return 1
    if normalized == "2":
        return 2
    return 0


def _unquote(value: str) -> str:
    stripped = value.strip()
    if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in {'"', "'"}:
        return stripped[1:-1]
    return stripped


def _read_file(path: str) -> str:
    """Return file contents, or ``""`` if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError:
        _logger.debug("Could not read %s", path, exc_info=True)
        return ""


def verbosity_to_log_level(verbose: int) -> int:
    """Translate the 0/1/2 verbosity setting into a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


@dataclasses.dataclass(frozen=True)
class BrokerConfig:
    """KUKSA.val databroker connection settings.

    Parameters
    ----------
    hostname : str
        Databroker host.
    port : int
        Databroker gRPC port.
    ca_cert : str
        PEM encoded CA certificate.  Empty selects an insecure channel.
    tls_server_name : str
        Overrides the TLS target name checked against the certificate.
    auth_token : str
        Bearer token sent as ``authorization`` metadata.  Empty disables it.
    verbose : int
        0, 1 or 2.
    """

    hostname: str = DEFAULT_BROKER_HOST
    port: int = DEFAULT_BROKER_PORT
    ca_cert: str = dataclasses.field(default="", repr=False)
    tls_server_name: str = ""
    auth_token: str = dataclasses.field(default="", repr=False)
    verbose: int = 0

    def __post_init__(self) -> None:
        if not self.hostname.strip():
            raise HvacConfigError("Invalid server hostname")
        if not 0 < int(self.port) < 65536:
            raise HvacConfigError(f"Invalid server port {self.port}")

    @property
    def target(self) -> str:
        return f"{self.hostname}:{self.port}"


@dataclasses.dataclass(frozen=True)
class CanConfig:
    """CAN output settings."""

    port: str = DEFAULT_CAN_PORT
    interface: str = DEFAULT_CAN_INTERFACE
    enabled: bool = True
    verbose: int = 0


@dataclasses.dataclass(frozen=True)
class LedConfig:
    """LED brightness sink paths."""

    red: str = DEFAULT_LED_RED
    green: str = DEFAULT_LED_GREEN
    blue: str = DEFAULT_LED_BLUE
    enabled: bool = True
    verbose: int = 0

    @property
    def paths(self) -> tuple[str, str, str]:
        return (self.red, self.green, self.blue)


@dataclasses.dataclass(frozen=True)
class HvacConfig:
    """Complete bridge configuration."""

    broker: BrokerConfig = dataclasses.field(default_factory=BrokerConfig)
    can: CanConfig = dataclasses.field(default_factory=CanConfig)
    leds: LedConfig = dataclasses.field(default_factory=LedConfig)
    resubscribe_delay: float = RESUBSCRIBE_DELAY_S

    @property
    def verbose(self) -> int:
        return max(self.broker.verbose, self.can.verbose, self.leds.verbose)

    @classmethod
    def from_env(cls, **overrides: Any) -> HvacConfig:
        """Create configuration from ``HVAC_*`` environment variables.

        Explicit keyword arguments (``broker``, ``can``, ``leds``,
        ``resubscribe_delay``) override environment values.
        """
        env = os.environ

        broker_kwargs: dict[str, Any] = {}
        if (host := env.get("HVAC_BROKER_HOST")) is not None:
            broker_kwargs["hostname"] = host
        if (port := env.get("HVAC_BROKER_PORT")) is not None:
            broker_kwargs["port"] = int(port)
        if (ca_file := env.get("HVAC_CA_CERT_FILE")) is not None:
            broker_kwargs["ca_cert"] = _read_file(ca_file)
        if (server_name := env.get("HVAC_TLS_SERVER_NAME")) is not None:
            broker_kwargs["tls_server_name"] = server_name
        if (token_file := env.get("HVAC_TOKEN_FILE")) is not None:
            broker_kwargs["auth_token"] = _read_file(token_file).strip()
        verbose = _parse_verbose(env.get("HVAC_VERBOSE"))
        broker_kwargs["verbose"] = verbose

        can_kwargs: dict[str, Any] = {"verbose": verbose}
        if (can_port := env.get("HVAC_CAN_PORT")) is not None:
            can_kwargs["port"] = can_port
        if (can_iface := env.get("HVAC_CAN_INTERFACE")) is not None:
            can_kwargs["interface"] = can_iface
        can_kwargs["enabled"] = _env_bool(env.get("HVAC_CAN_ENABLED"), True)

        led_kwargs: dict[str, Any] = {"verbose": verbose}
        for env_key, field_name in (
            ("HVAC_LED_RED", "red"),
            ("HVAC_LED_GREEN", "green"),
            ("HVAC_LED_BLUE", "blue"),
        ):
            val = env.get(env_key)
            if val is not None:
                led_kwargs[field_name] = val
        led_kwargs["enabled"] = _env_bool(env.get("HVAC_LEDS_ENABLED"), True)

        config_kwargs: dict[str, Any] = {
            "broker": BrokerConfig(**broker_kwargs),
            "can": CanConfig(**can_kwargs),
            "leds": LedConfig(**led_kwargs),
        }
        delay_env = env.get("HVAC_RESUBSCRIBE_DELAY")
        if delay_env is not None:
            config_kwargs["resubscribe_delay"] = float(delay_env)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)


def config_path(appname: str = DEFAULT_APP_NAME) -> Path:
    """Resolve ``$XDG_CONFIG_HOME/AGL/<app>.conf`` or ``/etc/xdg/AGL/<app>.conf``."""
    home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(home) if home else Path("/etc/xdg")
    return base / "AGL" / f"{appname}.conf"


def load_config(appname: str = DEFAULT_APP_NAME, path: str | Path | None = None) -> HvacConfig:
    """Load an INI configuration file.

    Sections ``[kuksa-client]``, ``[can]`` and ``[leds]`` are read; a
    missing or unparsable file yields the defaults.  The CA certificate
    and authorization token settings name files whose contents are
    loaded here.

    Raises
    ------
    HvacConfigError
        If the server hostname is empty or the port is 0.
    """
    resolved = Path(path) if path is not None else config_path(appname)
    _logger.info("Using configuration %s", resolved)

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with resolved.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except (OSError, configparser.Error):
        _logger.warning("Could not read %s, using defaults", resolved)
        return HvacConfig()

    client = parser["kuksa-client"] if parser.has_section("kuksa-client") else {}
    hostname = _unquote(client.get("server", DEFAULT_BROKER_HOST))
    try:
        port = int(_unquote(client.get("port", str(DEFAULT_BROKER_PORT))))
    except ValueError as exc:
        raise HvacConfigError("Invalid server port") from exc

    ca_file = _unquote(client.get("ca-certificate", DEFAULT_CA_CERT_FILE))
    ca_cert = _read_file(ca_file) if ca_file else ""
    if not ca_cert:
        _logger.warning("Invalid CA certificate file %s", ca_file)

    token_file = _unquote(client.get("authorization", ""))
    auth_token = _read_file(token_file).strip() if token_file else ""
    if token_file and not auth_token:
        _logger.warning("Invalid authorization token file %s", token_file)

    broker = BrokerConfig(
        hostname=hostname,
        port=port,
        ca_cert=ca_cert,
        tls_server_name=_unquote(client.get("tls-server-name", "")),
        auth_token=auth_token,
        verbose=_parse_verbose(client.get("verbose")),
    )

    can_section = parser["can"] if parser.has_section("can") else {}
    can_port = _unquote(can_section.get("port", DEFAULT_CAN_PORT))
    if not can_port:
        _logger.warning("Invalid CAN port, CAN output disabled")
    can = CanConfig(
        port=can_port,
        interface=_unquote(can_section.get("interface", DEFAULT_CAN_INTERFACE)),
        enabled=bool(can_port),
        verbose=_parse_verbose(can_section.get("verbose")),
    )

    led_section = parser["leds"] if parser.has_section("leds") else {}
    led_paths = {
        colour: _unquote(led_section.get(colour, default))
        for colour, default in (
            ("red", DEFAULT_LED_RED),
            ("green", DEFAULT_LED_GREEN),
            ("blue", DEFAULT_LED_BLUE),
        )
    }
    for colour, led_path in led_paths.items():
        if not led_path:
            _logger.warning("Invalid %s LED path, LED output disabled", colour)
        else:
            _logger.info("Using %s LED path %s", colour, led_path)
    leds = LedConfig(
        **led_paths,
        enabled=all(led_paths.values()),
        verbose=_parse_verbose(led_section.get("verbose")),
    )

    return HvacConfig(broker=broker, can=can, leds=leds)

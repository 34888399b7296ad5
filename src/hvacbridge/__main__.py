"""Command line entry point: ``python -m hvacbridge``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from hvacbridge.config import load_config, verbosity_to_log_level
from hvacbridge.exceptions import HvacBridgeError, HvacFatalError
from hvacbridge.service import HvacService

_LOG = logging.getLogger("hvacbridge")

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hvacbridge",
        description="Bridge KUKSA.val HVAC actuator targets to CAN and LED outputs.",
    )
    parser.add_argument("--config", help="INI configuration file (default: XDG AGL location)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (-v info, -vv debug); overrides the config file.",
    )
    return parser.parse_args(argv)


async def _serve(service: HvacService) -> None:
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    def _quit() -> None:
        _LOG.info("Quitting...")
        stop_requested.set()

    for sig in _STOP_SIGNALS:
        loop.add_signal_handler(sig, _quit)

    # Startup (waiting for the broker) must stay interruptible as well.
    serve_task = asyncio.create_task(_run(service))
    stop_task = asyncio.create_task(stop_requested.wait())
    try:
        done, _pending = await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if serve_task in done:
            serve_task.result()
        else:
            serve_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await serve_task
    finally:
        stop_task.cancel()
        for sig in _STOP_SIGNALS:
            loop.remove_signal_handler(sig)


async def _run(service: HvacService) -> None:
    async with service:
        await service.run()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(path=args.config)
    except HvacBridgeError as exc:
        _LOG.error("Invalid configuration: %s", exc)
        return 1

    verbose = args.verbose if args.verbose is not None else config.verbose
    logging.getLogger().setLevel(verbosity_to_log_level(verbose))

    try:
        asyncio.run(_serve(HvacService(config)))
    except HvacFatalError as exc:
        _LOG.critical("Fatal: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

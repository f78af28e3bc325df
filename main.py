"""Main entry point for a Minerva autoplay session."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

import uvicorn

from minerva.config import MinervaConfig, load_config
from minerva.controller import MockController
from minerva.engine import RuleBasedEngine
from minerva.errors import MinervaError
from minerva.events import format_event
from minerva.network import LocalServer, Subscription
from minerva.ops import TelemetryStore, init_logging
from minerva.orchestrator import Orchestrator
from minerva.vision import MockRecognizer


logger = logging.getLogger("minerva.cli")


async def log_events(subscription: Subscription) -> None:
    """Secondary consumer: mirror every published event into the log."""
    try:
        async for event in subscription:
            logger.info("event %s", format_event(event))
    finally:
        subscription.close()


async def run_application(config: MinervaConfig, serve: bool = False) -> None:
    controller = MockController(config.emulator)
    recognizer = MockRecognizer()
    engine = RuleBasedEngine()
    network = LocalServer(64)
    telemetry = TelemetryStore()

    orchestrator = Orchestrator(
        config.orchestrator,
        controller,
        recognizer,
        engine,
        network,
        telemetry,
    )

    server: Optional[uvicorn.Server] = None
    if serve:
        from api import create_app

        server = uvicorn.Server(
            uvicorn.Config(
                create_app(network, telemetry),
                host=config.network.bind_addr,
                port=config.network.websocket_port,
                log_level=config.ops.log_level,
            )
        )
        consumer = asyncio.create_task(server.serve())
    else:
        consumer = asyncio.create_task(log_events(network.subscribe()))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_stop)
        except NotImplementedError:
            # Signal handlers are unavailable on some platforms (Windows)
            pass

    try:
        await orchestrator.boot(config.ops)
        await orchestrator.run()
    finally:
        await orchestrator.shutdown()
        if server is not None:
            server.should_exit = True
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Minerva Janggi autoplay")
    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Path to TOML config file (default: $MINERVA_CONFIG or configs/dev.toml)",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Number of turns to play (default from config)",
    )
    parser.add_argument(
        "--formation",
        type=str,
        default=None,
        help="Starting formation (마상마상, 상마상마, 마상상마, 상마마상 or the enum name)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Expose the event relay over HTTP/WebSocket while playing",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    try:
        config = config.with_overrides(max_retries=args.max_retries, formation=args.formation)
    except MinervaError as e:
        print(f"Invalid overrides, keeping configured values: {e}")

    init_logging(config.ops)
    print(f"Minerva starting: {config.summary()}")

    try:
        asyncio.run(run_application(config, serve=args.serve))
    except MinervaError as e:
        logger.error("Run aborted: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Jenkins Exporter - Main Entry Point
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

import structlog
from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from poller import Poller
from settings import ConfigError, load_settings

VERSION = "0.1.0"


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if os.getenv("LOG_FORMAT", "json") == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="jenkins-metrics",
        description="Export Jenkins build, test and pipeline status as Prometheus metrics.",
    )
    parser.add_argument("-config", "--config", default="./config.toml",
                        help="Path to config file (default: ./config.toml)")
    parser.add_argument("-debug", "--debug", action="store_true",
                        help="Sets log level to debug.")
    return parser.parse_args(argv)


class GracefulShutdown:
    """SIGTERM/SIGINT flag plus a sleep that wakes up as soon as it is set."""

    def __init__(self):
        self.shutdown_requested = False
        self._event = asyncio.Event()

    def install(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.request, sig)

    def request(self, signum=None) -> None:
        logger.info("shutdown_requested", signal=signum)
        self.shutdown_requested = True
        self._event.set()

    async def sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


# ------------------------------------------------------------------
# Metrics / health server
# ------------------------------------------------------------------

class MetricsServer:
    """
    aiohttp server for the Prometheus scrape and Kubernetes probes.

    /metrics : the gauge catalogue in the Prometheus text format
    /healthz : liveness:  always 200 once the process is up
    /ready   : readiness: 200 once the first poll cycle has published
                           metrics, 503 before that

    It runs on the same event loop as the poller, so a scrape is never
    interleaved with a metrics reset.
    """

    def __init__(self, address: str = "0.0.0.0", port: int = 9118, registry=REGISTRY):
        self._address = address
        self._port = port
        self._registry = registry
        self._ready = False
        self._runner: web.AppRunner | None = None

    def mark_ready(self) -> None:
        self._ready = True

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/metrics", self._metrics)
        app.router.add_get("/healthz", self._healthz)
        app.router.add_get("/ready", self._ready_handler)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._address, self._port)
        await site.start()
        logger.info("metrics_server_started", address=self._address, port=self._port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()

    async def _metrics(self, _request: web.Request) -> web.Response:
        return web.Response(body=generate_latest(self._registry),
                            headers={"Content-Type": CONTENT_TYPE_LATEST})

    async def _healthz(self, _request: web.Request) -> web.Response:
        return web.Response(text="ok")

    async def _ready_handler(self, _request: web.Request) -> web.Response:
        if self._ready:
            return web.Response(text="ok")
        return web.Response(status=503, text="not ready")


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

async def main(argv=None) -> None:
    args = parse_args(argv)
    configure_logging(args.debug)

    logger.info("jenkins_exporter_starting", version=VERSION, config=args.config)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logger.error("configuration_invalid", error=str(exc))
        sys.exit(1)

    shutdown = GracefulShutdown()
    shutdown.install()

    server = MetricsServer(address=settings.exporter.address, port=settings.exporter.port)
    try:
        await server.start()
    except OSError as exc:
        logger.error("metrics_server_bind_failed", address=settings.exporter.address,
                     port=settings.exporter.port, error=str(exc))
        await server.stop()
        sys.exit(1)

    poller = Poller(settings)
    try:
        await poller.initialize()
        await poller.run(shutdown, on_cycle=server.mark_ready)
    finally:
        await poller.shutdown()
        await server.stop()
        logger.info("jenkins_exporter_stopped")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

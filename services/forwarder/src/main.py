from __future__ import annotations

import asyncio
import json
import signal
import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from prometheus_client import start_http_server
from pydantic import ValidationError
from src.core.config import Settings, get_settings
from src.core.logger import configure_logging, get_logger
from src.infrastructure.kafka.consumer import build_consumer, consume_events
from src.services.channel import EventChannel
from src.services.scheduler import FlushScheduler, SchedulerState

logger = get_logger("app")


def _start_health_server(settings: Settings, scheduler: FlushScheduler) -> None:
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):  # noqa: N802
            if self.path != "/healthz":
                self.send_response(404)
                self.end_headers()
                return
            payload = {
                "service": settings.otel_service_name,
                **scheduler.snapshot(),
            }
            healthy = scheduler.state in (
                SchedulerState.RUNNING,
                SchedulerState.DRAINING,
            )
            body = json.dumps(payload).encode()
            self.send_response(200 if healthy else 503)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):  # noqa: A002
            return

    def _serve():
        try:
            server = HTTPServer(("0.0.0.0", settings.health_port), Handler)
            logger.info(
                "health_server_listening", extra={"port": settings.health_port}
            )
            server.serve_forever()
        except Exception as exc:  # noqa: BLE001
            logger.exception("health_server_error", extra={"error": str(exc)})

    threading.Thread(target=_serve, name="healthz", daemon=True).start()


async def _run(settings: Settings) -> None:
    start_http_server(settings.metrics_port)
    logger.info("metrics_listening", extra={"port": settings.metrics_port})

    channel = EventChannel(maxsize=settings.channel_max_size)
    scheduler = FlushScheduler(settings, channel)
    _start_health_server(settings, scheduler)

    source_task = asyncio.create_task(
        consume_events(build_consumer(settings), channel), name="kafka-source"
    )
    scheduler_task = asyncio.create_task(scheduler.run(), name="flush-scheduler")

    loop = asyncio.get_running_loop()
    # First signal stops the source and drains; a second one cancels everything
    state = {"signalled": False}

    def _on_signal(signum: int) -> None:
        if not state["signalled"]:
            logger.info(
                "signal_received", extra={"signal": signum, "action": "drain"}
            )
            source_task.cancel()
            state["signalled"] = True
        else:
            logger.warning(
                "second_signal_exit", extra={"signal": signum, "action": "cancel"}
            )
            scheduler_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError):
            logger.debug("signal_handler_install_failed", extra={"signal": sig})

    try:
        await scheduler_task
    except asyncio.CancelledError:
        logger.info("app_cancelled")
    finally:
        if not source_task.done():
            source_task.cancel()
        await asyncio.gather(source_task, return_exceptions=True)
        logger.info("forwarder_service_stopping")


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_input=False)
        logger.error("invalid_configuration", extra={"errors": errors})
        sys.exit(2)

    configure_logging(settings)
    logger.info(
        "forwarder_service_starting", extra={"metrics": sorted(settings.metric)}
    )
    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt_shutdown")
    except Exception:  # noqa: BLE001
        logger.exception("fatal_error_main")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()

#!/usr/bin/env python3
"""
Autoheal - Docker Container Auto-Healing Daemon
Restarts containers Docker reports as unhealthy and notifies a webhook

Connection is either the local Docker socket (DOCKER_SOCK=/var/run/docker.sock)
or a TCP endpoint with TLS (DOCKER_SOCK=tcp://host:2376 plus DOCKER_CACERT,
DOCKER_CLIENT_CERT and DOCKER_CLIENT_KEY for mutual TLS).
"""

import asyncio
import logging
import signal
import sys

from config.settings import ConfigurationError, load_config, setup_logging
from docker_monitor.client import DockerApiClient
from docker_monitor.monitor import DockerHealer
from docker_monitor.transport import DockerTransport, build_transport
from models.settings_models import HealerConfig
from notifications import WebhookNotifier

logger = logging.getLogger(__name__)


def _request_stop(sig: signal.Signals, task: asyncio.Task) -> None:
    logger.info(f"Received {sig.name}, stopping")
    task.cancel()


async def run(config: HealerConfig, transport: DockerTransport) -> None:
    """Run the monitor until SIGTERM/SIGINT, then release HTTP resources"""
    client = DockerApiClient(transport, config.timeout_milliseconds, config.container_label)
    notifier = WebhookNotifier(config.webhook_url, timeout=config.timeout_seconds)
    healer = DockerHealer(client, config, notifier)

    monitor_task = asyncio.create_task(healer.monitor_containers())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_stop, sig, monitor_task)

    try:
        await monitor_task
    except asyncio.CancelledError:
        logger.info("Monitoring stopped")
    finally:
        await notifier.aclose()
        await client.aclose()


def main() -> int:
    setup_logging()
    logger.info("Autoheal starting")

    try:
        config = load_config()
        transport = build_transport(config.endpoint)
    except ConfigurationError as e:
        logger.error(f"Failed to start: {e}")
        return 1

    asyncio.run(run(config, transport))
    return 0


if __name__ == "__main__":
    sys.exit(main())

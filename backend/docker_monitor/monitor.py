"""
Docker Monitoring Core for Autoheal
Polls Docker for unhealthy containers, restarts them and tracks how long
each one has stayed unhealthy
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, NoReturn, Optional

from docker_monitor.client import DockerApiClient, DockerApiError
from models.docker_models import Container, ContainerParseError
from models.settings_models import HealerConfig
from notifications import WebhookNotifier
from utils.container_id import short_container_id


logger = logging.getLogger(__name__)

UNNAMED_CONTAINER = "<UNNAMED CONTAINER>"


@dataclass
class MonitorEntry:
    """Flap history for one container id"""
    name: Optional[str]
    count: int  # consecutive polls seen unhealthy, >= 1


History = Dict[str, MonitorEntry]


class DockerHealer:
    """Main monitoring class: one poll, then sequential restart checks, then sleep"""

    def __init__(self, client: DockerApiClient, config: HealerConfig, notifier: WebhookNotifier):
        self.client = client
        self.config = config
        self.notifier = notifier

    def is_excluded(self, container: Container) -> bool:
        return any(name in self.config.exclude_containers for name in container.names)

    async def check_container_health(self, container: Container, times: int) -> None:
        """
        Restart an unhealthy container unless it has no name or is already restarting.

        Args:
            container: Container reported unhealthy this poll
            times: Consecutive polls it has been seen unhealthy, this one included
        """
        short_id = container.short_id
        name = container.display_name

        if name is None:
            logger.error(
                f"Container name of {short_id} is null, which implies container does not exist - don't restart."
            )
            return

        if container.state == "restarting":
            logger.info(f"Container {name} ({short_id}) found to be restarting - don't restart.")
            return

        timeout = container.timeout if container.timeout is not None else self.config.default_stop_timeout

        logger.info(
            f"Container {name} ({short_id}) found to be unhealthy {times} times. "
            f"Restarting container now with {timeout}s timeout."
        )

        try:
            await self.client.restart_container(short_id, timeout)
        except DockerApiError as e:
            logger.error(f"Restarting container {name} ({short_id}) failed: {e}")
            self.notifier.notify_failure(name, short_id, e)
            return

        self.notifier.notify_success(short_id, name)

    async def run_cycle(self, history: History) -> History:
        """
        Poll once, check every unhealthy container and return the updated history.

        History is returned unchanged when the poll fails.
        """
        try:
            containers = await self.client.get_unhealthy_containers()
        except (DockerApiError, ContainerParseError) as e:
            logger.error(f"Failed to fetch container info: {e}")
            return history

        current_unhealthy: Dict[str, Optional[str]] = {}

        for container in containers:
            if self.is_excluded(container):
                logger.info(
                    f"Container {container.display_name or UNNAMED_CONTAINER} ({container.short_id}) "
                    f"is unhealthy, but it is excluded"
                )
                continue

            current_unhealthy[container.id] = container.display_name

            entry = history.get(container.id)
            times = entry.count + 1 if entry else 1
            await self.check_container_health(container, times)

        updated: History = {}
        for container_id, entry in history.items():
            if container_id in current_unhealthy:
                # still unhealthy, take the latest name
                updated[container_id] = MonitorEntry(
                    name=current_unhealthy.pop(container_id),
                    count=entry.count + 1,
                )
            else:
                logger.info(
                    f"Container {entry.name or UNNAMED_CONTAINER} ({short_container_id(container_id)}) "
                    f"returned to healthy state."
                )

        for container_id, name in current_unhealthy.items():
            updated[container_id] = MonitorEntry(name=name, count=1)

        return updated

    async def monitor_containers(self) -> NoReturn:
        """Monitoring loop, runs until the task is cancelled"""
        if self.config.start_period > 0:
            logger.info(f"Monitoring containers for unhealthy status in {self.config.start_period} second(s)")
            await asyncio.sleep(self.config.start_period)

        logger.info(f"Monitoring containers for unhealthy status every {self.config.interval} second(s)")

        history: History = {}
        while True:
            try:
                history = await self.run_cycle(history)
            except Exception as e:
                logger.error(f"Error in monitoring loop: {e}", exc_info=True)

            await asyncio.sleep(self.config.interval)

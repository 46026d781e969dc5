"""
Notification service for Autoheal
Sends a webhook (ntfy-style headers) for every restart attempt
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set

import httpx

from config.settings import TRACE

logger = logging.getLogger(__name__)

SUCCESS_TITLE = "Container successfully restarted"
FAILURE_TITLE = "Container failed to restart"


@dataclass(frozen=True)
class WebhookInvocation:
    """One notification, built on the monitor loop and sent on its own task"""
    uri: str
    container_name: str
    container_short_id: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def title(self) -> str:
        return SUCCESS_TITLE if self.succeeded else FAILURE_TITLE

    @property
    def priority(self) -> int:
        return 3 if self.succeeded else 5

    @property
    def tags(self) -> str:
        return "white_check_mark" if self.succeeded else "x"

    @property
    def message(self) -> str:
        if self.succeeded:
            return (
                f'Container "{self.container_name}" ({self.container_short_id}) '
                f'was unhealthy, but was successfully restarted.'
            )
        return (
            f'Container "{self.container_name}" ({self.container_short_id}) '
            f'was unhealthy and we failed to restart it. Please check the logs for more info. '
            f'\nError: {self.error}'
        )

    @property
    def headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Title": self.title,
            "X-Priority": str(self.priority),
            "X-Tags": self.tags,
        }


class WebhookNotifier:
    """
    Fire-and-forget webhook notifications.

    notify_* return immediately; the POST runs on a separate task that the
    caller never awaits. Failures are logged at TRACE and never raised.
    """

    def __init__(self, uri: Optional[str], timeout: float = 30.0):
        self.uri = uri
        self.timeout = timeout
        self.http_client = httpx.AsyncClient(timeout=timeout) if uri else None
        # Strong references so pending tasks are not garbage collected mid-flight
        self._pending: Set[asyncio.Task] = set()

    def notify_success(self, container_short_id: str, container_name: str) -> None:
        if not self.uri:
            return
        self._dispatch(WebhookInvocation(
            uri=self.uri,
            container_name=container_name,
            container_short_id=container_short_id,
        ))

    def notify_failure(self, container_name: str, container_short_id: str, error: BaseException) -> None:
        if not self.uri:
            return
        self._dispatch(WebhookInvocation(
            uri=self.uri,
            container_name=container_name,
            container_short_id=container_short_id,
            error=str(error) or type(error).__name__,
        ))

    def _dispatch(self, invocation: WebhookInvocation) -> None:
        task = asyncio.create_task(self._notify_and_log(invocation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify_and_log(self, invocation: WebhookInvocation) -> None:
        try:
            await self._send(invocation)
            logger.log(TRACE, f"Successfully notified webhook: {invocation}")
        except asyncio.TimeoutError:
            logger.log(TRACE, f"Webhook timed out after {self.timeout}s: {invocation}")
        except Exception as e:
            logger.log(TRACE, f"Failure sending webhook: {e!r} {invocation}")

    async def _send(self, invocation: WebhookInvocation) -> None:
        async with asyncio.timeout(self.timeout):
            response = await self.http_client.post(
                invocation.uri,
                content=invocation.message,
                headers=invocation.headers,
            )
            response.raise_for_status()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def aclose(self, grace: float = 5.0) -> None:
        """Give in-flight notifications a bounded chance to finish, then close the client"""
        if self._pending:
            logger.info(f"Waiting up to {grace}s for {len(self._pending)} notification(s)")
            _, not_done = await asyncio.wait(set(self._pending), timeout=grace)
            for task in not_done:
                task.cancel()
        if self.http_client is not None:
            await self.http_client.aclose()

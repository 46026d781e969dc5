"""
Docker Engine API client for Autoheal

Thin request layer over the configured transport. Every request is bounded
by the configured timeout; a timeout is reported separately from connection
and protocol failures.
"""

import asyncio
import logging
from typing import Dict, List, Optional

import httpx

from docker_monitor.filters import build_unhealthy_filters, encode_filters
from docker_monitor.transport import DockerTransport
from models.docker_models import Container, parse_containers

logger = logging.getLogger(__name__)


class DockerApiError(Exception):
    """Request to the Docker API failed."""


class DockerTimeoutError(DockerApiError):
    """Docker did not answer within the configured timeout."""


class DockerConnectionError(DockerApiError):
    """Connection, TLS or protocol failure talking to Docker."""


class DockerStatusError(DockerApiError):
    """Docker answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    """Docker puts the reason in a JSON `message` field"""
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict) and data.get("message"):
        return f": {data['message']}"
    return ""


class DockerApiClient:
    """Client for the handful of Docker endpoints the healer needs"""

    def __init__(
        self,
        transport: DockerTransport,
        timeout_milliseconds: int,
        container_label: Optional[str] = None,
    ):
        self.transport = transport
        self.timeout_milliseconds = timeout_milliseconds
        # Filters never change after startup, encode them once
        self.encoded_filters = encode_filters(build_unhealthy_filters(container_label))

    def build_request(
        self,
        path_and_query: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Request:
        """Request against the transport base URL with only path and query replaced"""
        url = httpx.URL(self.transport.base_url).copy_with(raw_path=path_and_query.encode("ascii"))
        # httpx derives Host from the URL unless the caller sets it
        return self.transport.client.build_request(method, url, headers=headers)

    async def request(
        self,
        path_and_query: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send one request and read the full response.

        Raises:
            DockerTimeoutError: No response within timeout_milliseconds
            DockerConnectionError: Connection, TLS or protocol failure
        """
        request = self.build_request(path_and_query, method, headers)
        try:
            async with asyncio.timeout(self.timeout_milliseconds / 1000):
                return await self.transport.send(request)
        except asyncio.TimeoutError:
            raise DockerTimeoutError(
                f"{method} {path_and_query} timed out after {self.timeout_milliseconds}ms"
            )
        except httpx.TimeoutException as e:
            raise DockerTimeoutError(f"{method} {path_and_query} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise DockerConnectionError(f"{method} {path_and_query} failed: {e!r}") from e

    async def get_unhealthy_containers(self) -> List[Container]:
        """
        List unhealthy containers matching the configured label selector.

        Raises:
            DockerApiError: Request failed or Docker answered non-2xx
            ContainerParseError: Response body is not a valid container list
        """
        response = await self.request(f"/containers/json?filters={self.encoded_filters}", "GET")

        if not response.is_success:
            raise DockerStatusError(
                f"Listing containers failed with HTTP {response.status_code}{_error_detail(response)}",
                response.status_code,
            )

        return parse_containers(response.content)

    async def restart_container(self, container_id: str, timeout: int) -> None:
        """
        Restart a container, giving it `timeout` seconds to stop first.

        Raises:
            DockerStatusError: Docker answered non-2xx
            DockerApiError: Request failed
        """
        response = await self.request(f"/containers/{container_id}/restart?t={timeout}", "POST")

        if not response.is_success:
            raise DockerStatusError(
                f"Tried to restart container but it failed with HTTP {response.status_code}"
                f"{_error_detail(response)}",
                response.status_code,
            )

    async def aclose(self) -> None:
        await self.transport.aclose()

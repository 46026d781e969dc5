"""
Shared pytest fixtures for Autoheal tests.

Fixtures provided:
- healer_config: HealerConfig for the local socket with defaults
- container_payload: Factory for one entry of GET /containers/json
- mock_docker_client: Mock DockerApiClient (no Docker daemon needed)
- mock_notifier: Mock WebhookNotifier
- mock_transport_factory: Builds a SocketTransport backed by httpx.MockTransport
"""

import os
import sys
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from docker_monitor.transport import SocketTransport
from models.settings_models import HealerConfig, SocketEndpoint
from notifications import WebhookNotifier


FULL_ID = "abc123def4567890abc123def4567890abc123def4567890abc123def4567890"
SHORT_ID = "abc123def456"


@pytest.fixture
def healer_config():
    """Socket endpoint, default stop timeout 10s, 5s interval, no exclusions"""
    return HealerConfig(endpoint=SocketEndpoint(path='/var/run/docker.sock'))


@pytest.fixture
def container_payload():
    """
    Build one container as Docker reports it.

    Usage:
        container_payload(Id="...", Names=["/web"], Labels={"autoheal.stop.timeout": "12"})
    """
    def _build(**overrides):
        payload = {
            'Id': FULL_ID,
            'Names': ['/web'],
            'State': 'running',
            'Labels': {},
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def mock_docker_client():
    """DockerApiClient stand-in: no unhealthy containers, restarts succeed"""
    client = Mock()
    client.get_unhealthy_containers = AsyncMock(return_value=[])
    client.restart_container = AsyncMock(return_value=None)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_notifier():
    return Mock(spec=WebhookNotifier)


@pytest.fixture
def mock_transport_factory():
    """
    Build a SocketTransport whose requests are answered by `handler`.

    The handler receives the httpx.Request and returns an httpx.Response
    (sync or async), like httpx.MockTransport.
    """
    def _build(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=None)
        return SocketTransport(client=client, socket_path='/var/run/docker.sock')

    return _build

"""
Docker transport construction for Autoheal

Builds the HTTP client used to talk to the Docker Engine API, either over
the local Unix socket or over TCP with TLS (optionally mutual TLS).
"""

import logging
import os
import ssl
from dataclasses import dataclass
from typing import Union

import httpx

from config.settings import ConfigurationError
from models.settings_models import DirectEndpoint, DockerEndpointConfig, SocketEndpoint

logger = logging.getLogger(__name__)

# Certificates are validated against this name, not the host we connect to,
# so one server certificate works for every address the daemon is reached on
DOCKER_TLS_SERVER_NAME = "docker.localhost"

# The socket already determines the peer, the host part is a placeholder
SOCKET_BASE_URL = "http://localhost"


@dataclass(frozen=True)
class SocketTransport:
    """Docker API over a Unix domain socket"""

    client: httpx.AsyncClient
    socket_path: str
    base_url: str = SOCKET_BASE_URL

    async def send(self, request: httpx.Request) -> httpx.Response:
        return await self.client.send(request)

    async def aclose(self) -> None:
        await self.client.aclose()


@dataclass(frozen=True)
class TlsTransport:
    """Docker API over TCP with TLS, server name pinned to DOCKER_TLS_SERVER_NAME"""

    client: httpx.AsyncClient
    base_url: str
    server_name: str = DOCKER_TLS_SERVER_NAME

    async def send(self, request: httpx.Request) -> httpx.Response:
        request.extensions["sni_hostname"] = self.server_name
        return await self.client.send(request)

    async def aclose(self) -> None:
        await self.client.aclose()


DockerTransport = Union[SocketTransport, TlsTransport]


def build_ssl_context(endpoint: DirectEndpoint) -> ssl.SSLContext:
    """
    Build the TLS client context for a direct endpoint.

    Trust store is the configured CA certificate alone, or the system trust
    anchors when no CA is configured. The client identity is only presented
    when both certificate and key are configured.

    Raises:
        ConfigurationError: CA, certificate or key cannot be read or parsed
    """
    try:
        if endpoint.ca_cert:
            context = ssl.create_default_context(cafile=endpoint.ca_cert)
        else:
            context = ssl.create_default_context()
            verify_paths = ssl.get_default_verify_paths()
            has_capath = bool(verify_paths.capath) and os.path.isdir(verify_paths.capath)
            # capath entries are loaded lazily and never show up in the stats
            if context.cert_store_stats().get('x509_ca', 0) == 0 and not has_capath:
                logger.error("Failed to load any certificate from the system trust store")
    except OSError as e:
        raise ConfigurationError(f"Failed to load CA certificate {endpoint.ca_cert}: {e}") from e

    if endpoint.has_client_identity:
        try:
            context.load_cert_chain(certfile=endpoint.client_cert, keyfile=endpoint.client_key)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to load client certificate {endpoint.client_cert} / key {endpoint.client_key}: {e}"
            ) from e
    elif endpoint.client_cert or endpoint.client_key:
        logger.warning("Client certificate and key must both be set for mutual TLS, ignoring the one provided")

    return context


def build_transport(endpoint: DockerEndpointConfig) -> DockerTransport:
    """
    Build the transport for the configured endpoint.

    Timeouts are applied per request by the API client, so the underlying
    httpx clients are created without one.

    Raises:
        ConfigurationError: TLS material is invalid
    """
    if isinstance(endpoint, DirectEndpoint):
        context = build_ssl_context(endpoint)
        client = httpx.AsyncClient(
            transport=httpx.AsyncHTTPTransport(verify=context),
            timeout=None,
        )
        logger.info(
            f"Connecting to Docker at {endpoint.uri} over TLS "
            f"(server name {DOCKER_TLS_SERVER_NAME}, mTLS {'on' if endpoint.has_client_identity else 'off'})"
        )
        return TlsTransport(client=client, base_url=endpoint.uri)

    if isinstance(endpoint, SocketEndpoint):
        if not os.path.exists(endpoint.path):
            logger.warning(f"Docker socket {endpoint.path} does not exist yet")
        client = httpx.AsyncClient(
            transport=httpx.AsyncHTTPTransport(uds=endpoint.path),
            timeout=None,
        )
        logger.info(f"Connecting to Docker over socket {endpoint.path}")
        return SocketTransport(client=client, socket_path=endpoint.path)

    raise ConfigurationError(f"Unsupported Docker endpoint: {endpoint!r}")

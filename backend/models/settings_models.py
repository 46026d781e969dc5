"""
Settings and Configuration Models for Autoheal
Pydantic models for the Docker connection and the healer settings
"""

from typing import List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


TCP_SCHEME = "tcp://"
TLS_SCHEME = "https://"


class SocketEndpoint(BaseModel):
    """Docker reached through a local Unix domain socket"""
    model_config = ConfigDict(frozen=True)

    kind: Literal['socket'] = 'socket'
    path: str = Field(..., min_length=1)


class DirectEndpoint(BaseModel):
    """Docker reached over TCP with TLS, optionally with a client certificate (mTLS)"""
    model_config = ConfigDict(frozen=True)

    kind: Literal['direct'] = 'direct'
    uri: str = Field(..., min_length=1)
    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None

    @field_validator('uri')
    @classmethod
    def validate_uri(cls, v: str) -> str:
        """URI must be https:// with a host, tcp:// targets are rewritten before this runs"""
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f'Invalid Docker URI {v!r}: {e}')
        if url.scheme != 'https':
            raise ValueError(f'Docker URI must use https://, got {v!r}')
        if not url.host:
            raise ValueError(f'Docker URI has no host: {v!r}')
        return v

    @property
    def has_client_identity(self) -> bool:
        """mTLS is only used when both halves of the identity are configured"""
        return bool(self.client_cert and self.client_key)


DockerEndpointConfig = Union[SocketEndpoint, DirectEndpoint]


def endpoint_from_target(
    target: str,
    ca_cert: Optional[str] = None,
    client_cert: Optional[str] = None,
    client_key: Optional[str] = None,
) -> DockerEndpointConfig:
    """
    Resolve the configured Docker target into an endpoint.

    Args:
        target: Unix socket path, or tcp://host:port
        ca_cert: CA certificate path (TLS only)
        client_cert: Client certificate path (TLS only)
        client_key: Client private key path (TLS only)

    Example:
        >>> endpoint_from_target("tcp://10.0.0.5:2376").uri
        'https://10.0.0.5:2376'
    """
    if target.startswith(TCP_SCHEME):
        return DirectEndpoint(
            uri=TLS_SCHEME + target[len(TCP_SCHEME):],
            ca_cert=ca_cert,
            client_cert=client_cert,
            client_key=client_key,
        )
    return SocketEndpoint(path=target)


class HealerConfig(BaseModel):
    """Validated settings for the healer, resolved once at startup"""
    model_config = ConfigDict(frozen=True)

    endpoint: DockerEndpointConfig = Field(..., discriminator='kind')
    timeout_milliseconds: int = Field(30000, gt=0)
    container_label: Optional[str] = None
    default_stop_timeout: int = Field(10, ge=0)
    interval: int = Field(5, ge=1)  # seconds between polls
    start_period: int = Field(0, ge=0)  # seconds to wait before the first poll
    exclude_containers: List[str] = Field(default_factory=list)
    webhook_url: Optional[str] = None

    @field_validator('webhook_url')
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f'Invalid webhook URL {v!r}: {e}')
        if url.scheme not in ('http', 'https') or not url.host:
            raise ValueError(f'Webhook URL must be an http:// or https:// URL, got {v!r}')
        return v

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_milliseconds / 1000

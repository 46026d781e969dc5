"""
Docker Models for Autoheal
Pydantic models for containers returned by the Docker Engine list endpoint
"""

import logging
import re
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from utils.container_id import short_container_id


logger = logging.getLogger(__name__)

# Per-container override of the restart grace period, in seconds
STOP_TIMEOUT_LABEL = "autoheal.stop.timeout"

_UNSIGNED_INT = re.compile(r'[0-9]+')

# Stop timeouts are 32-bit unsigned
MAX_STOP_TIMEOUT = 2**32 - 1


class ContainerParseError(Exception):
    """Container list returned by Docker could not be decoded."""


def parse_stop_timeout(labels: Any) -> Optional[int]:
    """
    Extract the stop timeout from a container's labels.

    Args:
        labels: Docker `Labels` value (dict, or None when Docker omits it)

    Returns:
        Timeout in seconds, or None when the label is not set

    Raises:
        ValueError: Labels is not an object, or the label is not an unsigned 32-bit integer
    """
    if labels is None:
        return None

    if not isinstance(labels, dict):
        raise ValueError(f"Labels must be an object, got {type(labels).__name__}")

    if STOP_TIMEOUT_LABEL not in labels:
        return None

    value = labels[STOP_TIMEOUT_LABEL]
    if not isinstance(value, str) or not _UNSIGNED_INT.fullmatch(value) or int(value) > MAX_STOP_TIMEOUT:
        raise ValueError(f"Label {STOP_TIMEOUT_LABEL} must be an unsigned 32-bit integer, got {value!r}")

    return int(value)


class Container(BaseModel):
    """Unhealthy container as reported by GET /containers/json"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., alias='Id', min_length=1)
    names: List[str] = Field(..., alias='Names')
    state: str = Field(..., alias='State')
    # Only ever read from the Labels map, never from a key of its own
    timeout: Optional[int] = Field(None, alias='Labels', ge=0)

    @field_validator('timeout', mode='before')
    @classmethod
    def extract_stop_timeout(cls, v: Any) -> Optional[int]:
        """Replace the raw Labels map with the stop timeout it carries"""
        return parse_stop_timeout(v)

    @field_validator('names')
    @classmethod
    def strip_leading_slash(cls, v: List[str]) -> List[str]:
        """Docker prefixes every container name with '/', drop exactly that one character"""
        return [name[1:] if name.startswith('/') else name for name in v]

    @property
    def short_id(self) -> str:
        return short_container_id(self.id)

    @property
    def display_name(self) -> Optional[str]:
        """
        All names joined for display, or None when Docker reports no name.

        A container without any name no longer exists and must never be restarted.
        """
        if not self.names:
            return None
        return ''.join(self.names)


_CONTAINER_LIST = TypeAdapter(List[Container])


def parse_containers(payload: Union[bytes, str, list]) -> List[Container]:
    """
    Decode the body of GET /containers/json.

    Args:
        payload: Raw JSON body, or an already decoded list

    Returns:
        Containers in the order Docker returned them

    Raises:
        ContainerParseError: Body is not a valid container list
    """
    try:
        if isinstance(payload, (bytes, str)):
            return _CONTAINER_LIST.validate_json(payload)
        return _CONTAINER_LIST.validate_python(payload)
    except ValidationError as e:
        raise ContainerParseError(f"Invalid container list from Docker: {e}") from e

"""
Unhealthy-container filters for the Docker list endpoint
"""

import json
from typing import Dict, List, Optional


def build_unhealthy_filters(container_label: Optional[str]) -> Dict[str, List[str]]:
    """
    Build the `filters` object for GET /containers/json.

    Args:
        container_label: Label selector. None or "all" selects every unhealthy
            container, a bare key means key=true, key=value is used as-is.

    Returns:
        Filters dict, e.g. {"health": ["unhealthy"], "label": ["autoheal=true"]}
    """
    if container_label is None or container_label == "all":
        labels = []
    elif "=" in container_label:
        labels = [container_label]
    else:
        labels = [f"{container_label}=true"]

    return {"health": ["unhealthy"], "label": labels}


def percent_encode(text: str) -> str:
    """Percent-encode every byte that is not an ASCII letter or digit"""
    return ''.join(
        chr(byte) if chr(byte).isascii() and chr(byte).isalnum() else f"%{byte:02X}"
        for byte in text.encode('utf-8')
    )


def encode_filters(filters: Dict[str, List[str]]) -> str:
    """Serialize filters to compact JSON and percent-encode it for the query string"""
    return percent_encode(json.dumps(filters, separators=(',', ':')))

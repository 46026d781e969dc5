"""
Container ID Utilities

The engine reports 64-char container IDs. Autoheal logs, notifies and
restarts using the 12-char short form, like `docker ps` does.
"""

SHORT_ID_LENGTH = 12


def short_container_id(container_id: str) -> str:
    """
    Return the 12-char short form of a container ID.

    IDs that are already short (or shorter) are returned unchanged.

    Examples:
        >>> short_container_id("582036c7a5e8719bbbc9476e4216bfaf4fd318b61723f41f2e8fe3b60d8182ae")
        "582036c7a5e8"
        >>> short_container_id("582036c7a5e8")
        "582036c7a5e8"
    """
    return container_id[:SHORT_ID_LENGTH]

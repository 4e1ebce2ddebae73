"""Utility functions for naming and locating uploads."""

import logging
import re
import socket
import uuid
from functools import cache

from imageshare.core.constants import SUPPORTED_MIME_TYPES

logger = logging.getLogger(__name__)

UPLOAD_NAME_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    r"\.(jpg|gif|png|apng|webp|avif)$",
)


def generate_upload_name(mime_type: str) -> str:
    """Generate a unique file name for an upload of the given MIME type."""
    return f"{uuid.uuid4()}{SUPPORTED_MIME_TYPES[mime_type]}"


def is_upload_name(name: str) -> bool:
    """Check that a name looks like one produced by generate_upload_name."""
    return UPLOAD_NAME_PATTERN.match(name) is not None


@cache
def get_local_ip() -> str:
    """Return the first non-loopback IPv4 address of this host.

    Falls back to the host name when no route is available.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packets are sent, connecting a UDP socket only picks a route
            sock.connect(("8.8.8.8", 80))
            return sock.getsockname()[0]
    except OSError as err:
        hostname = socket.gethostname()
        logger.warning("Could not detect local IP address, using %s: %s", hostname, err)
        return hostname

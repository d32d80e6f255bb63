"""
Input Validators - validation for content and requirements at the pipeline boundary.

Parse at the boundary: validate and type-check all external input
before it enters the pipeline. Analyzers and correctors assume these
checks already ran and never re-validate raw dicts or strings.
"""

import ipaddress
import logging
from urllib.parse import urlparse

from ..errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_URL_SCHEMES = {"http", "https"}
BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}


def validate_not_empty(value: str | None, field_name: str = "input") -> str:
    """Validate that a string is present and not whitespace-only."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} cannot be empty")
    return value.strip()


def validate_length(
    value: str,
    field_name: str = "input",
    min_length: int = 0,
    max_length: int = 100_000,
) -> str:
    """Validate string length is within bounds."""
    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return value


def validate_positive_number(value: float | int, field_name: str = "number") -> float:
    """Validate that a number is positive."""
    if value <= 0:
        raise ValidationError(f"{field_name} must be positive (got {value})")
    return float(value)


def validate_list_size(
    items: list | tuple,
    field_name: str = "list",
    max_items: int = 100,
) -> list | tuple:
    """Validate that a list does not exceed a maximum number of items."""
    if len(items) > max_items:
        raise ValidationError(
            f"{field_name} cannot have more than {max_items} items (got {len(items)})"
        )
    return items


def _is_private_ip(hostname: str) -> bool:
    """Check if a hostname is a literal private/loopback IP address."""
    try:
        addr = ipaddress.ip_address(hostname)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def validate_url(
    url: str,
    field_name: str = "url",
    allow_private: bool = False,
) -> str:
    """
    Validate a cited URL before it is scored or fetched (anti-SSRF).

    Blocks:
      - Non-http/https schemes (file://, javascript:, ftp://, etc.)
      - Private IPs (10.x, 172.16.x, 192.168.x, 127.x, ::1)
      - Link-local addresses (169.254.x -- cloud metadata endpoints)
      - Known dangerous hostnames and *.internal hosts

    Raises:
        ValidationError: If the URL is unsafe.
    """
    if not url or not url.strip():
        raise ValidationError(f"{field_name} cannot be empty")

    parsed = urlparse(url.strip())

    if parsed.scheme not in ALLOWED_URL_SCHEMES:
        raise ValidationError(
            f"{field_name} must use http or https (got '{parsed.scheme}')"
        )

    hostname = parsed.hostname
    if not hostname:
        raise ValidationError(f"{field_name} must include a hostname")

    hostname_lower = hostname.lower()
    if hostname_lower in BLOCKED_HOSTNAMES:
        raise ValidationError(f"{field_name} cannot point to {hostname_lower}")

    if not allow_private and _is_private_ip(hostname):
        raise ValidationError(f"{field_name} cannot point to private/internal addresses")

    if not allow_private and hostname_lower.endswith(".internal"):
        raise ValidationError(f"{field_name} cannot point to internal hostnames")

    logger.debug(f"[Validators] URL validated: {parsed.scheme}://{hostname}")
    return url.strip()

"""
Outbound URL and header policy for user-configured webhooks.

Webhook URLs are typed in by form owners, so they are checked before any
request leaves the service: https only, no loopback/private targets and no
cloud metadata endpoints.
"""
import ipaddress
from collections.abc import Mapping
from urllib.parse import urlsplit


MAX_HEADER_VALUE_LENGTH = 1000

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost"}
BLOCKED_HOST_FRAGMENTS = (
    "metadata.google",
    "169.254.169.254",
    "metadata.azure",
    "metadata.ec2",
)
DROPPED_HEADERS = {"host", "via"}


def _is_internal_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def validate_webhook_url(url: str | None, require_https: bool = True) -> bool:
    """
    Check a webhook URL against the outbound policy.

    Returns False for anything unparsable, non-https (unless require_https
    is off, in which case plain http is also allowed), or pointing at an
    internal host.
    """
    if not url:
        return False

    try:
        parts = urlsplit(url)
        hostname = (parts.hostname or "").lower()
    except ValueError:
        return False

    allowed_schemes = {"https"} if require_https else {"https", "http"}
    if parts.scheme.lower() not in allowed_schemes or not hostname:
        return False

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        return False

    if _is_internal_ip(hostname):
        return False

    if any(fragment in hostname for fragment in BLOCKED_HOST_FRAGMENTS):
        return False

    return True


def sanitize_headers(headers) -> dict[str, str]:
    """
    Clean user-supplied custom headers.

    Drops hop/proxy headers (Host, Via, X-Forwarded-*), turns non-string
    values into "", strips CR/LF and caps each value at 1000 characters.
    """
    if not isinstance(headers, Mapping):
        return {}

    sanitized = {}
    for key, value in headers.items():
        key = str(key).strip()
        lower_key = key.lower()
        if not key or lower_key in DROPPED_HEADERS or lower_key.startswith("x-forwarded"):
            continue

        if isinstance(value, str):
            clean = value[:MAX_HEADER_VALUE_LENGTH].replace("\r", "").replace("\n", "")
        else:
            clean = ""
        sanitized[key] = clean

    return sanitized

import re
from typing import Optional
from urllib.parse import urlsplit

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def is_absolute_iri(value: Optional[str]) -> bool:
    """Return True if ``value`` parses as an absolute IRI (scheme plus body)."""
    if not value or any(c.isspace() for c in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)

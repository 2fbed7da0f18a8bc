"""
Absolute-URL resolution for references found in pages and stylesheets.
"""

import re
from urllib.parse import quote, urljoin, urlsplit


# Left alone: resolving these is a no-op, breaks anchors, or rewrites executable URIs
PASSTHROUGH_PREFIXES = (
    "data:",
    "http:",
    "https:",
    "//",
    "#",
    "mailto:",
    "tel:",
    "javascript:",
)

# A leading colon is an empty scheme
_MALFORMED = re.compile(r"^:")

# Browsers drop tabs and newlines inside URLs before parsing
_STRIPPED_CHARS = re.compile(r"[\t\n\r]")

# Reserved characters and existing escapes survive; spaces, quotes, brackets
# and non-ASCII are percent-encoded
_URL_SAFE = "!#$%&'()*+,/:;=?@[]~"


def normalize(reference: str, base: str) -> str:
    """
    Resolve ``reference`` against ``base``.

    Empty values and the schemes in PASSTHROUGH_PREFIXES come back untouched.
    Anything that cannot be resolved cleanly is also returned as-is, so one
    bad attribute never corrupts or halts the rest of the document.
    """
    if not reference:
        return reference

    candidate = reference.strip()
    if not candidate or candidate.lower().startswith(PASSTHROUGH_PREFIXES):
        return reference
    if _MALFORMED.match(candidate):
        return reference

    try:
        candidate = quote(_STRIPPED_CHARS.sub("", candidate), safe=_URL_SAFE)
        resolved = urljoin(base, candidate)
        urlsplit(resolved)
    except ValueError:
        return reference
    return resolved


def ensure_scheme(url: str) -> str:
    """Strip whitespace and default bare hosts like ``example.com`` to https."""
    url = url.strip()
    if url and not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    return url

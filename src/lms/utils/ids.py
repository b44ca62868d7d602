"""
ID generation utilities for the LMS.

Integer primary keys identify rows internally; the opaque identifiers here
are what leaves the LMS (LTI ``sub`` claims, context ids, anonymous ids,
launch verifiers, login sessions).
"""

import secrets
from uuid import uuid4

# Common entity prefixes
PREFIX_SESSION = "sess"


def generate_lti_id() -> str:
    """Opaque, stable identifier for users, courses and assignments sent to tools."""
    return str(uuid4())


def generate_anonymous_id() -> str:
    """
    Short identifier that stands in for a student when grading anonymously.

    Examples:
        >>> len(generate_anonymous_id())
        5
    """
    return secrets.token_hex(3)[:5]


def generate_verifier() -> str:
    """Single-use key a cached launch message is stored under."""
    return secrets.token_urlsafe(32)


def generate_session_id() -> str:
    """
    Generate a login session id.

    Returns:
        ID like "sess-<43 url-safe characters>"
    """
    return f"{PREFIX_SESSION}-{secrets.token_urlsafe(32)}"

"""
LTI platform configuration loader.

Loads the platform's RSA signing key from a file path (local dev) or an
inline PEM value (K8s secrets) and assembles the per-launch configuration.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from api.settings import get_settings
from lms.services.lti_advantage import KeySet, LaunchConfig

logger = logging.getLogger(__name__)

_BASE_DIR = Path(__file__).resolve().parents[3]  # project root


def _load_key(value: str) -> str:
    """Load a PEM key from a string or file path.

    If *value* starts with ``-----BEGIN``, it's treated as an inline PEM.
    Otherwise it's resolved as a file path (absolute, or relative to the
    project root).
    """
    if value.startswith("-----BEGIN"):
        return value

    path = Path(value)
    if not path.is_absolute():
        path = _BASE_DIR / path

    return path.read_text()


@lru_cache(maxsize=1)
def get_key_set() -> KeySet:
    """Load the platform signing key set."""
    settings = get_settings()
    try:
        private_key = _load_key(settings.lti_private_key)
        public_key = _load_key(settings.lti_public_key) if settings.lti_public_key else None
    except FileNotFoundError:
        logger.warning(
            "LTI RSA keys not found. "
            "Generate with: openssl genrsa -out configs/lti/private.key 2048",
        )
        raise
    return KeySet.from_pem(private_key, public_key, settings.lti_key_id or None)


def get_launch_config() -> LaunchConfig:
    settings = get_settings()
    return LaunchConfig(
        issuer=settings.lti_issuer,
        key_set=get_key_set(),
        message_hint_secret=settings.secret_key,
        message_ttl=settings.lti_message_ttl,
        id_token_ttl=settings.lti_id_token_ttl,
        platform_name=settings.lti_platform_name,
        locale=settings.default_locale,
    )


def clear_key_cache() -> None:
    """Clear the cached key set (for testing)."""
    get_key_set.cache_clear()

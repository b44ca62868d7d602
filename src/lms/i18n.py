"""
Message localization.

Catalogs are JSON files under ``lms/locales`` named after the locale
(``en.json``, ``es.json``).  Keys are dotted paths into the nested catalog;
``%{name}`` placeholders are interpolated from keyword arguments.

Usage::

    from lms.i18n import translate
    translate("lti.launches.unsupported_message_type", message_type="Foo")
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent / "locales"
DEFAULT_LOCALE = "en"

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


@lru_cache(maxsize=None)
def _load_catalog(locale: str) -> dict:
    path = LOCALES_DIR / f"{locale}.json"
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def available_locales() -> list[str]:
    return sorted(p.stem for p in LOCALES_DIR.glob("*.json"))


def _lookup(catalog: dict, key: str) -> str | None:
    node: Any = catalog
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def _interpolate(template: str, values: dict[str, Any]) -> str:
    def _sub(match: re.Match) -> str:
        name = match.group(1)
        return str(values[name]) if name in values else match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


def translate(
    key: str,
    default: str | None = None,
    locale: str | None = None,
    **values: Any,
) -> str:
    """
    Resolve a localized message.

    Lookup order: the requested locale, then the default locale, then
    *default*, then the key itself.
    """
    locale = locale or DEFAULT_LOCALE
    message = _lookup(_load_catalog(locale), key)
    if message is None and locale != DEFAULT_LOCALE:
        message = _lookup(_load_catalog(DEFAULT_LOCALE), key)
    if message is None:
        if default is None:
            logger.debug("Missing translation for %s (%s)", key, locale)
            message = key
        else:
            message = default
    return _interpolate(message, values)


def negotiate_locale(accept_language: str | None, fallback: str = DEFAULT_LOCALE) -> str:
    """Pick the first locale from an ``Accept-Language`` header we have a catalog for."""
    if not accept_language:
        return fallback
    locales = set(available_locales())
    ranked: list[tuple[float, str]] = []
    for part in accept_language.split(","):
        tag, _, params = part.strip().partition(";")
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        ranked.append((quality, tag.strip().lower()))
    for _, tag in sorted(ranked, key=lambda r: -r[0]):
        language = tag.split("-", 1)[0]
        if tag in locales:
            return tag
        if language in locales:
            return language
    return fallback

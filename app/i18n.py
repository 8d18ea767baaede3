"""Locale selection and message translation."""

import json
from functools import lru_cache
from pathlib import Path

from fastapi import Request

from app.config import get_settings

LOCALES_DIR = Path(__file__).resolve().parent / "locales"
FALLBACK_LOCALE = "en"


@lru_cache
def load_translations() -> dict[str, dict[str, str]]:
    """Load every ``<lang>.json`` table under app/locales."""
    tables = {}
    for path in sorted(LOCALES_DIR.glob("*.json")):
        with open(path, encoding="utf-8") as f:
            tables[path.stem] = json.load(f)
    return tables


def negotiate_locale(accept_language: str | None) -> str:
    """Pick the first Accept-Language tag that has a translation table."""
    tables = load_translations()
    if accept_language:
        for part in accept_language.split(","):
            tag = part.split(";")[0].strip().lower()
            primary = tag.split("-")[0]
            if primary in tables:
                return primary
    default = get_settings().DEFAULT_LOCALE
    return default if default in tables else FALLBACK_LOCALE


def get_locale(request: Request) -> str:
    return negotiate_locale(request.headers.get("Accept-Language"))


def translate(key: str, locale: str) -> str:
    """Resolve a message key, falling back to English and then to the key."""
    tables = load_translations()
    message = tables.get(locale, {}).get(key)
    if message is None:
        message = tables.get(FALLBACK_LOCALE, {}).get(key, key)
    return message

"""
Message catalogs for user-facing strings.

Every user-facing message is addressed by a template key. Catalogs live in
``app/locales/<language>.json`` and use ``str.format`` placeholders. Lookups
fall back to English, then to the key itself, so a missing translation
never breaks a response.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent / "locales"
FALLBACK_LANGUAGE = "en"


@lru_cache(maxsize=None)
def load_catalog(language: str) -> dict[str, str]:
    """Load and cache the catalog for ``language`` (empty when unknown)."""
    path = LOCALES_DIR / f"{language}.json"
    if not path.is_file():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


def available_languages() -> list[str]:
    return sorted(path.stem for path in LOCALES_DIR.glob("*.json"))


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def translate(key: str, variables: dict[str, Any] | None = None, language: str | None = None) -> str:
    """
    Render the message ``key`` in ``language``.

    Args:
        key: Template key, e.g. ``"taskRequiresApproval"``.
        variables: Substitutions for the template placeholders.
        language: Target language; ``None`` means the fallback language.

    Returns:
        The formatted message, or ``key`` when no catalog defines it.
    """
    template = load_catalog(language or FALLBACK_LANGUAGE).get(key)
    if template is None:
        template = load_catalog(FALLBACK_LANGUAGE).get(key)
    if template is None:
        logger.warning("No message template for key %r", key)
        return key
    return template.format_map(_KeepMissing(variables or {}))

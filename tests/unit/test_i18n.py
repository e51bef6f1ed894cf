"""
Unit tests for message catalogs.
"""

from string import Formatter

import pytest

from app.i18n import available_languages, load_catalog, translate

pytestmark = pytest.mark.unit


def test_bundled_languages():
    assert {"en", "cs"} <= set(available_languages())


def test_translates_into_requested_language():
    assert translate("taskRequiresApproval", language="cs") == load_catalog("cs")["taskRequiresApproval"]
    assert translate("taskRequiresApproval", language="cs") != translate("taskRequiresApproval")


def test_missing_translation_falls_back_to_english(monkeypatch):
    catalogs = {"en": load_catalog("en"), "cs": {}}
    monkeypatch.setattr("app.i18n.load_catalog", catalogs.__getitem__)

    assert translate("taskUpdateConflict", language="cs") == catalogs["en"]["taskUpdateConflict"]


@pytest.mark.parametrize("language", ["cs"])
def test_bundled_catalogs_are_complete(language):
    english = load_catalog("en")
    catalog = load_catalog(language)

    assert set(catalog) == set(english)
    for key, template in english.items():
        assert _placeholders(catalog[key]) == _placeholders(template), key


def _placeholders(template: str) -> set[str]:
    return {name for _, name, _, _ in Formatter().parse(template) if name}


def test_unknown_language_falls_back_to_english():
    assert translate("taskNotFound", language="xx") == load_catalog("en")["taskNotFound"]


def test_unknown_key_returns_key():
    assert translate("noSuchMessage") == "noSuchMessage"


def test_placeholders_are_filled():
    message = translate("userHasRequestedTaskApproval", {"user": "alice", "taskName": "sweep"})

    assert message == "alice requests approval for sweep"


def test_missing_placeholders_are_kept():
    message = translate("userHasRequestedTaskApproval", {"user": "alice"})

    assert "alice" in message
    assert "{taskName}" in message


def test_every_catalog_key_exists_in_english():
    english = load_catalog("en")
    for language in available_languages():
        assert set(load_catalog(language)) <= set(english), language

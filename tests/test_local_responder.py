"""Tests for the canned local responder."""

import pytest

from src.backends.local import LOCAL_RESPONSES, LocalResponder, detect_locale


@pytest.mark.parametrize(
    "text, locale",
    [
        ("Bonjour !", "fr"),
        ("merci beaucoup", "fr"),
        ("Où êtes-vous basé ?", "fr"),
        ("What services do you offer?", "en"),
        ("", "en"),
    ],
)
def test_detect_locale(text: str, locale: str) -> None:
    assert detect_locale(text) == locale


def test_context_and_locale_select_text() -> None:
    responder = LocalResponder()
    assert responder.respond("Show me projects", "projects") == LOCAL_RESPONSES["projects"]["en"]
    assert responder.respond("Salut, vos projets ?", "projects") == LOCAL_RESPONSES["projects"]["fr"]


def test_missing_context_uses_default() -> None:
    responder = LocalResponder()
    assert responder.respond("hi") == LOCAL_RESPONSES["default"]["en"]
    assert responder.respond("hi", "dashboard") == LOCAL_RESPONSES["default"]["en"]


def test_custom_responses() -> None:
    responder = LocalResponder({"default": {"en": "offline", "fr": "hors ligne"}})
    assert responder.respond("merci", "home") == "hors ligne"

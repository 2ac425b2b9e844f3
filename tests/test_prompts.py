"""Tests for assistant prompt composition."""

from src.prompts.templates import (
    ASSISTANT_PERSONA,
    LEAD_QUALIFICATION,
    PAGE_CONTEXTS,
    build_assistant_prompt,
    resolve_page_context,
)


def test_resolve_page_context() -> None:
    assert resolve_page_context("Services") == "services"
    assert resolve_page_context("nowhere") == "home"
    assert resolve_page_context(None) == "home"


def test_prompt_sections_in_order() -> None:
    prompt = build_assistant_prompt("Do you build mobile apps?", page_context="services")
    assert prompt.startswith(ASSISTANT_PERSONA)
    assert PAGE_CONTEXTS["services"]["focus"] in prompt
    assert "Respond in English" in prompt
    assert prompt.index(LEAD_QUALIFICATION) < prompt.index("Current user question: Do you build mobile apps?")
    assert "CONVERSATION HISTORY" not in prompt


def test_french_locale() -> None:
    prompt = build_assistant_prompt("Bonjour", page_context="contact", locale="fr")
    assert "Répondez en français" in prompt
    assert "CONTEXTE DE LA PAGE" in prompt


def test_unknown_locale_uses_english() -> None:
    assert "Respond in English" in build_assistant_prompt("Hallo", locale="de")


def test_history_accepts_both_key_styles() -> None:
    prompt = build_assistant_prompt(
        "And the price?",
        history=[
            {"text": "Hi", "is_user": True},
            {"text": "Hello! How can I help?", "isUser": False},
            {"text": "A web app", "isUser": True},
        ],
    )
    assert "CONVERSATION HISTORY:\nUser: Hi\nAssistant: Hello! How can I help?\nUser: A web app" in prompt


def test_history_entries_that_are_not_messages_are_skipped() -> None:
    prompt = build_assistant_prompt("Price?", history=["hi", None, {"text": "Hello", "is_user": True}])
    assert "CONVERSATION HISTORY:\nUser: Hello\n" in prompt

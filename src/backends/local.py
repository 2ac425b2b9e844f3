"""
Rule-based local responder: the always-available, zero-cost last resort.

Answers are canned paragraphs keyed by page context and a crude language
guess, so the assistant degrades to useful text instead of an error.
"""

from __future__ import annotations

import re
from typing import Optional

_FRENCH_HINTS = re.compile(
    r"\b(bonjour|salut|comment|pourquoi|où|quand|français|merci)\b",
    re.IGNORECASE,
)

LOCAL_RESPONSES: dict[str, dict[str, str]] = {
    "home": {
        "en": (
            "I'm a full-stack developer specializing in web applications, AI solutions, and mobile "
            "development. I can help you with project planning, technology recommendations, and "
            "development services. What would you like to know about my work or services?"
        ),
        "fr": (
            "Je suis un développeur full-stack spécialisé dans les applications web, les solutions IA "
            "et le développement mobile. Je peux vous aider avec la planification de projets, les "
            "recommandations technologiques et les services de développement. Que souhaitez-vous "
            "savoir sur mon travail ou mes services?"
        ),
    },
    "services": {
        "en": (
            "I offer comprehensive development services including web applications, mobile apps, AI "
            "integration, and consulting. My expertise covers modern technologies like React, "
            "Next.js, Node.js, and cloud platforms. Would you like to discuss your specific project needs?"
        ),
        "fr": (
            "J'offre des services de développement complets incluant les applications web, les "
            "applications mobiles, l'intégration IA et le conseil. Mon expertise couvre les "
            "technologies modernes comme React, Next.js, Node.js et les plateformes cloud. "
            "Souhaitez-vous discuter de vos besoins spécifiques de projet?"
        ),
    },
    "projects": {
        "en": (
            "My portfolio includes various web applications, mobile apps, and AI-powered solutions. "
            "I've worked with technologies like React, Next.js, TypeScript, and modern databases. Each "
            "project showcases different aspects of modern development practices. Which type of "
            "project interests you most?"
        ),
        "fr": (
            "Mon portfolio comprend diverses applications web, applications mobiles et solutions "
            "alimentées par l'IA. J'ai travaillé avec des technologies comme React, Next.js, "
            "TypeScript et des bases de données modernes. Chaque projet présente différents aspects "
            "des pratiques de développement modernes. Quel type de projet vous intéresse le plus?"
        ),
    },
    "contact": {
        "en": (
            "I'm available for consultations and project discussions. You can reach out to discuss "
            "your requirements, get project estimates, or schedule a meeting. I typically respond "
            "within 24 hours and offer free initial consultations. How can I help you today?"
        ),
        "fr": (
            "Je suis disponible pour des consultations et des discussions de projets. Vous pouvez me "
            "contacter pour discuter de vos exigences, obtenir des estimations de projet ou planifier "
            "une réunion. Je réponds généralement dans les 24 heures et offre des consultations "
            "initiales gratuites. Comment puis-je vous aider aujourd'hui?"
        ),
    },
    "default": {
        "en": (
            "I'm here to help with questions about web development, mobile applications, AI "
            "solutions, and technology consulting. Feel free to ask about specific technologies, "
            "project examples, or how I can assist with your development needs."
        ),
        "fr": (
            "Je suis là pour vous aider avec des questions sur le développement web, les applications "
            "mobiles, les solutions IA et le conseil technologique. N'hésitez pas à poser des "
            "questions sur des technologies spécifiques, des exemples de projets ou comment je peux "
            "vous aider avec vos besoins de développement."
        ),
    },
}


def detect_locale(text: str) -> str:
    return "fr" if _FRENCH_HINTS.search(text or "") else "en"


class LocalResponder:
    """Deterministic canned answers; never fails."""

    def __init__(self, responses: Optional[dict[str, dict[str, str]]] = None) -> None:
        self.responses = responses or LOCAL_RESPONSES

    def respond(self, prompt: str, context: Optional[str] = None) -> str:
        by_locale = self.responses.get(context or "default") or self.responses["default"]
        return by_locale[detect_locale(prompt)]

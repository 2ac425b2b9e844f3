"""
Remote backends through LangChain chat models.

Provides one uniform ``generate`` over Gemini, OpenAI and Anthropic so the
orchestrator never couples to a provider SDK. Chat model instances are
created lazily per backend on first use. Every provider exception is
converted into ``ModelUnavailableError`` with a ``FailureReason`` tag.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from src.config import Settings, get_settings
from src.errors import FailureReason, ModelUnavailableError, classify_backend_error
from src.models import Provider
from src.registry import BackendDescriptor

logger = structlog.get_logger()


def _content_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content)


class LangChainBackend:
    """BackendClient implementation backed by LangChain chat models."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._models: dict[str, BaseChatModel] = {}

    def _api_key(self, provider: Provider) -> str:
        llm = self.settings.llm
        return {
            Provider.GEMINI: llm.gemini_api_key,
            Provider.OPENAI: llm.openai_api_key,
            Provider.ANTHROPIC: llm.anthropic_api_key,
        }.get(provider, "").strip()

    def _build_model(self, d: BackendDescriptor) -> BaseChatModel:
        api_key = self._api_key(d.provider)
        if not api_key:
            raise ModelUnavailableError(
                d.display_name,
                FailureReason.SERVICE_DOWN,
                f"No API key configured for provider {d.provider.value}",
            )
        llm = self.settings.llm
        max_tokens = min(d.max_tokens, llm.max_tokens)
        if d.provider == Provider.GEMINI:
            return ChatGoogleGenerativeAI(
                model=d.model,
                google_api_key=api_key,
                temperature=llm.temperature,
                max_output_tokens=max_tokens,
            )
        if d.provider == Provider.OPENAI:
            return ChatOpenAI(
                model=d.model,
                api_key=api_key,
                temperature=llm.temperature,
                max_tokens=max_tokens,
            )
        if d.provider == Provider.ANTHROPIC:
            return ChatAnthropic(
                model=d.model,
                api_key=api_key,
                temperature=llm.temperature,
                max_tokens=max_tokens,
            )
        raise ModelUnavailableError(
            d.display_name,
            FailureReason.UNKNOWN,
            f"Provider {d.provider.value} is not a remote backend",
        )

    def get_model(self, d: BackendDescriptor) -> BaseChatModel:
        if d.id not in self._models:
            self._models[d.id] = self._build_model(d)
            logger.info("chat_model_created", backend=d.id, provider=d.provider.value, model=d.model)
        return self._models[d.id]

    async def generate(self, descriptor: BackendDescriptor, prompt: str) -> str:
        model = self.get_model(descriptor)
        try:
            response = await model.ainvoke([HumanMessage(content=prompt)])
        except ModelUnavailableError:
            raise
        except Exception as e:
            reason = classify_backend_error(e)
            raise ModelUnavailableError(descriptor.display_name, reason, str(e)) from e
        text = _content_text(response.content if hasattr(response, "content") else response)
        if not text.strip():
            raise ModelUnavailableError(
                descriptor.display_name,
                FailureReason.UNKNOWN,
                f"Empty response from {descriptor.display_name}",
            )
        return text

"""Contract between the orchestrator and whatever actually calls a remote model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.registry import BackendDescriptor


class BackendClient(Protocol):
    """
    Generates text with one remote backend.

    Implementations must raise ``ModelUnavailableError`` (carrying a
    ``FailureReason``) for every provider failure so the orchestrator can
    dispatch on the tag instead of the message.
    """

    async def generate(self, descriptor: BackendDescriptor, prompt: str) -> str:
        ...

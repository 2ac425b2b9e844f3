#!/usr/bin/env python3
"""
Check that provider API keys from .env are valid and working.

Loads settings (which reads .env and .env.local from the project root), then
sends a minimal prompt to every remote backend in the catalogue through the
same LangChain backend the orchestrator uses, retrying failed checks. Run
this before deploying to avoid discovering an expired key from the local
fallback kicking in.

Usage:
    python scripts/check_env.py
    # or from project root:
    python -m scripts.check_env
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Project root = parent of scripts/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.backends.catalog import default_backends  # noqa: E402
from src.backends.langchain_backend import LangChainBackend  # noqa: E402
from src.config import get_settings  # noqa: E402
from src.errors import ModelUnavailableError  # noqa: E402
from src.models import Provider  # noqa: E402
from src.resilience.retry import with_retry  # noqa: E402

ENV_FILE = PROJECT_ROOT / ".env"


def mask(value: str) -> str:
    """Mask key for display."""
    if not value or len(value) < 8:
        return "(not set)" if not value else "(too short)"
    return f"{value[:6]}...{value[-4:]}"


async def main() -> int:
    print("Loading .env from", ENV_FILE)
    settings = get_settings()
    llm = settings.llm
    keys = {
        Provider.GEMINI: ("GEMINI_API_KEY", llm.gemini_api_key),
        Provider.OPENAI: ("OPENAI_API_KEY", llm.openai_api_key),
        Provider.ANTHROPIC: ("ANTHROPIC_API_KEY", llm.anthropic_api_key),
    }
    for name, value in keys.values():
        if not value.strip():
            print(f"  [SKIP] {name} not set")
    print()

    backend = LangChainBackend(settings)
    res = settings.resilience
    remotes = [d for d in default_backends(settings) if not d.is_local]
    if not remotes:
        print("No provider keys configured; only the local fallback will answer.")
        return 1

    failed = 0
    for d in remotes:
        env_name, value = keys[d.provider]
        try:
            await with_retry(
                lambda: backend.generate(d, "Say OK"),
                res.retry_max_retries,
                res.retry_base_delay,
                res.retry_max_delay,
                retry_on=ModelUnavailableError,
            )
            ok, msg = True, "OK"
        except ModelUnavailableError as e:
            ok, msg = False, f"{e.reason.value}: {e.message[:200]}"
        status = "[OK]  " if ok else "[FAIL]"
        if not ok:
            failed += 1
        print(f"  {status} {d.display_name} ({d.model})")
        print(f"         Key: {env_name} {mask(value)}")
        if not ok:
            print(f"         → {msg}")
        print()

    if failed:
        print("Fix the failing keys above (e.g. create new keys, enable APIs).")
        return 1
    print("All configured keys are valid.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

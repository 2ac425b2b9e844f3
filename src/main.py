"""
AI assistant core: command-line entry point.

Usage:
    python -m src.main ask "What services do you offer?" --context services
    python -m src.main ask "Bonjour, comment vous contacter ?" --context contact --locale fr
    python -m src.main ask "Hello" --model gemini-1.5-flash
    python -m src.main status
"""

from __future__ import annotations

# Load .env before any other imports so no third-party lib can capture stale env keys
import src.config  # noqa: F401, E402  ensure load_dotenv runs first

import argparse
import asyncio
import json

import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from src.config import get_settings
from src.handlers import handle_assistant, handle_status
from src.observability import configure_logging
from src.observability import metrics as obs_metrics
from src.orchestrator import ResponseOrchestrator
from src.resilience.rate_limiter import FixedWindowRateLimiter
from src.scheduler import QuotaResetScheduler

_CUSTOM_THEME = Theme({
    "status.healthy":  "bold #16a34a",
    "status.degraded": "bold #f59e0b",
    "status.critical": "bold #dc2626",
    "primary":         "#ea580c",
    "muted":           "#64748b",
})

console = Console(theme=_CUSTOM_THEME, highlight=False)
logger = structlog.get_logger()


def _assistant_limiter() -> FixedWindowRateLimiter:
    limits = get_settings().rate_limits
    return FixedWindowRateLimiter(limits.assistant_max_requests, limits.assistant_window)


def _api_limiter() -> FixedWindowRateLimiter:
    limits = get_settings().rate_limits
    return FixedWindowRateLimiter(limits.api_max_requests, limits.api_window)


def _fmt_quota(limit: float | None) -> str:
    return "∞" if limit is None or limit == float("inf") else f"{limit:,.0f}"


async def run_ask(prompt: str, context: str | None, model: str | None, locale: str) -> int:
    orchestrator = ResponseOrchestrator.from_settings()
    scheduler = QuotaResetScheduler(orchestrator.registry, get_settings().resilience.quota_check_interval)
    scheduler.start()
    try:
        result = await handle_assistant(
            orchestrator,
            {"message": prompt, "context": context, "locale": locale, "preferred_model": model},
            client_id="cli",
            limiter=_assistant_limiter(),
        )
    finally:
        await scheduler.stop()

    if result.status_code != 200:
        console.print(Panel(json.dumps(result.body, indent=2), title=f"[bold red]{result.status_code}"))
        return 1
    body = result.body
    console.print(Panel(body["response"], title=f"[primary]{body['model']}", border_style="#ea580c"))
    console.print(
        f"[muted]tokens={body['tokens_used']}  cost=${body['cost']:.6f}  "
        f"time={body['response_time_ms']:.0f}ms[/muted]"
    )
    return 0


def run_status() -> int:
    orchestrator = ResponseOrchestrator.from_settings()
    result = handle_status(orchestrator, client_id="cli", limiter=_api_limiter())
    if result.status_code != 200:
        console.print(Panel(json.dumps(result.body, indent=2), title=f"[bold red]{result.status_code}"))
        return 1
    report = result.body
    status = report["system_status"]
    table = Table(title="AI backends", header_style="bold")
    for col in ("id", "name", "provider", "priority", "available", "quota", "breaker", "last error"):
        table.add_column(col)
    for m in report["models"]:
        table.add_row(
            m["id"],
            m["name"],
            m["provider"],
            str(m["priority"]),
            "yes" if m["is_available"] else "[red]no[/red]",
            f"{m['quota_used']:,} / {_fmt_quota(m['quota_limit'])} ({m['quota_percentage']:.1f}%)",
            m["breaker_state"],
            m.get("last_error") or "",
        )
    console.print(table)
    summary = report["summary"]
    console.print(
        f"System: [status.{status}]{status.upper()}[/status.{status}]  "
        f"health={report['health_percentage']:.0f}%  primary={summary['primary_model']}  "
        f"avg quota={summary['average_quota_usage']:.1f}%"
    )
    return 0


async def run_metrics_server() -> int:
    settings = get_settings()
    if not obs_metrics.start_server(settings.observability.metrics_port):
        console.print("[bold red]Set PROMETHEUS_METRICS_ENABLED=true to expose metrics[/bold red]")
        return 1
    orchestrator = ResponseOrchestrator.from_settings()
    scheduler = QuotaResetScheduler(orchestrator.registry, settings.resilience.quota_check_interval)
    scheduler.start()
    logger.info("metrics_server_started", port=settings.observability.metrics_port)
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Portfolio AI assistant")
    sub = parser.add_subparsers(dest="command")

    ask = sub.add_parser("ask", help="Ask the assistant a question")
    ask.add_argument("prompt", help="User message")
    ask.add_argument("--context", help="Page context (home, services, projects, contact, ...)")
    ask.add_argument("--model", help="Preferred backend id")
    ask.add_argument("--locale", default="en", choices=("en", "fr"), help="Response locale")

    sub.add_parser("status", help="Show backend status and system health")

    sub.add_parser("serve-metrics", help="Expose Prometheus /metrics and run quota resets")

    args = parser.parse_args()
    settings = get_settings()
    configure_logging(settings.observability.environment, settings.observability.log_level)

    if args.command == "ask":
        return asyncio.run(run_ask(args.prompt, args.context, args.model, args.locale))
    if args.command == "status":
        return run_status()
    if args.command == "serve-metrics":
        return asyncio.run(run_metrics_server())
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

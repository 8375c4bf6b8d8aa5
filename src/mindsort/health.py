"""
Health check module for Mindsort.

Reports system status across all components.
"""

import os
from typing import Any

from mindsort.classifier import API_KEY_ENV
from mindsort.config import get_db_path, load_config
from mindsort.db import Database
from mindsort.errors import PersistenceError


def check_database(db: Database | None = None) -> tuple[str, str]:
    """Check database status."""
    if db is None:
        if not get_db_path().exists():
            return "✗", "Not found"
        try:
            db = Database()
        except PersistenceError as e:
            return "✗", f"Error: {e}"

    try:
        stats = db.get_stats()
        return "✓", f"OK ({stats['total_chunks']} chunks)"
    except PersistenceError as e:
        return "✗", f"Error: {e}"


def check_classifier(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Check classifier (API key) status."""
    config = config or load_config()
    llm_config = config.get("llm", {})
    provider = llm_config.get("provider", "openrouter")

    if provider not in API_KEY_ENV:
        return "✗", f"Unknown provider: {provider}"

    api_key = llm_config.get(f"{provider}_api_key") or any(
        os.environ.get(name) for name in API_KEY_ENV[provider]
    )
    if not api_key:
        return "✗", "No API key"
    return "✓", f"OK ({provider})"


def check_billing(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Check usage reporting status."""
    config = config or load_config()
    api_key = (
        config.get("billing", {}).get("api_key")
        or os.environ.get("DODO_API_KEY")
        or os.environ.get("DODO_PAYMENTS_API_KEY")
    )
    if not api_key:
        return "-", "Not configured (usage not reported)"
    return "✓", "OK"


def check_api_tokens(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Check that the HTTP API has at least one user."""
    config = config or load_config()
    tokens = config.get("auth", {}).get("tokens", {})
    if not tokens:
        return "!", "No API tokens (all requests will be rejected)"
    return "✓", f"OK ({len(tokens)} tokens)"


def check_telegram(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Check Telegram bot status."""
    config = config or load_config()
    tg_config = config.get("telegram", {})

    token = tg_config.get("token") or os.environ.get("MINDSORT_TELEGRAM_TOKEN")
    if not token:
        return "-", "Not configured"

    users = tg_config.get("authorized_users", [])
    if not users:
        env_users = os.environ.get("MINDSORT_TELEGRAM_USERS", "")
        if env_users:
            users = [u.strip() for u in env_users.split(",") if u.strip()]

    if not users:
        return "!", "No authorized users"

    return "✓", f"OK ({len(users)} users)"


def run_health_check(config: dict[str, Any] | None = None) -> dict[str, tuple[str, str]]:
    """Run all health checks."""
    config = config or load_config()
    return {
        "Database": check_database(),
        "Classifier": check_classifier(config),
        "Billing": check_billing(config),
        "API": check_api_tokens(config),
        "Telegram": check_telegram(config),
    }


def format_health_report(checks: dict[str, tuple[str, str]]) -> str:
    """Format health check results."""
    lines = ["Mindsort Health Check", "-" * 40]

    for name, (status, message) in checks.items():
        lines.append(f"{status} {name}: {message}")

    return "\n".join(lines)

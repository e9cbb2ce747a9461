"""
Session store factory.

Single source of truth for adapter selection: ``Settings.session_provider``.
"""

from __future__ import annotations

from lodge_portal.auth.memory_session import InMemorySessionStore
from lodge_portal.auth.session_store import SessionStore
from lodge_portal.auth.supabase_session import SupabaseSessionStore
from lodge_portal.config import ProviderType, Settings, get_settings
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


def get_session_store(settings: Settings | None = None) -> SessionStore:
    """Create the session store selected by configuration."""
    cfg = settings or get_settings()

    logger.info(
        "Session store resolved",
        extra={
            "provider": cfg.session_provider.value,
            "auth_url": cfg.auth_url,
            "anon_key": _mask(cfg.supabase_anon_key),
        },
    )

    if cfg.session_provider == ProviderType.SUPABASE:
        return SupabaseSessionStore(cfg)

    if cfg.session_provider == ProviderType.MEMORY:
        return InMemorySessionStore()

    raise ValueError(f"Unsupported session provider: {cfg.session_provider}")

"""
Data store factory.
"""

from __future__ import annotations

from collections.abc import Callable

from lodge_portal.config import ProviderType, Settings, get_settings
from lodge_portal.shared.logging import get_logger
from lodge_portal.store.interface import DataStore
from lodge_portal.store.memory import InMemoryDataStore
from lodge_portal.store.postgrest import PostgrestDataStore

logger = get_logger(__name__)


def get_data_store(
    settings: Settings | None = None,
    token_provider: Callable[[], str | None] | None = None,
    api_key: str | None = None,
) -> DataStore:
    """Create the data store selected by ``Settings.data_store_provider``.

    ``api_key`` overrides the anon key; the privileged endpoint passes the
    service role key.
    """
    settings = settings or get_settings()

    logger.info(
        "Data store resolved",
        extra={"provider": settings.data_store_provider.value, "rest_url": settings.rest_url},
    )

    if settings.data_store_provider == ProviderType.SUPABASE:
        return PostgrestDataStore(settings, api_key=api_key, token_provider=token_provider)

    if settings.data_store_provider == ProviderType.MEMORY:
        return InMemoryDataStore()

    raise ValueError(f"Unsupported data store provider: {settings.data_store_provider}")

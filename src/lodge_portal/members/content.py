"""
Lodge content reads: site settings, events, news, documents and minutes.

Rows are returned as plain dicts; their schemas belong to the CMS.
"""

from __future__ import annotations

from datetime import datetime, timezone

from lodge_portal.members.api import run_store_call
from lodge_portal.shared.exceptions import ValidationError
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.interface import DataStore, Row, eq, gt

logger = get_logger(__name__)

SITE_SETTINGS_TABLE = "site_settings"
EVENTS_TABLE = "events"
BLOG_POSTS_TABLE = "blog_posts"
DOCUMENTS_TABLE = "lodge_documents"
MINUTES_TABLE = "meeting_minutes"


class ContentApi:
    """Read side of the lodge CMS tables, plus site settings writes."""

    def __init__(self, store: DataStore, policy: TimeoutPolicy | None = None) -> None:
        self._store = store
        self._policy = policy or TimeoutPolicy.from_settings()

    async def get_site_settings(self) -> dict[str, str]:
        """All site settings as a ``setting_key -> setting_value`` map."""
        rows = await run_store_call(
            "Load site settings",
            self._store.select(SITE_SETTINGS_TABLE, columns="setting_key,setting_value"),
            self._policy.quick_read,
        )
        return {row["setting_key"]: row.get("setting_value") for row in rows}

    async def update_site_setting(self, key: str, value: str) -> Row:
        """Set one site setting, creating it if it does not exist."""
        if not (key or "").strip():
            raise ValidationError("Setting key is required", field="setting_key")

        now = datetime.now(timezone.utc).isoformat()
        rows = await run_store_call(
            "Update site setting",
            self._store.update(
                SITE_SETTINGS_TABLE,
                {"setting_value": value, "updated_at": now},
                filters=[eq("setting_key", key)],
            ),
            self._policy.write,
        )
        if not rows:
            rows = await run_store_call(
                "Update site setting",
                self._store.insert(SITE_SETTINGS_TABLE, [{"setting_key": key, "setting_value": value}]),
                self._policy.write,
            )
        logger.info("Site setting saved", extra={"setting_key": key})
        return rows[0]

    async def list_events(self) -> list[Row]:
        return await run_store_call(
            "Load events",
            self._store.select(EVENTS_TABLE, order_by="event_date"),
            self._policy.quick_read,
        )

    async def get_next_upcoming_event(self, now: datetime | None = None) -> Row | None:
        moment = (now or datetime.now(timezone.utc)).isoformat()
        rows = await run_store_call(
            "Load next event",
            self._store.select(
                EVENTS_TABLE,
                filters=[gt("event_date", moment)],
                order_by="event_date",
                limit=1,
            ),
            self._policy.quick_read,
        )
        return rows[0] if rows else None

    async def list_blog_posts(self, category: str | None = None) -> list[Row]:
        """Published posts, newest first, optionally in one category."""
        filters = [eq("is_published", True)]
        if category:
            filters.append(eq("category", category))
        return await run_store_call(
            "Load blog posts",
            self._store.select(
                BLOG_POSTS_TABLE,
                filters=filters,
                order_by="publish_date",
                descending=True,
            ),
            self._policy.quick_read,
        )

    async def list_documents(self) -> list[Row]:
        return await run_store_call(
            "Load documents",
            self._store.select(DOCUMENTS_TABLE, order_by="created_at", descending=True),
            self._policy.quick_read,
        )

    async def list_meeting_minutes(self) -> list[Row]:
        return await run_store_call(
            "Load meeting minutes",
            self._store.select(MINUTES_TABLE, order_by="meeting_date", descending=True),
            self._policy.quick_read,
        )

"""Tests for lodge content reads and site settings."""

from datetime import datetime, timezone

import pytest

from lodge_portal.members.content import ContentApi
from lodge_portal.shared.exceptions import ServerError, ValidationError
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.memory import InMemoryDataStore


@pytest.fixture
def content_store() -> InMemoryDataStore:
    return InMemoryDataStore(
        {
            "site_settings": [
                {"setting_key": "lodge_name", "setting_value": "Harodim Lodge No. 123"},
                {"setting_key": "meeting_place", "setting_value": "Masonic Hall"},
            ],
            "events": [
                {"id": "e1", "title": "Installation", "event_date": "2026-03-14T18:00:00+00:00"},
                {"id": "e2", "title": "Ladies Night", "event_date": "2025-12-06T19:00:00+00:00"},
                {"id": "e3", "title": "Regular Meeting", "event_date": "2026-01-10T18:30:00+00:00"},
            ],
            "blog_posts": [
                {"id": "b1", "title": "Charity", "category": "news", "is_published": True,
                 "publish_date": "2025-10-01"},
                {"id": "b2", "title": "Draft", "category": "news", "is_published": False,
                 "publish_date": "2025-11-01"},
                {"id": "b3", "title": "History", "category": "history", "is_published": True,
                 "publish_date": "2025-11-05"},
            ],
            "meeting_minutes": [
                {"id": "m1", "meeting_date": "2025-09-12"},
                {"id": "m2", "meeting_date": "2025-10-10"},
            ],
        }
    )


@pytest.fixture
def content(content_store: InMemoryDataStore, policy: TimeoutPolicy) -> ContentApi:
    return ContentApi(content_store, policy)


@pytest.mark.asyncio
async def test_site_settings_as_mapping(content: ContentApi) -> None:
    settings = await content.get_site_settings()
    assert settings == {
        "lodge_name": "Harodim Lodge No. 123",
        "meeting_place": "Masonic Hall",
    }


@pytest.mark.asyncio
async def test_update_existing_setting(content: ContentApi, content_store: InMemoryDataStore) -> None:
    await content.update_site_setting("meeting_place", "Freemasons' Hall")
    rows = {r["setting_key"]: r["setting_value"] for r in content_store.rows("site_settings")}
    assert rows["meeting_place"] == "Freemasons' Hall"
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_update_missing_setting_inserts(content: ContentApi, content_store: InMemoryDataStore) -> None:
    row = await content.update_site_setting("contact_email", "secretary@lodge.test")
    assert row["setting_key"] == "contact_email"
    assert len(content_store.rows("site_settings")) == 3


@pytest.mark.asyncio
async def test_setting_key_required(content: ContentApi, content_store: InMemoryDataStore) -> None:
    with pytest.raises(ValidationError, match="Setting key is required"):
        await content.update_site_setting(" ", "value")
    assert content_store.calls == []


@pytest.mark.asyncio
async def test_events_in_date_order(content: ContentApi) -> None:
    events = await content.list_events()
    assert [e["id"] for e in events] == ["e2", "e3", "e1"]


@pytest.mark.asyncio
async def test_next_upcoming_event(content: ContentApi) -> None:
    now = datetime(2025, 12, 25, tzinfo=timezone.utc)
    event = await content.get_next_upcoming_event(now)
    assert event is not None
    assert event["title"] == "Regular Meeting"


@pytest.mark.asyncio
async def test_no_upcoming_event(content: ContentApi) -> None:
    assert await content.get_next_upcoming_event(datetime(2027, 1, 1, tzinfo=timezone.utc)) is None


@pytest.mark.asyncio
async def test_blog_posts_published_newest_first(content: ContentApi) -> None:
    posts = await content.list_blog_posts()
    assert [p["id"] for p in posts] == ["b3", "b1"]


@pytest.mark.asyncio
async def test_blog_posts_by_category(content: ContentApi) -> None:
    posts = await content.list_blog_posts("news")
    assert [p["id"] for p in posts] == ["b1"]


@pytest.mark.asyncio
async def test_minutes_newest_first(content: ContentApi) -> None:
    minutes = await content.list_meeting_minutes()
    assert [m["id"] for m in minutes] == ["m2", "m1"]


@pytest.mark.asyncio
async def test_empty_documents(content: ContentApi) -> None:
    assert await content.list_documents() == []


@pytest.mark.asyncio
async def test_store_error_normalised(content: ContentApi, content_store: InMemoryDataStore) -> None:
    content_store.fail_next("select", 'relation "public.events" does not exist')
    with pytest.raises(ServerError) as exc_info:
        await content.list_events()
    assert exc_info.value.message == 'Load events failed: relation "public.events" does not exist'

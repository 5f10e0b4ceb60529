from datetime import datetime, timedelta, timezone

import pytest

from models import ChannelRecord, VideoRecord

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_video():
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> VideoRecord:
        n = next(counter)
        fields = {
            "id": f"vid{n}",
            "title": f"Video {n}",
            "published_at": NOW - timedelta(days=n),
            "channel_id": "UC_CHANNEL",
            "channel_title": "Channel",
            "view_count": 100,
            "like_count": 10,
            "comment_count": 1,
            "duration": "PT10M",
        }
        fields.update(overrides)
        return VideoRecord(**fields)

    return _make


@pytest.fixture
def make_channel():
    def _make(channel_id: str, **overrides) -> ChannelRecord:
        fields = {
            "id": channel_id,
            "title": f"Channel {channel_id}",
            "subscriber_count": 1000,
            "published_at": NOW - timedelta(days=30),
        }
        fields.update(overrides)
        return ChannelRecord(**fields)

    return _make

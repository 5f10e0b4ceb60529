from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from errors import GatewayError, ResponseDecodeError
from youtube_api import YouTubeGateway, channel_from_item, validate_api_key, video_from_item

VIDEO_ITEM = {
    "id": "vid1",
    "snippet": {
        "title": "Retro console restoration",
        "description": "Cleaning a yellowed console",
        "publishedAt": "2026-05-01T10:00:00Z",
        "channelId": "UC1",
        "channelTitle": "Retro Lab",
        "tags": ["retro", "restoration"],
        "thumbnails": {"medium": {"url": "https://i.ytimg.com/vi/vid1/mqdefault.jpg"}},
    },
    "statistics": {"viewCount": "12000", "likeCount": "800", "commentCount": "45"},
    "contentDetails": {"duration": "PT14M2S"},
}

CHANNEL_ITEM = {
    "id": "UC1",
    "snippet": {
        "title": "Retro Lab",
        "description": "Old hardware, new life",
        "publishedAt": "2026-03-01T00:00:00Z",
        "country": "US",
        "thumbnails": {"high": {"url": "https://yt3.ggpht.com/high.jpg"}},
    },
    "statistics": {"subscriberCount": "1500", "videoCount": "12", "viewCount": "90000"},
    "contentDetails": {"relatedPlaylists": {"uploads": "UU1"}},
}


def _http_error(status=403):
    resp = MagicMock(status=status, reason="Forbidden")
    return HttpError(resp, b'{"error": {"message": "quotaExceeded"}}')


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def gateway(client):
    return YouTubeGateway(client=client)


def test_video_from_item():
    video = video_from_item(VIDEO_ITEM)

    assert video.id == "vid1"
    assert video.view_count == 12000
    assert video.like_count == 800
    assert video.comment_count == 45
    assert video.duration == "PT14M2S"
    assert video.tags == ["retro", "restoration"]
    assert video.published_at == datetime(2026, 5, 1, 10, tzinfo=timezone.utc)
    assert video.thumbnail.endswith("mqdefault.jpg")


def test_video_from_item_defaults_missing_stats():
    item = {**VIDEO_ITEM, "statistics": {"viewCount": "5"}}
    item["snippet"] = {k: v for k, v in VIDEO_ITEM["snippet"].items() if k not in ("tags", "description")}
    video = video_from_item(item)

    assert video.like_count == 0
    assert video.comment_count == 0
    assert video.tags == []
    assert video.description == ""


def test_video_from_item_missing_required_field():
    item = {"id": "vid1", "snippet": {"title": "No date", "channelId": "UC1"}}
    with pytest.raises(ResponseDecodeError):
        video_from_item(item)


def test_channel_from_item():
    channel = channel_from_item(CHANNEL_ITEM)

    assert channel.subscriber_count == 1500
    assert channel.country == "US"
    assert channel.uploads_playlist_id == "UU1"
    assert channel.published_at == datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_channel_hidden_subscribers_default_to_zero():
    item = {**CHANNEL_ITEM, "statistics": {"hiddenSubscriberCount": True, "viewCount": "10"}}
    assert channel_from_item(item).subscriber_count == 0


def test_channel_from_item_missing_title():
    with pytest.raises(ResponseDecodeError):
        channel_from_item({"id": "UC1", "snippet": {}})


def test_search_channel_by_name(gateway, client):
    client.search.return_value.list.return_value.execute.return_value = {
        "items": [{"id": {"channelId": "UC1"}, "snippet": {"channelId": "UC1"}}]
    }
    client.channels.return_value.list.return_value.execute.return_value = {"items": [CHANNEL_ITEM]}

    channel = gateway.search_channel_by_name("retro lab")

    assert channel.id == "UC1"
    client.search.return_value.list.assert_called_once_with(
        part="snippet", q="retro lab", type="channel", maxResults=1
    )


def test_search_channel_by_name_no_match(gateway, client):
    client.search.return_value.list.return_value.execute.return_value = {"items": []}

    assert gateway.search_channel_by_name("nobody") is None
    client.channels.assert_not_called()


def test_get_channel_videos(gateway, client):
    client.channels.return_value.list.return_value.execute.return_value = {"items": [CHANNEL_ITEM]}
    client.playlistItems.return_value.list.return_value.execute.return_value = {
        "items": [{"contentDetails": {"videoId": "vid1"}}, {"contentDetails": {"videoId": "vid2"}}]
    }
    client.videos.return_value.list.return_value.execute.return_value = {"items": [VIDEO_ITEM]}

    videos = gateway.get_channel_videos("UC1", 50)

    assert [v.id for v in videos] == ["vid1"]
    client.videos.return_value.list.assert_called_once_with(
        part="snippet,statistics,contentDetails", id="vid1,vid2"
    )


def test_get_channel_videos_unknown_channel(gateway, client):
    client.channels.return_value.list.return_value.execute.return_value = {"items": []}
    assert gateway.get_channel_videos("UCX") == []


def test_get_video_details_empty_batch(gateway, client):
    assert gateway.get_video_details([]) == []
    client.videos.assert_not_called()


def test_search_video_hits_parameters(gateway, client):
    client.search.return_value.list.return_value.execute.return_value = {
        "items": [{"id": {"videoId": "vid1"}, "snippet": {"channelId": "UC1"}}]
    }
    published_after = datetime(2026, 4, 19, 12, tzinfo=timezone.utc)

    hits = gateway.search_video_hits(
        "retro gaming", region="KR", category_id="20",
        duration_class="medium", published_after=published_after,
    )

    assert hits == [{"video_id": "vid1", "channel_id": "UC1"}]
    client.search.return_value.list.assert_called_once_with(
        part="snippet", q="retro gaming", type="video", order="viewCount", maxResults=50,
        regionCode="KR", videoCategoryId="20", videoDuration="medium",
        publishedAfter="2026-04-19T12:00:00Z",
    )


def test_search_video_hits_global_has_no_region(gateway, client):
    client.search.return_value.list.return_value.execute.return_value = {"items": []}
    gateway.search_video_hits("retro gaming", region="Global")

    kwargs = client.search.return_value.list.call_args.kwargs
    assert "regionCode" not in kwargs
    assert "publishedAfter" not in kwargs


def test_search_videos_by_keyword_shorts_only(gateway, client):
    short = {**VIDEO_ITEM, "id": "short1", "contentDetails": {"duration": "PT40S"}}
    client.search.return_value.list.return_value.execute.return_value = {
        "items": [
            {"id": {"videoId": "vid1"}, "snippet": {"channelId": "UC1"}},
            {"id": {"videoId": "short1"}, "snippet": {"channelId": "UC1"}},
        ]
    }
    client.videos.return_value.list.return_value.execute.return_value = {"items": [VIDEO_ITEM, short]}

    videos = gateway.search_videos_by_keyword("retro", shorts_only=True)

    assert [v.id for v in videos] == ["short1"]
    assert client.search.return_value.list.call_args.kwargs["videoDuration"] == "short"


def test_get_video_categories(gateway, client):
    client.videoCategories.return_value.list.return_value.execute.return_value = {
        "items": [{"id": "20", "snippet": {"title": "Gaming"}}, {"id": "10", "snippet": {}}]
    }
    categories = gateway.get_video_categories("US")

    assert [(c.id, c.title) for c in categories] == [("20", "Gaming")]


def test_http_error_becomes_gateway_error(gateway, client):
    client.search.return_value.list.return_value.execute.side_effect = _http_error()

    with pytest.raises(GatewayError):
        gateway.search_channel_by_name("retro lab")


def test_validate_api_key():
    client = MagicMock()
    assert validate_api_key("key", client=client) is True

    client.videos.return_value.list.return_value.execute.side_effect = _http_error(400)
    assert validate_api_key("key", client=client) is False
    assert validate_api_key("") is False


def test_gateway_requires_key_or_client():
    with pytest.raises(ValueError):
        YouTubeGateway()

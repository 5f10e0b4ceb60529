import logging
from datetime import datetime, timezone

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import ValidationError

from errors import GatewayError, ResponseDecodeError
from models import ChannelRecord, VideoCategory, VideoRecord
from video_processing import is_short_form

logger = logging.getLogger(__name__)

MAX_RESULTS = 50

# videoDuration values accepted by search.list
DURATION_CLASSES = {
    "short-form": "short",
    "regular": "medium",
    "long-form": "medium",
}


def _build_client(api_key: str):
    return build("youtube", "v3", developerKey=api_key, cache_discovery=False)


def _execute(request, what: str) -> dict:
    logger.debug("YouTube API call: %s", what)
    try:
        return request.execute()
    except HttpError as e:
        logger.warning("YouTube API call failed (%s): %s", what, e)
        raise GatewayError(f"YouTube API request failed: {what}") from e
    except (OSError, httplib2.HttpLib2Error) as e:
        logger.warning("YouTube API unreachable (%s): %s", what, e)
        raise GatewayError(f"YouTube API unreachable: {what}") from e


def _thumbnail(snippet: dict, *sizes: str) -> str:
    thumbnails = snippet.get("thumbnails") or {}
    for size in sizes:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def _count(stats: dict, key: str) -> int:
    try:
        return max(0, int(stats.get(key, 0)))
    except (TypeError, ValueError):
        return 0


def video_from_item(item: dict) -> VideoRecord:
    """Decode a videos.list item (snippet, statistics, contentDetails)."""
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    details = item.get("contentDetails") or {}
    try:
        return VideoRecord(
            id=item["id"],
            title=snippet["title"],
            description=snippet.get("description") or "",
            thumbnail=_thumbnail(snippet, "medium", "high", "default"),
            published_at=snippet["publishedAt"],
            channel_id=snippet["channelId"],
            channel_title=snippet.get("channelTitle") or "",
            view_count=_count(stats, "viewCount"),
            like_count=_count(stats, "likeCount"),
            comment_count=_count(stats, "commentCount"),
            duration=details.get("duration") or "",
            tags=snippet.get("tags") or [],
        )
    except (KeyError, ValidationError) as e:
        raise ResponseDecodeError(f"Malformed video item {item.get('id')!r}: {e}") from e


def channel_from_item(item: dict) -> ChannelRecord:
    """Decode a channels.list item (snippet, statistics, optional contentDetails)."""
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    related = (item.get("contentDetails") or {}).get("relatedPlaylists") or {}
    try:
        return ChannelRecord(
            id=item["id"],
            title=snippet["title"],
            description=snippet.get("description") or "",
            thumbnail=_thumbnail(snippet, "high", "medium", "default"),
            subscriber_count=_count(stats, "subscriberCount"),
            video_count=_count(stats, "videoCount"),
            view_count=_count(stats, "viewCount"),
            country=snippet.get("country"),
            published_at=snippet.get("publishedAt"),
            uploads_playlist_id=related.get("uploads"),
        )
    except (KeyError, ValidationError) as e:
        raise ResponseDecodeError(f"Malformed channel item {item.get('id')!r}: {e}") from e


def validate_api_key(api_key: str, client=None) -> bool:
    """Cheap probe call; any failure means the key is unusable."""
    if not api_key:
        return False
    try:
        youtube = client or _build_client(api_key)
        youtube.videos().list(part="id", chart="mostPopular", maxResults=1).execute()
        return True
    except Exception as e:
        logger.info("YouTube API key rejected: %s", e)
        return False


class YouTubeGateway:
    """YouTube Data API v3 lookups, decoded into VideoRecord / ChannelRecord."""

    def __init__(self, api_key: str = "", client=None):
        if client is None and not api_key:
            raise ValueError("Either api_key or client must be provided")
        self.youtube = client or _build_client(api_key)

    def search_channel_by_name(self, query: str) -> ChannelRecord | None:
        response = _execute(
            self.youtube.search().list(part="snippet", q=query, type="channel", maxResults=1),
            f"search channel {query!r}",
        )
        items = response.get("items", [])
        if not items:
            return None

        channel_id = (items[0].get("id") or {}).get("channelId")
        if not channel_id:
            raise ResponseDecodeError(f"Malformed channel search hit: {items[0]!r}")
        return self.get_channel_details(channel_id)

    def get_channel_details(self, channel_id: str) -> ChannelRecord | None:
        response = _execute(
            self.youtube.channels().list(part="snippet,statistics,contentDetails", id=channel_id),
            f"channel {channel_id}",
        )
        items = response.get("items", [])
        if not items:
            return None
        return channel_from_item(items[0])

    def get_channels(self, channel_ids: list[str]) -> list[ChannelRecord]:
        """Fetch a batch of up to 50 channels in one request."""
        if not channel_ids:
            return []
        response = _execute(
            self.youtube.channels().list(part="snippet,statistics", id=",".join(channel_ids[:MAX_RESULTS])),
            f"{len(channel_ids)} channels",
        )
        return [channel_from_item(item) for item in response.get("items", [])]

    def get_channel_videos(self, channel_id: str, max_results: int = MAX_RESULTS) -> list[VideoRecord]:
        ch_resp = _execute(
            self.youtube.channels().list(part="contentDetails", id=channel_id),
            f"uploads playlist of {channel_id}",
        )
        items = ch_resp.get("items", [])
        if not items:
            return []

        try:
            uploads_id = items[0]["contentDetails"]["relatedPlaylists"]["uploads"]
        except KeyError as e:
            raise ResponseDecodeError(f"Channel {channel_id} has no uploads playlist") from e

        pl_resp = _execute(
            self.youtube.playlistItems().list(
                part="snippet,contentDetails",
                playlistId=uploads_id,
                maxResults=min(max_results, MAX_RESULTS),
            ),
            f"playlist {uploads_id}",
        )
        video_ids = [
            item["contentDetails"]["videoId"]
            for item in pl_resp.get("items", [])
            if (item.get("contentDetails") or {}).get("videoId")
        ]
        return self.get_video_details(video_ids)

    def get_video_details(self, video_ids: list[str]) -> list[VideoRecord]:
        """Fetch full records for an explicit batch of ids in a single request."""
        if not video_ids:
            return []
        response = _execute(
            self.youtube.videos().list(
                part="snippet,statistics,contentDetails",
                id=",".join(video_ids[:MAX_RESULTS]),
            ),
            f"{len(video_ids)} videos",
        )
        return [video_from_item(item) for item in response.get("items", [])]

    def get_video_categories(self, region: str = "KR", language: str = "en") -> list[VideoCategory]:
        response = _execute(
            self.youtube.videoCategories().list(part="snippet", regionCode=region, hl=language),
            f"categories for {region}",
        )
        return [
            VideoCategory(id=item["id"], title=item["snippet"]["title"])
            for item in response.get("items", [])
            if item.get("id") and (item.get("snippet") or {}).get("title")
        ]

    def search_video_hits(
        self,
        query: str,
        max_results: int = MAX_RESULTS,
        region: str = "Global",
        category_id: str = "",
        duration_class: str = "",
        published_after: datetime | None = None,
    ) -> list[dict]:
        """Raw search.list hits ordered by view count: [{"video_id", "channel_id"}, ...]."""
        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "order": "viewCount",
            "maxResults": min(max_results, MAX_RESULTS),
        }
        if region and region != "Global":
            params["regionCode"] = region
        if category_id:
            params["videoCategoryId"] = category_id
        if duration_class:
            params["videoDuration"] = duration_class
        if published_after is not None:
            if published_after.tzinfo is not None:
                published_after = published_after.astimezone(timezone.utc)
            params["publishedAfter"] = published_after.strftime("%Y-%m-%dT%H:%M:%SZ")

        response = _execute(self.youtube.search().list(**params), f"search videos {query!r}")

        hits = []
        for item in response.get("items", []):
            video_id = (item.get("id") or {}).get("videoId")
            channel_id = (item.get("snippet") or {}).get("channelId")
            if not video_id or not channel_id:
                raise ResponseDecodeError(f"Malformed search hit: {item!r}")
            hits.append({"video_id": video_id, "channel_id": channel_id})
        return hits

    def search_videos_by_keyword(
        self,
        query: str,
        max_results: int = MAX_RESULTS,
        region: str = "KR",
        shorts_only: bool = False,
        category_id: str = "",
    ) -> list[VideoRecord]:
        hits = self.search_video_hits(
            query,
            max_results=max_results,
            region=region,
            category_id=category_id,
            duration_class="short" if shorts_only else "",
        )
        videos = self.get_video_details([h["video_id"] for h in hits])

        if shorts_only:
            videos = [v for v in videos if is_short_form(v)]
        return videos

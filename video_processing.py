import math
import re
from collections import Counter
from typing import Iterable

from models import MarketStats, UploadCadence, VideoRecord

SHORT_FORM_MAX_SECONDS = 180

VIDEO_TYPES = ("all", "regular", "short-form")
SORT_KEYS = ("popularity", "views", "newest", "oldest")

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_duration(duration: str | None) -> int:
    """Convert an ISO 8601 duration like PT4M13S to seconds. Unparseable input gives 0."""
    match = _DURATION_RE.search(duration or "")
    if not match:
        return 0
    h, m, s = (int(x or 0) for x in match.groups())
    return h * 3600 + m * 60 + s


def is_short_form(video: VideoRecord) -> bool:
    return parse_duration(video.duration) < SHORT_FORM_MAX_SECONDS


def _share(count: int, max_count: int) -> float:
    return count / max_count if max_count else 0.0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def popularity_score(
    views: int,
    likes: int,
    comments: int,
    max_views: int,
    max_likes: int,
    max_comments: int,
) -> int:
    """
    Relative 0-100 score against the maxima of the current result set.
    Views weigh 50%, likes 30%, comments 20%.
    """
    score = (
        _share(views, max_views) * 50
        + _share(likes, max_likes) * 30
        + _share(comments, max_comments) * 20
    )
    return min(100, max(0, _round_half_up(score)))


def score_videos(videos: list[VideoRecord]) -> list[VideoRecord]:
    if not videos:
        return []

    max_views = max(v.view_count for v in videos)
    max_likes = max(v.like_count for v in videos)
    max_comments = max(v.comment_count for v in videos)

    return [
        v.model_copy(update={
            "popularity_score": popularity_score(
                v.view_count, v.like_count, v.comment_count,
                max_views, max_likes, max_comments,
            ),
        })
        for v in videos
    ]


def filter_videos(videos: Iterable[VideoRecord], video_type: str = "all") -> list[VideoRecord]:
    if video_type not in VIDEO_TYPES:
        raise ValueError(f"Unknown video type: {video_type!r}")
    if video_type == "short-form":
        return [v for v in videos if is_short_form(v)]
    if video_type == "regular":
        return [v for v in videos if not is_short_form(v)]
    return list(videos)


def sort_videos(videos: Iterable[VideoRecord], sort_key: str = "popularity") -> list[VideoRecord]:
    if sort_key == "popularity":
        return sorted(videos, key=lambda v: v.popularity_score or 0, reverse=True)
    if sort_key == "views":
        return sorted(videos, key=lambda v: v.view_count, reverse=True)
    if sort_key == "newest":
        return sorted(videos, key=lambda v: v.published_at, reverse=True)
    if sort_key == "oldest":
        return sorted(videos, key=lambda v: v.published_at)
    raise ValueError(f"Unknown sort key: {sort_key!r}")


def process_videos(
    videos: list[VideoRecord],
    video_type: str = "all",
    sort_key: str = "popularity",
    limit: int | None = None,
) -> list[VideoRecord]:
    """Score against the full collection, then filter, sort and truncate."""
    result = sort_videos(filter_videos(score_videos(videos), video_type), sort_key)
    if limit is not None:
        result = result[:limit]
    return result


def upload_cadence(videos: list[VideoRecord]) -> UploadCadence | None:
    if not videos:
        return None

    newest_first = sort_videos(videos, "newest")
    first, last = newest_first[-1].published_at, newest_first[0].published_at
    span = last - first

    if len(newest_first) > 1:
        average = span / (len(newest_first) - 1)
        recent = newest_first[0].published_at - newest_first[1].published_at
    else:
        average = recent = span

    return UploadCadence(
        first_upload=first,
        last_upload=last,
        average_interval=average,
        recent_interval=recent,
    )


def compute_market_stats(videos: list[VideoRecord]) -> MarketStats:
    views = sorted(v.view_count for v in videos)
    counts = Counter(v.channel_title for v in videos)

    return MarketStats(
        video_count=len(videos),
        mean_views=_round_half_up(sum(views) / len(views)) if views else 0,
        median_views=views[len(views) // 2] if views else 0,
        unique_channels=len(counts),
        top_channels=counts.most_common(5),
    )

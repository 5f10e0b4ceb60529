import logging
from datetime import datetime, timedelta, timezone

from models import RisingChannelResult
from youtube_api import DURATION_CLASSES, MAX_RESULTS

logger = logging.getLogger(__name__)

MAX_CANDIDATE_CHANNELS = 40

RECENCY_WINDOWS: dict[str, int | None] = {
    "3m": 90,
    "6m": 180,
    "1y": 365,
    "all": None,
}

# Search lookback used when the channel-age window is unbounded
_UNBOUNDED_SEARCH_DAYS = 365


def recency_cutoffs(period: str, now: datetime | None = None) -> tuple[datetime, datetime | None]:
    """
    Return (published_after, creation_cutoff) for a recency window.

    An unbounded window ("all") disables the channel-age filter but still keeps
    the video search within the last year.
    """
    if period not in RECENCY_WINDOWS:
        raise ValueError(f"Unknown recency window: {period!r}")

    now = now or datetime.now(timezone.utc)
    days = RECENCY_WINDOWS[period]
    if days is None:
        return now - timedelta(days=_UNBOUNDED_SEARCH_DAYS), None

    cutoff = now - timedelta(days=days)
    return cutoff, cutoff


def virality_score(views: int, subscribers: int) -> float:
    """Views generated per subscriber; zero-subscriber channels count as one."""
    return views / max(subscribers, 1)


def _representative_videos(hits: list[dict]) -> dict[str, str]:
    """First (highest-viewed) hit per channel, in search order, capped."""
    best: dict[str, str] = {}
    for hit in hits:
        if hit["channel_id"] in best:
            continue
        if len(best) >= MAX_CANDIDATE_CHANNELS:
            break
        best[hit["channel_id"]] = hit["video_id"]
    return best


def find_rising_channels(
    gateway,
    query: str,
    category_id: str = "",
    period: str = "1y",
    region: str = "KR",
    video_type: str = "all",
    now: datetime | None = None,
) -> list[RisingChannelResult]:
    """Rank recently created channels by how far their best recent video outran their audience."""
    published_after, creation_cutoff = recency_cutoffs(period, now)

    hits = gateway.search_video_hits(
        query,
        max_results=MAX_RESULTS,
        region=region,
        category_id=category_id,
        duration_class=DURATION_CLASSES.get(video_type, ""),
        published_after=published_after,
    )
    if not hits:
        return []

    best_videos = _representative_videos(hits)
    channels = gateway.get_channels(list(best_videos))
    if not channels:
        return []

    videos = {v.id: v for v in gateway.get_video_details(list(best_videos.values()))}

    results = []
    for channel in channels:
        if creation_cutoff is not None:
            if channel.published_at is None or channel.published_at < creation_cutoff:
                continue

        video = videos.get(best_videos.get(channel.id, ""))
        if video is None:
            logger.debug("Skipping %s: representative video not resolved", channel.id)
            continue

        results.append(RisingChannelResult(
            channel=channel,
            top_video=video,
            top_video_views=video.view_count,
            score=virality_score(video.view_count, channel.subscriber_count),
        ))

    logger.info("Rising channels for %r: %d of %d candidates", query, len(results), len(best_videos))
    return sorted(results, key=lambda r: r.score, reverse=True)

import logging
import threading
from datetime import datetime
from typing import Callable

from ai_analyzer import AIGateway
from config import Credentials
from errors import AIGenerationError, ChannelNotFoundError
from models import ChannelAnalysisResult, KeywordAnalysisResult, OpportunityResult
from rising_channels import find_rising_channels
from video_processing import compute_market_stats
from youtube_api import MAX_RESULTS, YouTubeGateway

logger = logging.getLogger(__name__)


def youtube_gateway(credentials: Credentials) -> YouTubeGateway:
    return YouTubeGateway(credentials.require_youtube())


def ai_gateway(credentials: Credentials) -> AIGateway:
    return AIGateway(credentials.require_openai())


class RequestTracker:
    """
    Monotonic request tokens per workflow name.

    A workflow takes a token when it starts and checks ``is_current`` when it
    finishes; a newer request for the same workflow makes older results stale.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: dict[str, int] = {}

    def issue(self, workflow: str) -> int:
        with self._lock:
            token = self._latest.get(workflow, 0) + 1
            self._latest[workflow] = token
            return token

    def is_current(self, workflow: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(workflow) == token


def run_channel_analysis(
    credentials: Credentials,
    query: str,
    with_ai: bool = True,
    max_videos: int = MAX_RESULTS,
    make_youtube: Callable[[Credentials], YouTubeGateway] = youtube_gateway,
    make_ai: Callable[[Credentials], AIGateway] = ai_gateway,
) -> ChannelAnalysisResult:
    youtube = make_youtube(credentials)
    ai = make_ai(credentials) if with_ai else None

    channel = youtube.search_channel_by_name(query)
    if channel is None:
        raise ChannelNotFoundError(query)

    videos = youtube.get_channel_videos(channel.id, max_videos)
    result = ChannelAnalysisResult(channel=channel, videos=videos)

    if ai is not None:
        try:
            result.report = ai.analyze_channel_growth(channel, videos)
        except AIGenerationError as e:
            logger.warning("Channel report for %s unavailable: %s", channel.title, e)
            result.ai_error = str(e)
    return result


def run_keyword_analysis(
    credentials: Credentials,
    keyword: str,
    region: str = "KR",
    category_id: str = "",
    with_ai: bool = True,
    make_youtube: Callable[[Credentials], YouTubeGateway] = youtube_gateway,
    make_ai: Callable[[Credentials], AIGateway] = ai_gateway,
) -> KeywordAnalysisResult:
    youtube = make_youtube(credentials)
    ai = make_ai(credentials) if with_ai else None

    # Type filtering happens on the fetched set, so the search is not restricted
    videos = youtube.search_videos_by_keyword(
        keyword, MAX_RESULTS, region=region, shorts_only=False, category_id=category_id,
    )
    result = KeywordAnalysisResult(keyword=keyword, videos=videos)

    if ai is not None and videos:
        try:
            result.report = ai.analyze_keyword_market(keyword, videos)
        except AIGenerationError as e:
            logger.warning("Keyword report for %r unavailable: %s", keyword, e)
            result.ai_error = str(e)
    return result


def run_opportunity_finder(
    credentials: Credentials,
    topic: str,
    category_id: str = "",
    period: str = "1y",
    region: str = "KR",
    video_type: str = "all",
    with_ai: bool = True,
    now: datetime | None = None,
    make_youtube: Callable[[Credentials], YouTubeGateway] = youtube_gateway,
    make_ai: Callable[[Credentials], AIGateway] = ai_gateway,
) -> OpportunityResult:
    youtube = make_youtube(credentials)
    ai = make_ai(credentials) if with_ai else None

    channels = find_rising_channels(
        youtube, topic,
        category_id=category_id,
        period=period,
        region=region,
        video_type=video_type,
        now=now,
    )
    result = OpportunityResult(topic=topic, channels=channels)
    if not channels:
        return result

    top_videos = [c.top_video for c in channels]
    result.stats = compute_market_stats(top_videos)

    if ai is not None:
        try:
            result.report = ai.analyze_topic_opportunity(topic, top_videos, result.stats)
        except AIGenerationError as e:
            logger.warning("Opportunity report for %r unavailable: %s", topic, e)
            result.ai_error = str(e)
    return result

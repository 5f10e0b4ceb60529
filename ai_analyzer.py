import json
import logging

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from config import OPENAI_MODEL
from errors import AIGenerationError
from models import (
    ChannelGrowthReport,
    ChannelRecord,
    KeywordMarketReport,
    MarketStats,
    OpportunityReport,
    VideoRecord,
)
from video_processing import compute_market_stats, sort_videos

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are TubeMaster AI, a senior YouTube strategy consultant.

Base every recommendation on the data provided: recurring title patterns, video lengths,
upload timing, and which videos outperform the rest. Be concrete and actionable.
Generic advice such as "upload consistently" is not acceptable.

Respond in the same language as the channel or keyword being analyzed."""

SUMMARY_FAILED = "Summary generation failed."

MAX_CHANNEL_VIDEOS = 50
MAX_KEYWORD_VIDEOS = 20


def _string(description: str = "") -> dict:
    schema = {"type": "string"}
    if description:
        schema["description"] = description
    return schema


def _string_list(description: str = "") -> dict:
    schema = {"type": "array", "items": {"type": "string"}}
    if description:
        schema["description"] = description
    return schema


def _object(properties: dict) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _response_format(name: str, schema: dict) -> dict:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "schema": schema, "strict": True},
    }


_GROWTH_STAGE = _object({
    "period": _string("Period covered, e.g. 2023.01 ~ 2023.06"),
    "summary": _string("One-line performance summary"),
    "strategy": _string("Main strategy and concept"),
    "quantitative": _string("Quantitative performance analysis"),
    "content_depth": _string("Content and audience analysis"),
})

_DIAGNOSIS_ITEM = _object({"problem": _string(), "solution": _string()})

CHANNEL_REPORT_FORMAT = _response_format("channel_growth_report", _object({
    "summary": _string("Current state and core problems in three lines"),
    "growth_process": _object({
        "early": _GROWTH_STAGE,
        "mid": _GROWTH_STAGE,
        "latest": _GROWTH_STAGE,
    }),
    "diagnosis": _object({
        "content": _DIAGNOSIS_ITEM,
        "engagement": _DIAGNOSIS_ITEM,
        "monetization": _DIAGNOSIS_ITEM,
        "branding": _DIAGNOSIS_ITEM,
    }),
    "benchmarking": _object({
        "concept": _string("A new channel concept that could beat this channel"),
        "direction": _string("Content direction that creates an edge"),
        "detailed_operation": _string("Upload cadence, thumbnails, editing style"),
        "roadmap": _string_list("Three-month growth roadmap, one entry per month"),
        "titles": _string_list("Ten video title ideas"),
        "kpis": _string_list("Four key performance indicators"),
        "risks": _string("Risk management"),
        "revenue": _string("Revenue diversification"),
    }),
}))

KEYWORD_REPORT_FORMAT = _response_format("keyword_market_report", _object({
    "summary": _string("Market trend summary"),
    "market_analysis": _string("Leading channels and content in this market"),
    "strengths": _string_list("Success factors"),
    "weaknesses": _string_list("Gaps in the market"),
    "opportunities": _string_list("Opportunities"),
    "action_plan": _string_list("Winning strategy steps"),
}))

OPPORTUNITY_REPORT_FORMAT = _response_format("opportunity_report", _object({
    "type": {"type": "string", "enum": ["RED_OCEAN", "BLUE_OCEAN"]},
    "score": {"type": "integer", "description": "Opportunity score from 0 to 100"},
    "summary": _string("Market summary"),
    "reason": _string("Reasoning behind the verdict"),
    "view_distribution": _string("Are views concentrated in a few videos or spread out"),
    "channel_concentration": _string("Is the market dominated by a few channels"),
    "channel_activity": _string("How intense the competition is"),
    "strategy": _string("Differentiated entry strategy"),
    "keywords": _string_list("Recommended keywords"),
}))


def _channel_prompt(channel: ChannelRecord, videos: list[VideoRecord]) -> str:
    ordered = sort_videos(videos[:MAX_CHANNEL_VIDEOS], "oldest")
    lines = [
        f"[{v.published_at.date().isoformat()}] {v.title} "
        f"(Views: {v.view_count}, Likes: {v.like_count}, Duration: {v.duration})"
        for v in ordered
    ]
    return (
        "Write an expert consulting report for this YouTube channel.\n\n"
        "[Channel]\n"
        f"Name: {channel.title}\n"
        f"Subscribers: {channel.subscriber_count}\n"
        f"Total views: {channel.view_count}\n"
        f"Country: {channel.country or 'unknown'}\n\n"
        f"[Recent videos ({len(lines)})]\n"
        + "\n".join(lines)
        + "\n\nEvery item must be specific and include a practical solution."
    )


def _keyword_prompt(keyword: str, videos: list[VideoRecord]) -> str:
    lines = [
        f"Title: {v.title}, Channel: {v.channel_title}, Views: {v.view_count}, Duration: {v.duration}"
        for v in videos[:MAX_KEYWORD_VIDEOS]
    ]
    return (
        f"Analyze the YouTube market for the keyword '{keyword}'.\n\n"
        "[Top videos]\n" + "\n".join(lines)
    )


def _stats_summary(stats: MarketStats) -> str:
    top = ", ".join(f"{name} ({count})" for name, count in stats.top_channels)
    return (
        f"- Videos analyzed: {stats.video_count}\n"
        f"- Mean views: {stats.mean_views}\n"
        f"- Median views: {stats.median_views}\n"
        f"- Channels: {stats.unique_channels}\n"
        f"- Top 5 channels by video count: {top}"
    )


def _opportunity_prompt(topic: str, stats: MarketStats) -> str:
    return (
        f"Analyze the YouTube market opportunity for the topic '{topic}'.\n\n"
        "[Market statistics]\n"
        f"{_stats_summary(stats)}\n\n"
        "Assess three angles and then decide whether this is a red ocean or a blue ocean:\n"
        "1. View distribution: a few videos take everything vs. evenly spread\n"
        "2. Channel concentration: is there a monopoly\n"
        "3. Channel activity: how intense the competition is"
    )


def _video_prompt(video: VideoRecord) -> str:
    return (
        "Summarize and analyze this YouTube video from its metadata.\n\n"
        f"Title: {video.title}\n"
        f"Description: {video.description or 'none'}\n"
        f"Tags: {', '.join(video.tags)}\n"
        f"Views: {video.view_count}\n\n"
        "Answer in three lines:\n"
        "- Content: what the video is about\n"
        "- Analysis: why it is (or is not) popular\n"
        "- Benchmark: what to borrow from it\n"
        "Keep it short."
    )


def validate_openai_key(api_key: str, client=None) -> bool:
    """Cheap probe call; any failure means the key is unusable."""
    if not api_key:
        return False
    try:
        (client or OpenAI(api_key=api_key)).models.list()
        return True
    except OpenAIError as e:
        logger.info("OpenAI API key rejected: %s", e)
        return False


class AIGateway:
    """Structured strategy reports generated through OpenAI chat completions."""

    def __init__(self, api_key: str = "", client=None, model: str = OPENAI_MODEL):
        if client is None and not api_key:
            raise ValueError("Either api_key or client must be provided")
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def _complete(self, prompt: str, response_format: dict | None = None, temperature: float = 0.3) -> str:
        kwargs = {}
        if response_format is not None:
            kwargs["response_format"] = response_format
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                **kwargs,
            )
        except OpenAIError as e:
            logger.warning("OpenAI request failed: %s", e)
            raise AIGenerationError("AI report generation failed") from e

        content = response.choices[0].message.content
        if not content:
            raise AIGenerationError("AI returned an empty response")
        return content

    def _structured(self, prompt: str, response_format: dict, model: type[BaseModel]):
        content = self._complete(prompt, response_format)
        try:
            return model.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unusable %s from AI: %s", model.__name__, e)
            raise AIGenerationError(f"AI returned an invalid {model.__name__}") from e

    def analyze_channel_growth(self, channel: ChannelRecord, videos: list[VideoRecord]) -> ChannelGrowthReport:
        return self._structured(_channel_prompt(channel, videos), CHANNEL_REPORT_FORMAT, ChannelGrowthReport)

    def analyze_keyword_market(self, keyword: str, videos: list[VideoRecord]) -> KeywordMarketReport:
        return self._structured(_keyword_prompt(keyword, videos), KEYWORD_REPORT_FORMAT, KeywordMarketReport)

    def analyze_topic_opportunity(
        self,
        topic: str,
        videos: list[VideoRecord],
        stats: MarketStats | None = None,
    ) -> OpportunityReport:
        stats = stats or compute_market_stats(videos)
        return self._structured(_opportunity_prompt(topic, stats), OPPORTUNITY_REPORT_FORMAT, OpportunityReport)

    def summarize_video(self, video: VideoRecord) -> str:
        try:
            return self._complete(_video_prompt(video)).strip()
        except AIGenerationError:
            return SUMMARY_FAILED

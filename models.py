from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VideoRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    published_at: datetime
    channel_id: str
    channel_title: str = ""
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    duration: str = ""
    tags: list[str] = []
    popularity_score: int | None = Field(default=None, ge=0, le=100)


class ChannelRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    subscriber_count: int = Field(default=0, ge=0)
    video_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    country: str | None = None
    published_at: datetime | None = None
    uploads_playlist_id: str | None = None


class VideoCategory(BaseModel):
    id: str
    title: str


class RisingChannelResult(BaseModel):
    channel: ChannelRecord
    top_video: VideoRecord
    top_video_views: int
    score: float


# AI report structures. Field names double as the JSON schema sent to the model.

class GrowthStage(BaseModel):
    period: str
    summary: str
    strategy: str
    quantitative: str
    content_depth: str


class GrowthProcess(BaseModel):
    early: GrowthStage
    mid: GrowthStage
    latest: GrowthStage


class DiagnosisItem(BaseModel):
    problem: str
    solution: str


class Diagnosis(BaseModel):
    content: DiagnosisItem
    engagement: DiagnosisItem
    monetization: DiagnosisItem
    branding: DiagnosisItem


class Benchmarking(BaseModel):
    concept: str
    direction: str
    detailed_operation: str
    roadmap: list[str] = []
    titles: list[str] = []
    kpis: list[str] = []
    risks: str
    revenue: str


class ChannelGrowthReport(BaseModel):
    summary: str
    growth_process: GrowthProcess
    diagnosis: Diagnosis
    benchmarking: Benchmarking


class KeywordMarketReport(BaseModel):
    summary: str
    market_analysis: str
    strengths: list[str] = []
    weaknesses: list[str] = []
    opportunities: list[str] = []
    action_plan: list[str] = []


class OpportunityReport(BaseModel):
    type: Literal["RED_OCEAN", "BLUE_OCEAN"]
    score: int = Field(ge=0, le=100)
    summary: str
    reason: str
    strategy: str
    keywords: list[str] = []
    view_distribution: str | None = None
    channel_concentration: str | None = None
    channel_activity: str | None = None


class MarketStats(BaseModel):
    video_count: int
    mean_views: int
    median_views: int
    unique_channels: int
    top_channels: list[tuple[str, int]] = []


class UploadCadence(BaseModel):
    first_upload: datetime
    last_upload: datetime
    average_interval: timedelta
    recent_interval: timedelta


class ChannelAnalysisResult(BaseModel):
    channel: ChannelRecord
    videos: list[VideoRecord] = []
    report: ChannelGrowthReport | None = None
    ai_error: str | None = None


class KeywordAnalysisResult(BaseModel):
    keyword: str
    videos: list[VideoRecord] = []
    report: KeywordMarketReport | None = None
    ai_error: str | None = None


class OpportunityResult(BaseModel):
    topic: str
    channels: list[RisingChannelResult] = []
    stats: MarketStats | None = None
    report: OpportunityReport | None = None
    ai_error: str | None = None

import csv
import io
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from formatters import format_number
from models import (
    ChannelGrowthReport,
    KeywordMarketReport,
    OpportunityReport,
    RisingChannelResult,
)

BOM = "\ufeff"
RULE = "=" * 80

_STAGE_LABELS = (("early", "Early stage"), ("mid", "Middle stage"), ("latest", "Latest stage"))
_DIAGNOSIS_LABELS = (
    ("content", "Content"),
    ("engagement", "Audience engagement"),
    ("monetization", "Monetization"),
    ("branding", "Branding"),
)


def _plain(record: Any) -> dict:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    return dict(record)


def _cell(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return value


def to_csv(records: list) -> str:
    """Header from the first record's fields, then one fully quoted row per record."""
    if not records:
        return ""
    rows = [_plain(r) for r in records]
    fields = list(rows[0].keys())

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell(row.get(f)) for f in fields])

    body = output.getvalue().removesuffix("\n")
    return BOM + ",".join(fields) + "\n" + body


def to_json(data: Any) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    return json.dumps(data, ensure_ascii=False, indent=2)


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _section(number: int, title: str) -> str:
    return f"{RULE}\n{number}. {title}\n{RULE}"


def _timestamp(generated_at: datetime | None) -> str:
    return (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def channel_report_to_text(
    report: ChannelGrowthReport,
    channel_name: str,
    generated_at: datetime | None = None,
) -> str:
    parts = [
        "[TubeStrategy AI Consulting Report]",
        f"Channel: {channel_name}",
        f"Generated: {_timestamp(generated_at)}",
        "",
        _section(1, "Executive summary"),
        report.summary,
        "",
        _section(2, "Growth process"),
    ]

    for key, label in _STAGE_LABELS:
        stage = getattr(report.growth_process, key)
        parts += [
            f"[{label}] ({stage.period})",
            f"- Summary: {stage.summary}",
            f"- Strategy: {stage.strategy}",
            f"- Performance: {stage.quantitative}",
            f"- In depth: {stage.content_depth}",
            "",
        ]

    parts.append(_section(3, "Diagnosis and solutions"))
    for key, label in _DIAGNOSIS_LABELS:
        item = getattr(report.diagnosis, key)
        parts += [
            f"[{label}]",
            f"- Problem: {item.problem}",
            f"- Solution: {item.solution}",
            "",
        ]

    bench = report.benchmarking
    parts += [
        _section(4, "Competitive strategy (roadmap)"),
        "[New channel concept]",
        bench.concept,
        "",
        "[Direction]",
        bench.direction,
        "",
        "[Detailed operation]",
        bench.detailed_operation,
        "",
        "[3-month growth roadmap]",
        _bullets(bench.roadmap),
        "",
        "[Recommended video titles]",
        _bullets(bench.titles),
        "",
        "[Key performance indicators]",
        _bullets(bench.kpis),
        "",
        "[Risk management]",
        bench.risks,
        "",
        "[Revenue diversification]",
        bench.revenue,
    ]
    return "\n".join(parts).strip()


def keyword_report_to_text(
    report: KeywordMarketReport,
    keyword: str,
    generated_at: datetime | None = None,
) -> str:
    parts = [
        "[TubeStrategy AI Keyword Market Report]",
        f"Keyword: {keyword}",
        f"Generated: {_timestamp(generated_at)}",
        "",
        _section(1, "Market trend summary"),
        report.summary,
        "",
        _section(2, "Market analysis"),
        report.market_analysis,
        "",
        _section(3, "Opportunities and threats"),
        "[Success factors / strengths]",
        _bullets(report.strengths or []),
        "",
        "[Market gaps / weaknesses]",
        _bullets(report.weaknesses or []),
        "",
        "[Opportunities]",
        _bullets(report.opportunities or []),
        "",
        _section(4, "Action plan"),
        _bullets(report.action_plan or []),
    ]
    return "\n".join(parts).strip()


def opportunity_report_to_text(
    report: OpportunityReport | None,
    channels: list[RisingChannelResult],
    topic: str,
    generated_at: datetime | None = None,
) -> str:
    parts = [
        "[TubeStrategy AI Rising Channel Report]",
        f"Topic: {topic}",
        f"Generated: {_timestamp(generated_at)}",
        "",
    ]

    if report:
        verdict = "Blue ocean (open market)" if report.type == "BLUE_OCEAN" else "Red ocean (crowded market)"
        parts += [
            _section(1, "Market opportunity"),
            f"Verdict: {verdict}",
            f"Opportunity score: {report.score} / 100",
            "",
            "[Summary]",
            report.summary,
            "",
            "[Reasoning]",
            report.reason,
            "",
            "[Market indicators]",
            f"- View distribution: {report.view_distribution or ''}",
            f"- Channel concentration: {report.channel_concentration or ''}",
            f"- Channel activity: {report.channel_activity or ''}",
            "",
            "[Entry strategy]",
            report.strategy,
            "",
            "[Recommended keywords]",
            ", ".join(report.keywords or []),
            "",
        ]

    if channels:
        parts += [_section(2, f"Rising channels ({len(channels)})")]
        for index, item in enumerate(channels, start=1):
            created = item.channel.published_at.date().isoformat() if item.channel.published_at else "unknown"
            parts += [
                f"[{index}] {item.channel.title}",
                f"- Subscribers: {format_number(item.channel.subscriber_count)}",
                f"- Created: {created}",
                f"- Top video: {item.top_video.title}",
                f"- Top video views: {format_number(item.top_video.view_count)}",
                f"- Views per subscriber: {item.score:.2f}",
                f"- Channel URL: https://www.youtube.com/channel/{item.channel.id}",
                f"- Video URL: https://www.youtube.com/watch?v={item.top_video.id}",
                "",
            ]

    return "\n".join(parts).rstrip() + "\n"


def sanitize_filename(s: str) -> str:
    return re.sub(r"[^\w\-]", "_", s)[:50]


def write_export(content: str, directory: Path, filename: str, extension: str) -> Path:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{sanitize_filename(filename)}.{extension}"
    path.write_text(content, encoding="utf-8")
    return path

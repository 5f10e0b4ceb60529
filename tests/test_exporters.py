import csv
import io
import json
from datetime import datetime, timedelta

from exporters import (
    BOM,
    channel_report_to_text,
    keyword_report_to_text,
    opportunity_report_to_text,
    sanitize_filename,
    to_csv,
    to_json,
    write_export,
)
from models import (
    Benchmarking,
    ChannelGrowthReport,
    Diagnosis,
    DiagnosisItem,
    GrowthProcess,
    GrowthStage,
    KeywordMarketReport,
    OpportunityReport,
    RisingChannelResult,
)

GENERATED = datetime(2026, 10, 16, 9, 30)


def _growth_report():
    stage = GrowthStage(
        period="2025.01 ~ 2025.06",
        summary="Found the format",
        strategy="Weekly teardown videos",
        quantitative="Views tripled",
        content_depth="Repair enthusiasts",
    )
    item = DiagnosisItem(problem="Long intros", solution="Cut to the reveal")
    return ChannelGrowthReport(
        summary="Steady growth in a repair niche",
        growth_process=GrowthProcess(early=stage, mid=stage, latest=stage),
        diagnosis=Diagnosis(content=item, engagement=item, monetization=item, branding=item),
        benchmarking=Benchmarking(
            concept="Five-minute fixes",
            direction="Shorts first",
            detailed_operation="Three uploads a week",
            roadmap=["Month 1: pilot", "Month 2: series", "Month 3: collab"],
            titles=["Fixing the worst Game Boy on eBay"],
            kpis=["Retention 50%"],
            risks="Parts shortages",
            revenue="Tool sponsorships",
        ),
    )


def test_csv_round_trip_with_embedded_quote():
    records = [
        {"title": 'The "best" retro console', "views": 1200, "channel": "Retro Lab"},
        {"title": "Plain, with comma", "views": 30, "channel": "Bits & Bytes"},
    ]
    output = to_csv(records)

    assert output.startswith(BOM)
    rows = list(csv.DictReader(io.StringIO(output[len(BOM):])))
    assert rows == [
        {"title": 'The "best" retro console', "views": "1200", "channel": "Retro Lab"},
        {"title": "Plain, with comma", "views": "30", "channel": "Bits & Bytes"},
    ]


def test_csv_quotes_every_value():
    output = to_csv([{"a": 1, "b": 'x"y'}])
    assert output == BOM + 'a,b\n"1","x""y"'


def test_csv_escapes_newlines_and_commas():
    output = to_csv([{"title": "line one\nline, two", "note": None}, {"title": "x", "note": "y"}])

    assert output == BOM + 'title,note\n"line one\nline, two",""\n"x","y"'
    rows = list(csv.DictReader(io.StringIO(output[len(BOM):], newline="")))
    assert rows[0] == {"title": "line one\nline, two", "note": ""}


def test_csv_from_models(make_video):
    output = to_csv([make_video(id="v1", tags=["a", "b"])])
    rows = list(csv.DictReader(io.StringIO(output[len(BOM):])))

    assert rows[0]["id"] == "v1"
    assert rows[0]["tags"] == "a,b"
    assert rows[0]["popularity_score"] == ""


def test_csv_empty():
    assert to_csv([]) == ""


def test_to_json_is_indented_and_complete():
    report = _growth_report()
    text = to_json(report)

    assert text.startswith("{\n  ")
    assert json.loads(text) == report.model_dump(mode="json")


def test_channel_report_text_contains_every_field():
    report = _growth_report()
    text = channel_report_to_text(report, "Retro Lab", generated_at=GENERATED)

    assert text.startswith("[TubeStrategy AI Consulting Report]")
    assert "Channel: Retro Lab" in text
    assert "Generated: 2026-10-16 09:30:00" in text
    assert "[Early stage] (2025.01 ~ 2025.06)" in text
    assert "- Solution: Cut to the reveal" in text
    for step in report.benchmarking.roadmap:
        assert f"- {step}" in text
    assert "- Fixing the worst Game Boy on eBay" in text
    assert text.rstrip().endswith("Tool sponsorships")


def test_keyword_report_text_handles_empty_arrays():
    report = KeywordMarketReport(
        summary="Crowded",
        market_analysis="Three channels own the top 20",
        strengths=["Strong thumbnails"],
    )
    text = keyword_report_to_text(report, "retro gaming", generated_at=GENERATED)

    assert "Keyword: retro gaming" in text
    assert "- Strong thumbnails" in text
    assert "Three channels own the top 20" in text
    assert "4. Action plan" in text


def test_opportunity_report_text(make_video, make_channel, now):
    report = OpportunityReport(
        type="BLUE_OCEAN",
        score=81,
        summary="Room to grow",
        reason="No dominant channel",
        strategy="Niche deep dives",
        keywords=["retro", "handheld"],
        view_distribution="Even",
    )
    channel = make_channel("UC9", title="Pixel Garage", subscriber_count=2500,
                           published_at=now - timedelta(days=40))
    video = make_video(id="abc123", title="Modding a PS1", view_count=150_000)
    channels = [RisingChannelResult(channel=channel, top_video=video, top_video_views=150_000, score=60.0)]

    text = opportunity_report_to_text(report, channels, "retro handhelds", generated_at=GENERATED)

    assert "Verdict: Blue ocean" in text
    assert "Opportunity score: 81 / 100" in text
    assert "retro, handheld" in text
    assert "- View distribution: Even" in text
    assert "- Channel concentration: " in text
    assert "[1] Pixel Garage" in text
    assert "- Subscribers: 2.5K" in text
    assert "- Top video views: 150.0K" in text
    assert "https://www.youtube.com/channel/UC9" in text
    assert "https://www.youtube.com/watch?v=abc123" in text


def test_opportunity_report_text_without_report():
    text = opportunity_report_to_text(None, [], "nothing", generated_at=GENERATED)

    assert "Topic: nothing" in text
    assert "Verdict" not in text


def test_write_export(tmp_path):
    path = write_export("hello", tmp_path / "out", "retro/gaming report", "txt")

    assert path.name == "retro_gaming_report.txt"
    assert path.read_text(encoding="utf-8") == "hello"


def test_sanitize_filename():
    assert sanitize_filename("a b/c") == "a_b_c"
    assert len(sanitize_filename("x" * 80)) == 50
